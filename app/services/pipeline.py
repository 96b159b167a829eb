"""
Upload pipeline: PDFs in, Documents + Records out.

Per file, strictly one after another:
    store PDF -> create Document (processing) -> extract -> [backfill spec IDs]
    -> add Records -> mark Document completed

If any step after the Document exists fails, records already added for it are
removed, that Document is moved to `error` and the failure is reported on the
file's FileOutcome, so a retry starts clean. A Document is
never left showing `processing` once its file is done, and never shows
`completed` while its extraction is still in flight.

Whether a batch keeps going after a failure is the caller's call
(`stop_on_error`).
"""

from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence

from pydantic import BaseModel

from app.models.schemas import DocumentStatus, DocumentType, Record
from app.services.classify import Classifier, backfill_classification
from app.services.extract import ExtractionBackend, extract_records
from app.services.repository import DocumentRepository, RecordRepository
from app.services.storage import Storage
from app.util.logger import get_logger


class Upload(NamedTuple):
    filename: str
    data: bytes


class FileOutcome(BaseModel):
    """
    What happened to one uploaded file.

    `completed` with record_count == 0 means "nothing found"; `error` means
    something went wrong and the user should retry.
    """

    filename: str
    document_id: Optional[str] = None
    status: DocumentStatus
    record_count: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == DocumentStatus.COMPLETED


class BatchResult(BaseModel):
    outcomes: List[FileOutcome] = []

    @property
    def failed(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def record_count(self) -> int:
        return sum(o.record_count for o in self.outcomes)


async def _mark_failed(document_id: str, documents: DocumentRepository, records: RecordRepository) -> None:
    """Drop whatever records the document already got and move it to error, logging what can't be done."""
    logger = get_logger("pipeline")
    try:
        removed = await records.delete_by_document(document_id)
        if removed:
            logger.warning(f"Removed {removed} records of failed document {document_id}")
    except Exception as e:
        logger.error(f"Could not remove records of failed document {document_id}: {e}")
    try:
        await documents.update_status(document_id, DocumentStatus.ERROR)
    except Exception as e:
        logger.error(f"Could not mark document {document_id} as error: {e}")


async def process_upload(
    upload: Upload,
    document_type: DocumentType,
    *,
    storage: Storage,
    backend: ExtractionBackend,
    documents: DocumentRepository,
    records: RecordRepository,
    classifier: Optional[Classifier] = None,
) -> FileOutcome:
    """Run one file through the whole pipeline. Never raises for a per-file failure."""
    logger = get_logger("pipeline")
    document_type = DocumentType(document_type)
    document_id: Optional[str] = None
    try:
        path = await storage.store(upload.filename, upload.data)
        document = await documents.create(
            {
                "filename": path,
                "status": DocumentStatus.PROCESSING,
                "document_type": document_type,
            }
        )
        document_id = document.id

        extracted: List[Record] = await extract_records(
            backend, (upload.filename, upload.data), document_type, document_id
        )
        if classifier is not None and extracted:
            extracted = await backfill_classification(extracted, classifier)

        await records.add_many(extracted)
        await documents.update_status(document_id, DocumentStatus.COMPLETED)
    except Exception as e:
        logger.error(f"Processing failed for {upload.filename}: {e}")
        if document_id is not None:
            await _mark_failed(document_id, documents, records)
        return FileOutcome(
            filename=upload.filename,
            document_id=document_id,
            status=DocumentStatus.ERROR,
            error=str(e),
        )

    if not extracted:
        logger.warning(f"No products found in {upload.filename}")
    logger.info(f"{upload.filename}: {len(extracted)} records, document {document_id} completed")
    return FileOutcome(
        filename=upload.filename,
        document_id=document_id,
        status=DocumentStatus.COMPLETED,
        record_count=len(extracted),
    )


async def process_uploads(
    uploads: Sequence[Upload],
    document_type: DocumentType,
    *,
    storage: Storage,
    backend: ExtractionBackend,
    documents: DocumentRepository,
    records: RecordRepository,
    classifier: Optional[Classifier] = None,
    stop_on_error: bool = False,
) -> BatchResult:
    """
    Process a batch sequentially; the next file starts only after the
    previous one has finished (completed or error).

    Args:
        stop_on_error: skip the remaining files after the first failure.
    """
    logger = get_logger("pipeline")
    result = BatchResult()
    for i, upload in enumerate(uploads, start=1):
        logger.info(f"[{i}/{len(uploads)}] {upload.filename}")
        outcome = await process_upload(
            upload,
            document_type,
            storage=storage,
            backend=backend,
            documents=documents,
            records=records,
            classifier=classifier,
        )
        result.outcomes.append(outcome)
        if not outcome.ok and stop_on_error:
            logger.warning(f"Stopping batch after {upload.filename}; {len(uploads) - i} file(s) skipped")
            break
    return result
