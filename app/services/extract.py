# app/services/extract.py
"""
Extraction adapter: PDF bytes + document type -> Records with citations.

Rules:
- Pick the {schema, prompt} pair for the document type from
  extraction.prompts.EXTRACTION_CONFIGS (drawing/rfi/submittal use the
  purchase-order pair for now).
- Call the backend exactly once per file, array extraction + citations on.
- The backend answers with a wrapper holding the products under "products".
  No such array -> log a warning and return [] (nothing extracted is not an error).
- A response that only carries a job_id is an async job handle. We don't poll:
  that's an AsyncJobResponseError ("synchronous extraction required").
- Per product, every schema field becomes a CitedField:
    value     <- field["value"] (default "")
    citations <- field["citations"] (default [])
  A citation without a bbox gets the degenerate {0,0,0,0,page 1} box so callers
  can always read citation.bounding_box.
- Each record gets a fresh id and is stamped with document_id, document_type,
  created_at.

Backend/network errors propagate (wrapped in ExtractionError) so the caller can
mark that one document as failed.
"""

from __future__ import annotations

import re
import uuid
from typing import Any, Dict, List, Optional, Protocol, Tuple

from reducto import AsyncReducto

from app.config import Settings, get_settings
from app.models.schemas import (
    FIELD_ATTRS,
    BlockType,
    BoundingBox,
    Citation,
    CitedField,
    Confidence,
    DocumentType,
    FieldKey,
    GranularConfidence,
    ParentBlock,
    Record,
    degenerate_bbox,
    utcnow,
)
from app.util.exceptions import AsyncJobResponseError, ConfigurationError, ExtractionError
from app.util.logger import get_logger
from extraction.patterns import BLOCK_TYPE_NORMALIZER, CONFIDENCE_LEVELS
from extraction.prompts import PRODUCTS_KEY, get_extraction_config, schema_field_keys


class ExtractionBackend(Protocol):
    """Anything that turns a file + schema + prompt into a raw extraction response."""

    async def extract(self, filename: str, data: bytes, schema: Dict[str, Any], system_prompt: str) -> Any:
        ...


# ---------- Reducto client ----------

EXTRACT_SETTINGS = {
    "array_extract": True,
    "citations": {
        "enabled": True,
        "numerical_confidence": True,
    },
}


class ReductoBackend:
    """Service wrapper for Reducto upload + extract calls."""

    def __init__(self, client: AsyncReducto):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ReductoBackend":
        settings = settings or get_settings()
        if not settings.reducto_api_key:
            raise ConfigurationError("Reducto API key not found. Set REDUCTO_API_KEY in your .env file.")
        return cls(AsyncReducto(api_key=settings.reducto_api_key, timeout=settings.reducto_timeout))

    async def extract(self, filename: str, data: bytes, schema: Dict[str, Any], system_prompt: str) -> Any:
        logger = get_logger("reducto")
        logger.info(f"Uploading {filename} to Reducto ({len(data)} bytes)")
        upload = await self.client.upload(file=(filename, data))
        result = await self.client.extract.run(
            input=upload,
            instructions={
                "schema": schema,
                "system_prompt": system_prompt,
            },
            settings=EXTRACT_SETTINGS,
        )
        logger.info(f"Reducto extraction finished for {filename} (job_id={getattr(result, 'job_id', None)})")
        return result


# ---------- response unwrapping ----------

def _as_plain(obj: Any) -> Any:
    """SDK response objects -> plain dicts/lists."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return obj


def unwrap_products(response: Any) -> List[Dict[str, Any]]:
    """
    Pull the product list out of a backend response.

    Accepts {"result": {"products": [...]}} or, for array extraction,
    {"result": [{"products": [...]}, ...]} (chunks are concatenated in order).

    Raises:
        AsyncJobResponseError: response is only a job handle.
        ExtractionError: response isn't a mapping at all.
    """
    logger = get_logger("extract")
    response = _as_plain(response)
    if not isinstance(response, dict):
        raise ExtractionError("Invalid response format from extraction backend")

    result = response.get("result")
    if result is None:
        if response.get("job_id"):
            raise AsyncJobResponseError(
                f"Received async job {response['job_id']}; synchronous extraction required"
            )
        raise ExtractionError("Invalid response format from extraction backend: no result")

    result = _as_plain(result)
    products: Any = None
    if isinstance(result, dict):
        products = result.get(PRODUCTS_KEY)
    elif isinstance(result, list):
        chunks = [_as_plain(c) for c in result]
        arrays = [c.get(PRODUCTS_KEY) for c in chunks if isinstance(c, dict)]
        arrays = [a for a in arrays if isinstance(a, list)]
        if arrays:
            products = [p for arr in arrays for p in arr]

    if not isinstance(products, list):
        logger.warning(f"No '{PRODUCTS_KEY}' array in extraction result; treating as zero products")
        return []
    return [_as_plain(p) for p in products]


# ---------- citation mapping ----------

def normalize_block_type(raw: Optional[str]) -> BlockType:
    """'List Item' / 'ListItem' / 'Section Header' -> BlockType; unknown -> Text."""
    key = re.sub(r"\s+", "", raw or "").lower()
    return BlockType(BLOCK_TYPE_NORMALIZER.get(key, BlockType.TEXT.value))


def normalize_confidence(raw: Any) -> Confidence:
    low = str(raw or "").strip().lower()
    if low in CONFIDENCE_LEVELS:
        return Confidence(low)
    return Confidence.MEDIUM


def _num(v: Any, default: float = 0.0) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def parse_bbox(raw: Any) -> BoundingBox:
    """Backend bbox dict -> BoundingBox; missing/garbled -> degenerate box."""
    if not isinstance(raw, dict):
        return degenerate_bbox()
    page = int(_num(raw.get("page"), 1))
    original = raw.get("original_page", raw.get("originalPage"))
    return BoundingBox(
        left=_num(raw.get("left")),
        top=_num(raw.get("top")),
        width=_num(raw.get("width")),
        height=_num(raw.get("height")),
        page=max(page, 1),
        original_page=int(_num(original)) if original is not None else None,
    )


def parse_citation(raw: Dict[str, Any]) -> Citation:
    raw = _as_plain(raw)
    granular = raw.get("granular_confidence")
    parent = raw.get("parentBlock") or raw.get("parent_block")
    return Citation(
        block_type=normalize_block_type(raw.get("type")),
        content=raw.get("content") or "",
        bounding_box=parse_bbox(raw.get("bbox")),
        confidence=normalize_confidence(raw.get("confidence")),
        granular_confidence=GranularConfidence(
            extract_confidence=granular.get("extract_confidence"),
            parse_confidence=granular.get("parse_confidence"),
        ) if isinstance(granular, dict) else None,
        parent_block=ParentBlock(
            block_type=normalize_block_type(parent.get("type")),
            content=parent.get("content") or "",
            bounding_box=parse_bbox(parent.get("bbox")),
        ) if isinstance(parent, dict) else None,
    )


def parse_cited_field(raw: Any) -> CitedField:
    """{"value": ..., "citations": [...]} -> CitedField. Bare scalars carry no citations."""
    raw = _as_plain(raw)
    if raw is None:
        return CitedField()
    if not isinstance(raw, dict):
        return CitedField(value=str(raw))
    value = raw.get("value")
    citations = raw.get("citations") or []
    return CitedField(
        value="" if value is None else str(value),
        citations=[parse_citation(c) for c in citations if isinstance(_as_plain(c), dict)],
    )


def new_record_id() -> str:
    return f"prod-{uuid.uuid4().hex[:12]}"


def map_products_to_records(
    products: List[Dict[str, Any]],
    field_names: List[str],
    document_id: str,
    document_type: DocumentType,
) -> List[Record]:
    """One Record per product; only schema-declared fields are read."""
    logger = get_logger("extract")
    created_at = utcnow()
    known = {k.value for k in FieldKey}
    records: List[Record] = []
    for idx, item in enumerate(products, start=1):
        if not isinstance(item, dict):
            logger.warning(f"Skipping product {idx}: expected an object, got {type(item).__name__}")
            continue
        fields = {
            FIELD_ATTRS[FieldKey(name)]: parse_cited_field(item.get(name))
            for name in field_names
            if name in known
        }
        record = Record(
            id=new_record_id(),
            document_id=document_id,
            document_type=document_type,
            created_at=created_at,
            **fields,
        )
        logger.debug(
            f"Mapped product {idx}: {record.item_name.value!r} "
            f"({len(record.item_name.citations)} citations on itemName)"
        )
        records.append(record)
    return records


# ---------- main entry ----------

async def extract_records(
    backend: ExtractionBackend,
    file: Tuple[str, bytes],
    document_type: DocumentType,
    document_id: str,
) -> List[Record]:
    """
    Run one file through the backend and map the result to Records.

    Args:
        backend: extraction client (ReductoBackend or a fake in tests).
        file: (filename, bytes).
        document_type: selects schema + prompt.
        document_id: owning Document id stamped on every record.

    Returns:
        List[Record]: possibly empty when the backend found no products.

    Raises:
        ExtractionError: unknown document type, backend failure, malformed response or async job handle.
    """
    logger = get_logger("extract")
    filename, data = file
    try:
        document_type = DocumentType(document_type)
    except ValueError as e:
        raise ExtractionError(f"Unknown document type {document_type!r} for {filename}", original_error=e) from e
    config = get_extraction_config(document_type)
    logger.info(f"Starting extraction for {filename} as {document_type.value}")

    try:
        response = await backend.extract(filename, data, config.schema, config.prompt)
    except ExtractionError:
        raise
    except Exception as e:
        logger.error(f"Extraction backend failed for {filename}: {e}")
        raise ExtractionError(f"Extraction failed for {filename}: {e}", original_error=e) from e

    products = unwrap_products(response)
    records = map_products_to_records(
        products, schema_field_keys(config.schema), document_id, document_type
    )
    logger.info(f"Mapped {len(records)} records from {len(products)} products in {filename}")
    return records
