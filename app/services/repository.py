"""
Record/Document persistence.

- Repository[T]: list/get/create/update/delete over one table of pydantic models,
  kept in memory and optionally mirrored to a JSON file after each write
  (stands in for the hosted table; swap the class, keep the contract).
- RecordRepository / DocumentRepository add the per-entity queries.

Update contract: `update(id, {field: value, ...})` replaces exactly the named
fields, wholesale. For a product field that means the whole CitedField: the
caller re-attaches the existing citations when only the value changes (or uses
`RecordRepository.update_field`, which does it for them). Fields not named are
left alone.

No locking and no versioning: two writers on the same record race and the last
write wins. A write whose JSON mirror fails raises StorageError and leaves the
in-memory table as it was before the call.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel

from app.models.schemas import (
    FIELD_ATTRS,
    CitedField,
    Document,
    DocumentStatus,
    FieldKey,
    Record,
    utcnow,
)
from app.util.exceptions import NotFoundError, StorageError
from app.util.logger import get_logger

T = TypeVar("T", bound=BaseModel)


class Repository(Generic[T]):
    """
    Generic CRUD table.

    Args:
        model: the pydantic model stored in this table.
        entity: name used in errors/logs ("Record", "Document").
        id_prefix: prefix for generated ids.
        timestamp_field: attribute stamped by create().
        path: optional JSON file the table is mirrored to.
    """

    # columns update() refuses to touch
    immutable_fields: Tuple[str, ...] = ("id",)

    def __init__(
        self,
        model: Type[T],
        entity: str,
        id_prefix: str,
        timestamp_field: str,
        path: Optional[Union[str, Path]] = None,
    ):
        self.model = model
        self.entity = entity
        self.id_prefix = id_prefix
        self.timestamp_field = timestamp_field
        self.path = Path(path) if path else None
        self._items: Dict[str, T] = {}
        self._order: List[str] = []
        if self.path and self.path.exists():
            self._load()

    # ---------- persistence ----------

    def _load(self) -> None:
        raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        for row in raw:
            item = self.model.model_validate(row)
            self._items[item.id] = item
            self._order.append(item.id)
        get_logger("repository").info(f"Loaded {len(self._order)} {self.entity} rows from {self.path}")

    def _dump(self) -> str:
        rows = [self._items[i].model_dump(mode="json", by_alias=True) for i in self._order]
        return json.dumps(rows, indent=2)

    def _write(self, blob: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(blob, encoding="utf-8")

    async def _flush(self) -> None:
        if not self.path:
            return
        try:
            await asyncio.to_thread(self._write, self._dump())
        except OSError as e:
            raise StorageError(f"Could not write {self.entity} table to {self.path}: {e}", original_error=e) from e

    async def _commit(self, items: Dict[str, T], order: List[str]) -> None:
        """Swap in the new table state and write it; the old state comes back if the write fails."""
        previous = (self._items, self._order)
        self._items, self._order = items, order
        try:
            await self._flush()
        except Exception:
            self._items, self._order = previous
            raise

    # ---------- helpers ----------

    def new_id(self) -> str:
        return f"{self.id_prefix}-{uuid.uuid4().hex[:12]}"

    def _attr_name(self, key: str) -> str:
        """Accept attribute names or wire aliases ("itemName" -> "item_name")."""
        fields = self.model.model_fields
        if key in fields:
            return key
        for name, info in fields.items():
            if info.alias == key:
                return name
        raise ValueError(f"{self.entity} has no field {key!r}")

    def _require(self, item_id: str) -> T:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError(self.entity, item_id)
        return item

    # ---------- contract ----------

    async def list(self) -> List[T]:
        """Every row, newest first. Always the unfiltered set."""
        return [self._items[i] for i in self._order]

    async def list_where(self, predicate: Callable[[T], bool]) -> List[T]:
        return [item for item in await self.list() if predicate(item)]

    async def get(self, item_id: str) -> T:
        return self._require(item_id)

    async def create(self, data: Dict[str, Any]) -> T:
        """New row from a partial; id and timestamp are always assigned here."""
        payload = {self._attr_name(k): v for k, v in data.items()}
        payload["id"] = self.new_id()
        payload[self.timestamp_field] = utcnow()
        item = self.model.model_validate(payload)
        await self._commit({**self._items, item.id: item}, [item.id] + self._order)
        return item

    async def add_many(self, items: Iterable[T]) -> List[T]:
        """Bulk insert of fully built rows (ids already assigned), kept in given order. All or nothing."""
        items = list(items)
        for item in items:
            if item.id in self._items:
                raise ValueError(f"{self.entity} {item.id} already exists")
        added = {item.id: item for item in items}
        await self._commit({**self._items, **added}, [item.id for item in items] + self._order)
        return items

    async def update(self, item_id: str, changes: Dict[str, Any]) -> T:
        """Replace the named fields wholesale; everything else is untouched."""
        current = self._require(item_id)
        update = {self._attr_name(k): v for k, v in changes.items()}
        for name in update:
            if name in self.immutable_fields:
                raise ValueError(f"{self.entity} {name} is immutable")
        # validate the merged row so nested dicts become models
        merged = current.model_dump()
        merged.update({k: (v.model_dump() if isinstance(v, BaseModel) else v) for k, v in update.items()})
        updated = self.model.model_validate(merged)
        await self._commit({**self._items, item_id: updated}, self._order)
        return updated

    async def delete(self, item_id: str) -> None:
        self._require(item_id)
        items = {k: v for k, v in self._items.items() if k != item_id}
        await self._commit(items, [i for i in self._order if i != item_id])

    async def delete_where(self, predicate: Callable[[T], bool]) -> int:
        doomed = {i for i in self._order if predicate(self._items[i])}
        if doomed:
            items = {k: v for k, v in self._items.items() if k not in doomed}
            await self._commit(items, [i for i in self._order if i not in doomed])
        return len(doomed)


class RecordRepository(Repository[Record]):
    # set at extraction time
    immutable_fields = ("id", "document_id", "document_type", "created_at")

    def __init__(self, path: Optional[Union[str, Path]] = None):
        super().__init__(Record, "Record", "prod", "created_at", path)

    async def list_by_document(self, document_id: str) -> List[Record]:
        return await self.list_where(lambda r: r.document_id == document_id)

    async def delete_by_document(self, document_id: str) -> int:
        return await self.delete_where(lambda r: r.document_id == document_id)

    async def update_field(self, item_id: str, key: FieldKey, value: str) -> Record:
        """Set one field's value, keeping whatever citations it already has."""
        current = self._require(item_id)
        attr = FIELD_ATTRS[FieldKey(key)]
        existing: CitedField = getattr(current, attr)
        return await self.update(item_id, {attr: CitedField(value=value, citations=existing.citations)})


# status -> statuses it may move to
ALLOWED_TRANSITIONS = {
    DocumentStatus.PROCESSING: {DocumentStatus.COMPLETED, DocumentStatus.ERROR},
    DocumentStatus.COMPLETED: set(),
    DocumentStatus.ERROR: set(),
}


class DocumentRepository(Repository[Document]):
    immutable_fields = ("id", "upload_date")

    def __init__(self, path: Optional[Union[str, Path]] = None):
        super().__init__(Document, "Document", "doc", "upload_date", path)

    def _check_transition(self, current: Document, status: DocumentStatus) -> DocumentStatus:
        status = DocumentStatus(status)
        if status != current.status and status not in ALLOWED_TRANSITIONS[current.status]:
            raise ValueError(
                f"Document {current.id} cannot move from {current.status.value} to {status.value}"
            )
        return status

    async def update(self, item_id: str, changes: Dict[str, Any]) -> Document:
        """Generic update; a status change must still be a forward move."""
        current = self._require(item_id)
        for key, value in changes.items():
            if self._attr_name(key) == "status":
                self._check_transition(current, value)
        return await super().update(item_id, changes)

    async def update_status(self, document_id: str, status: DocumentStatus) -> Document:
        """processing -> completed | error; never back."""
        current = self._require(document_id)
        status = self._check_transition(current, status)
        if status == current.status:
            return current
        return await self.update(document_id, {"status": status})


async def delete_document_cascade(
    document_id: str, documents: DocumentRepository, records: RecordRepository
) -> int:
    """Delete a document and every record extracted from it. Returns records removed."""
    await documents.delete(document_id)
    removed = await records.delete_by_document(document_id)
    get_logger("repository").info(f"Deleted document {document_id} and {removed} records")
    return removed
