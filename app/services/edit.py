"""
Cell editing: Viewing -> Editing -> (Saving) -> Viewing.

- A cell only enters Editing when its row is the selected row and the user
  explicitly asks (double click / edit button); scanning the table can't
  start an edit by accident.
- The draft lives here, apart from the committed value. Confirm writes only
  when the trimmed draft differs; otherwise it's a no-op.
- A commit replaces the field with {value: trimmed draft, citations: the
  field's existing citations}. Citations keep pointing at where the value was
  originally read, even after the text changes.
- Cancel drops the draft, no write.

CompositeEditor buffers name + description together and writes both (as two
independent field updates) only when the whole composite is confirmed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from app.models.schemas import FIELD_ATTRS, CitedField, FieldKey, Record
from app.util.logger import get_logger


class EditState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    SAVING = "saving"


class RecordWriter(Protocol):
    async def update(self, item_id: str, changes: Dict[str, Any]) -> Record:
        ...


def build_field_update(record: Record, key: FieldKey, new_value: str) -> Dict[str, CitedField]:
    """Partial for Repository.update that keeps the field's citations as they are."""
    key = FieldKey(key)
    existing = getattr(record, FIELD_ATTRS[key])
    return {FIELD_ATTRS[key]: CitedField(value=new_value, citations=list(existing.citations))}


class CellEditor:
    """Edit lifecycle for one (record, field) cell."""

    def __init__(self, repository: RecordWriter, record_id: str, field_key: FieldKey):
        self.repository = repository
        self.record_id = record_id
        self.field_key = FieldKey(field_key)
        self.state = EditState.VIEWING
        self.draft: Optional[str] = None

    def begin(self, record: Record, selected_id: Optional[str]) -> bool:
        """Enter Editing; refused unless this cell's row is the selected row."""
        if record.id != self.record_id or selected_id != self.record_id:
            return False
        if self.state != EditState.VIEWING:
            return False
        self.draft = getattr(record, FIELD_ATTRS[self.field_key]).value
        self.state = EditState.EDITING
        return True

    def set_draft(self, text: str) -> None:
        if self.state != EditState.EDITING:
            raise RuntimeError("Cell is not being edited")
        self.draft = text

    def cancel(self) -> None:
        self.draft = None
        self.state = EditState.VIEWING

    async def commit(self, record: Record) -> Optional[Record]:
        """
        Confirm the draft against the live record.

        Returns:
            The updated record, or None when nothing was written (unchanged
            draft or not editing).
        """
        if self.state != EditState.EDITING:
            return None
        if record.id != self.record_id:
            raise ValueError(f"Editor is bound to {self.record_id}, got {record.id}")

        new_value = (self.draft or "").strip()
        committed = getattr(record, FIELD_ATTRS[self.field_key]).value
        if new_value == committed:
            self.cancel()
            return None

        self.state = EditState.SAVING
        try:
            updated = await self.repository.update(
                self.record_id, build_field_update(record, self.field_key, new_value)
            )
        except Exception:
            # keep the draft so the user can retry
            self.state = EditState.EDITING
            raise
        get_logger("edit").info(f"Saved {self.field_key.value} on {self.record_id}")
        self.draft = None
        self.state = EditState.VIEWING
        return updated


class CompositeEditor:
    """Name + description edited as one unit; saved only on the final confirm."""

    FIELDS = (FieldKey.ITEM_NAME, FieldKey.PRODUCT_DESCRIPTION)

    def __init__(self, repository: RecordWriter, record_id: str):
        self.repository = repository
        self.record_id = record_id
        self.state = EditState.VIEWING
        self.drafts: Dict[FieldKey, str] = {}

    def begin(self, record: Record, selected_id: Optional[str]) -> bool:
        if record.id != self.record_id or selected_id != self.record_id:
            return False
        if self.state != EditState.VIEWING:
            return False
        self.drafts = {k: getattr(record, FIELD_ATTRS[k]).value for k in self.FIELDS}
        self.state = EditState.EDITING
        return True

    def set_draft(self, key: FieldKey, text: str) -> None:
        """Buffer a sub-field edit. Leaving one sub-field does not save."""
        key = FieldKey(key)
        if self.state != EditState.EDITING:
            raise RuntimeError("Composite is not being edited")
        if key not in self.FIELDS:
            raise ValueError(f"{key.value} is not part of this composite")
        self.drafts[key] = text

    def cancel(self) -> None:
        self.drafts = {}
        self.state = EditState.VIEWING

    async def commit(self, record: Record) -> List[FieldKey]:
        """Write every changed sub-field as its own update. Returns the keys written."""
        if self.state != EditState.EDITING:
            return []
        if record.id != self.record_id:
            raise ValueError(f"Editor is bound to {self.record_id}, got {record.id}")

        self.state = EditState.SAVING
        written: List[FieldKey] = []
        try:
            for key in self.FIELDS:
                new_value = self.drafts.get(key, "").strip()
                if new_value == getattr(record, FIELD_ATTRS[key]).value:
                    continue
                await self.repository.update(self.record_id, build_field_update(record, key, new_value))
                written.append(key)
        except Exception:
            self.state = EditState.EDITING
            raise
        self.drafts = {}
        self.state = EditState.VIEWING
        return written
