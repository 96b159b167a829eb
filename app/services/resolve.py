"""
Field resolution: which page to show and what to highlight for the selected
record + field, plus prev/next navigation that keeps the field selected.

- resolve(records, selected_id): the selected record, looked up fresh by id
  on every read. Never hold on to the returned object across a list refresh;
  call resolve again.
- target_page(record, key): page of the field's first citation, or None.
- highlights_for_page(record, key, page): every citation of the field on that
  page (a wrapped table cell gives several boxes).
- provenance_badge(record, key): "AI generated" for a citation-less spec ID,
  otherwise the first citation's block type/confidence/page, otherwise
  "no source citation".
- PageTracker: issues page changes when the (record, field) selection moves.
"""

from __future__ import annotations

from typing import List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel

from app.models.schemas import (
    DEFAULT_FIELD_KEY,
    BlockType,
    Citation,
    CitedField,
    Confidence,
    FieldKey,
    Record,
    is_generated,
)
from app.services.search import filter_records

GENERATED_LABEL = "AI generated"
NO_SOURCE_LABEL = "no source citation"


def resolve(records: Sequence[Record], selected_id: Optional[str]) -> Optional[Record]:
    if not selected_id:
        return None
    for record in records:
        if record.id == selected_id:
            return record
    return None


def resolve_field(record: Record, key: Optional[str]) -> CitedField:
    """The field for `key`, falling back to the item name for unknown/empty keys."""
    field = record.field(key) if key else None
    return field if field is not None else record.item_name


def target_page(record: Record, key: Optional[str]) -> Optional[int]:
    field = resolve_field(record, key)
    if field.citations:
        return field.citations[0].bounding_box.page
    return None


def highlights_for_page(record: Record, key: Optional[str], current_page: int) -> List[Citation]:
    field = resolve_field(record, key)
    return [c for c in field.citations if c.bounding_box.page == current_page]


class Badge(BaseModel):
    kind: Literal["generated", "cited", "none"]
    label: str
    block_type: Optional[BlockType] = None
    confidence: Optional[Confidence] = None
    page: Optional[int] = None


def provenance_badge(record: Record, key: Optional[str]) -> Badge:
    field = resolve_field(record, key)
    if key == FieldKey.SPEC_ID_NUMBER.value and is_generated(field):
        return Badge(kind="generated", label=GENERATED_LABEL)
    if field.citations:
        primary = field.citations[0]
        return Badge(
            kind="cited",
            label=f"{primary.block_type.value} · {primary.confidence.value} · p.{primary.page}",
            block_type=primary.block_type,
            confidence=primary.confidence,
            page=primary.page,
        )
    return Badge(kind="none", label=NO_SOURCE_LABEL)


class PageTracker:
    """
    Current PDF page for the viewer.

    - load_document(): a newly opened document starts on page 1 (the only
      time page 1 is forced).
    - sync(): when the record id or field key changed and the target page is
      within [1, total_pages], jump there and return it. Null or out-of-range
      targets leave the page where it is and return None.
    """

    def __init__(self) -> None:
        self.document_id: Optional[str] = None
        self.total_pages: int = 0
        self.current_page: Optional[int] = None
        self._last: Optional[Tuple[str, str]] = None

    def load_document(self, document_id: str, total_pages: int) -> None:
        if document_id != self.document_id:
            self.document_id = document_id
            self.current_page = 1
            self._last = None
        self.total_pages = total_pages

    def go_to(self, page: int) -> bool:
        """Manual paging by the user; ignored when out of range."""
        if 1 <= page <= self.total_pages:
            self.current_page = page
            return True
        return False

    def sync(self, record: Record, key: Optional[str]) -> Optional[int]:
        field_key = key or DEFAULT_FIELD_KEY.value
        selection = (record.id, field_key)
        if selection == self._last:
            return None
        self._last = selection
        page = target_page(record, field_key)
        if page is None or not (1 <= page <= self.total_pages):
            return None
        self.current_page = page
        return page


# ---------- view state + navigation ----------

class ViewState(BaseModel):
    """Ephemeral UI selection. Holds ids only, never Record objects."""

    selected_id: Optional[str] = None
    field_key: FieldKey = DEFAULT_FIELD_KEY
    query: str = ""


def visible_records(records: Sequence[Record], state: ViewState) -> List[Record]:
    return filter_records(records, state.query)


def selected_record(records: Sequence[Record], state: ViewState) -> Optional[Record]:
    """
    Selected record if it is still in the visible (filtered) set, else None.

    A search that hides the selected row closes the detail view rather than
    showing citations for a row that is no longer listed.
    """
    return resolve(visible_records(records, state), state.selected_id)


def select(state: ViewState, record_id: Optional[str], field_key: Optional[str] = None) -> ViewState:
    key = FieldKey(field_key) if field_key else state.field_key
    return state.model_copy(update={"selected_id": record_id, "field_key": key})


def position(records: Sequence[Record], state: ViewState) -> Optional[Tuple[int, int]]:
    """(1-based index, total) of the selection within the visible list."""
    visible = visible_records(records, state)
    for idx, record in enumerate(visible, start=1):
        if record.id == state.selected_id:
            return idx, len(visible)
    return None


def step(records: Sequence[Record], state: ViewState, delta: int) -> ViewState:
    """
    Move the selection by `delta` through the visible order, keeping the
    selected field. Stops at either end instead of wrapping; with no
    resolvable selection, the first visible record is selected.
    """
    visible = visible_records(records, state)
    if not visible:
        return select(state, None)
    ids = [r.id for r in visible]
    if state.selected_id not in ids:
        return select(state, ids[0])
    idx = ids.index(state.selected_id) + delta
    idx = max(0, min(idx, len(ids) - 1))
    return select(state, ids[idx])
