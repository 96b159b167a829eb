"""
Quick search over the product table.

matches(record, query): empty query matches everything; otherwise a
case-insensitive substring test against exactly four fields (name,
manufacturer, spec ID, project). Details, finish etc. are not
searched.

Filtering never touches the repository: it only narrows what the table shows
and what prev/next walks through.
"""

from typing import Iterable, List

from app.models.schemas import FieldKey, Record

SEARCH_FIELDS = (
    FieldKey.ITEM_NAME,
    FieldKey.MANUFACTURER,
    FieldKey.SPEC_ID_NUMBER,
    FieldKey.PROJECT,
)


def matches(record: Record, query: str) -> bool:
    needle = (query or "").lower()
    if not needle:
        return True
    for key in SEARCH_FIELDS:
        field = record.field(key)
        if field is not None and needle in field.value.lower():
            return True
    return False


def filter_records(records: Iterable[Record], query: str) -> List[Record]:
    """Matching records, input order preserved."""
    return [r for r in records if matches(r, query)]
