"""
CSV export of the product table.

- Columns are an ordered list of ExportColumn(field_key, label, enabled);
  disabled columns simply don't exist in the output.
- Header row uses the labels, not the field keys.
- Rows follow the order passed in (normally the filtered table order).
- Cells are the field value as-is ("" when missing); pandas/csv minimal
  quoting wraps values containing a comma, quote or newline in quotes and
  doubles inner quotes.
"""

from datetime import date
from typing import List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel

from app.models.schemas import FieldKey, Record

EXPORT_MIME = "text/csv"


class ExportColumn(BaseModel):
    field_key: FieldKey
    label: str
    enabled: bool = True


DEFAULT_EXPORT_COLUMNS: List[ExportColumn] = [
    ExportColumn(field_key=FieldKey.ITEM_NAME, label="Product Name"),
    ExportColumn(field_key=FieldKey.PRODUCT_DESCRIPTION, label="Product Description"),
    ExportColumn(field_key=FieldKey.MANUFACTURER, label="Manufacturer"),
    ExportColumn(field_key=FieldKey.TAG, label="Tag"),
    ExportColumn(field_key=FieldKey.SPEC_ID_NUMBER, label="Masterformat Code"),
    ExportColumn(field_key=FieldKey.PROJECT, label="Project", enabled=False),
    ExportColumn(field_key=FieldKey.FINISH, label="Finish"),
    ExportColumn(field_key=FieldKey.SIZE, label="Size"),
    ExportColumn(field_key=FieldKey.PRICE, label="Price"),
    ExportColumn(field_key=FieldKey.DETAILS, label="Details", enabled=False),
]


def default_columns() -> List[ExportColumn]:
    """Fresh copy, safe for a UI to toggle."""
    return [c.model_copy() for c in DEFAULT_EXPORT_COLUMNS]


def records_to_dataframe(records: Sequence[Record], columns: Sequence[ExportColumn]) -> pd.DataFrame:
    enabled = [c for c in columns if c.enabled]
    labels = [c.label for c in enabled]
    rows = []
    for record in records:
        row = []
        for col in enabled:
            field = record.field(col.field_key)
            row.append(field.value if field is not None and field.value is not None else "")
        rows.append(row)
    return pd.DataFrame(rows, columns=labels, dtype=object)


def export_to_table(records: Sequence[Record], columns: Sequence[ExportColumn]) -> str:
    """Header row + one row per record, LF separated. No enabled columns -> ""."""
    if not any(c.enabled for c in columns):
        return ""
    df = records_to_dataframe(records, columns)
    return df.to_csv(index=False, lineterminator="\n")


def export_filename(prefix: str = "products", on: Optional[date] = None) -> str:
    """<prefix>-<YYYY-MM-DD>.csv"""
    on = on or date.today()
    return f"{prefix}-{on.isoformat()}.csv"
