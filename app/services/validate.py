"""
Field-key drift check.

FieldKey is the one list of product fields. Four other places enumerate
fields on their own:
- Record's cited-field attributes (via FIELD_ATTRS),
- FIELD_LABELS for the field strip,
- every extraction schema's `products.items.properties`,
- the export columns and the search field set.

check_field_keys_in_sync() returns a list of human-readable problems; empty
means everything agrees. Tests assert it's empty so a renamed field can't
silently fall out of export or search.
"""

from typing import List

from app.models.schemas import FIELD_ATTRS, FIELD_LABELS, CitedField, FieldKey, Record
from app.services.export import DEFAULT_EXPORT_COLUMNS
from app.services.search import SEARCH_FIELDS
from extraction.prompts import EXTRACTION_CONFIGS, schema_field_keys


def check_field_keys_in_sync() -> List[str]:
    problems: List[str] = []
    keys = set(FieldKey)

    if set(FIELD_ATTRS) != keys:
        problems.append(f"FIELD_ATTRS keys differ from FieldKey: {sorted(k.value for k in keys ^ set(FIELD_ATTRS))}")
    if set(FIELD_LABELS) != keys:
        problems.append(f"FIELD_LABELS keys differ from FieldKey: {sorted(k.value for k in keys ^ set(FIELD_LABELS))}")

    cited_attrs = {
        name for name, info in Record.model_fields.items() if info.annotation is CitedField
    }
    if cited_attrs != set(FIELD_ATTRS.values()):
        problems.append(f"Record cited fields differ from FIELD_ATTRS: {sorted(cited_attrs ^ set(FIELD_ATTRS.values()))}")

    known = {k.value for k in keys}
    for doc_type, config in EXTRACTION_CONFIGS.items():
        unknown = set(schema_field_keys(config.schema)) - known
        if unknown:
            problems.append(f"{doc_type.value} schema declares unknown fields: {sorted(unknown)}")

    export_keys = [c.field_key for c in DEFAULT_EXPORT_COLUMNS]
    if set(export_keys) != keys or len(export_keys) != len(keys):
        problems.append("Export columns must list every FieldKey exactly once")

    if not set(SEARCH_FIELDS) <= keys:
        problems.append("Search fields must be FieldKeys")

    return problems
