"""
Data shapes for the product extractor.

- Citation: one pointer back into the source PDF (page + normalized bbox,
  block type, confidence, the text it was read from).
- CitedField: a string value plus zero-or-more citations, primary first.
- Record: one extracted product (ten cited fields + id/document/timestamps).
- Document: one uploaded PDF and its processing status.

If I need a new product column, I add it to `FieldKey` first, then to
`Record`, `FIELD_ATTRS` and `FIELD_LABELS`; `validate.check_field_keys_in_sync`
fails until all of them (plus the export columns) agree.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentType(str, Enum):
    PURCHASE_ORDER = "purchase_order"
    SPECIFICATION = "specification"
    DRAWING = "drawing"
    RFI = "rfi"
    SUBMITTAL = "submittal"


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class BlockType(str, Enum):
    TABLE = "Table"
    TEXT = "Text"
    LIST = "List"
    LIST_ITEM = "ListItem"
    IMAGE = "Image"
    SECTION_HEADER = "SectionHeader"
    HEADER = "Header"
    TITLE = "Title"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FieldKey(str, Enum):
    """The closed set of editable/searchable/exportable product fields."""

    ITEM_NAME = "itemName"
    PRODUCT_DESCRIPTION = "productDescription"
    MANUFACTURER = "manufacturer"
    TAG = "tag"
    SPEC_ID_NUMBER = "specIdNumber"
    PROJECT = "project"
    FINISH = "finish"
    SIZE = "size"
    PRICE = "price"
    DETAILS = "details"


# FieldKey -> Record attribute name
FIELD_ATTRS: Dict[FieldKey, str] = {
    FieldKey.ITEM_NAME: "item_name",
    FieldKey.PRODUCT_DESCRIPTION: "product_description",
    FieldKey.MANUFACTURER: "manufacturer",
    FieldKey.TAG: "tag",
    FieldKey.SPEC_ID_NUMBER: "spec_id_number",
    FieldKey.PROJECT: "project",
    FieldKey.FINISH: "finish",
    FieldKey.SIZE: "size",
    FieldKey.PRICE: "price",
    FieldKey.DETAILS: "details",
}

# Short labels for the field strip / citation panel
FIELD_LABELS: Dict[FieldKey, str] = {
    FieldKey.ITEM_NAME: "Name",
    FieldKey.PRODUCT_DESCRIPTION: "Description",
    FieldKey.MANUFACTURER: "Manufacturer",
    FieldKey.SPEC_ID_NUMBER: "Spec ID",
    FieldKey.TAG: "Tag",
    FieldKey.PROJECT: "Project",
    FieldKey.FINISH: "Finish",
    FieldKey.SIZE: "Size",
    FieldKey.PRICE: "Price",
    FieldKey.DETAILS: "Details",
}

DEFAULT_FIELD_KEY = FieldKey.ITEM_NAME

# Values that count as "nothing here" for generated-field detection
EMPTY_VALUES = ("", "N/A")


def field_label(key: str) -> str:
    try:
        return FIELD_LABELS[FieldKey(key)]
    except ValueError:
        return str(key)


class _Model(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class BoundingBox(_Model):
    """
    Page-relative rectangle, every coordinate a fraction of the page size.

    The model doesn't clamp: a box may run past the page edge. Display code
    clamps (see app.util.layout.clamp_bbox).
    """

    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0
    page: int = Field(default=1, ge=1)
    original_page: Optional[int] = None


def degenerate_bbox() -> BoundingBox:
    """Stand-in for citations that arrive without a bbox."""
    return BoundingBox(left=0, top=0, width=0, height=0, page=1)


class GranularConfidence(_Model):
    extract_confidence: Optional[float] = None
    parse_confidence: Optional[float] = None


class ParentBlock(_Model):
    """The table/section a citation was lifted from."""

    block_type: BlockType = BlockType.TEXT
    content: str = ""
    bounding_box: BoundingBox = Field(default_factory=degenerate_bbox)


class Citation(_Model):
    """
    Where a value came from.

    Fields I care about:
    - block_type: the layout block the text sits in (Table, Text, ...)
    - content: verbatim source text, may be empty
    - bounding_box: page + normalized rectangle, never missing
    - confidence: high / medium / low from the extraction backend
    """

    block_type: BlockType = BlockType.TEXT
    content: str = ""
    bounding_box: BoundingBox = Field(default_factory=degenerate_bbox)
    confidence: Confidence = Confidence.MEDIUM
    granular_confidence: Optional[GranularConfidence] = None
    parent_block: Optional[ParentBlock] = None

    @property
    def page(self) -> int:
        return self.bounding_box.page


class CitedField(_Model):
    """A value plus the citations backing it (primary source first)."""

    value: str = ""
    citations: List[Citation] = Field(default_factory=list)

    @property
    def bbox(self) -> BoundingBox:
        """Primary citation's box, or the degenerate box when there is none."""
        if self.citations:
            return self.citations[0].bounding_box
        return degenerate_bbox()


def citations_of(field: Optional[CitedField]) -> List[Citation]:
    """Never None: an absent field has no citations."""
    if field is None:
        return []
    return list(field.citations)


def is_generated(field: Optional[CitedField]) -> bool:
    """
    True for a real value with no source behind it (classifier output or a
    manual entry). Empty and "N/A" values are never "generated".
    """
    if field is None:
        return False
    return field.value not in EMPTY_VALUES and len(field.citations) == 0


class Record(_Model):
    """
    One extracted product.

    `id`, `document_id`, `document_type` and `created_at` are fixed at
    creation; the ten cited fields are replaced one at a time through the
    repository.
    """

    id: str
    document_id: str
    document_type: DocumentType = DocumentType.PURCHASE_ORDER

    item_name: CitedField = Field(default_factory=CitedField)
    product_description: CitedField = Field(default_factory=CitedField)
    manufacturer: CitedField = Field(default_factory=CitedField)
    tag: CitedField = Field(default_factory=CitedField)
    spec_id_number: CitedField = Field(default_factory=CitedField)
    project: CitedField = Field(default_factory=CitedField)
    finish: CitedField = Field(default_factory=CitedField)
    size: CitedField = Field(default_factory=CitedField)
    price: CitedField = Field(default_factory=CitedField)
    details: CitedField = Field(default_factory=CitedField)

    created_at: datetime = Field(default_factory=utcnow)

    def field(self, key: str) -> Optional[CitedField]:
        """Cited field for a FieldKey value ("itemName"), None for unknown keys."""
        try:
            attr = FIELD_ATTRS[FieldKey(key)]
        except ValueError:
            return None
        return getattr(self, attr)


class Document(_Model):
    """
    One uploaded PDF.

    - filename: the storage path returned by Storage.store
    - status: processing -> completed | error, never back
    - document_type: serialized as "type"
    """

    id: str
    filename: str
    upload_date: datetime = Field(default_factory=utcnow)
    status: DocumentStatus = DocumentStatus.PROCESSING
    document_type: DocumentType = Field(default=DocumentType.PURCHASE_ORDER, alias="type")
