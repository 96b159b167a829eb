"""
Test factories: frozen model builders and fake backends.

- make_citation / make_field / make_record build model instances
  without repeating every field.
- raw_product builds one product the way the extraction backend returns it.
- FakeBackend / StubClassifier stand in for Reducto and OpenAI.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from app.models.schemas import (
    FIELD_ATTRS,
    BlockType,
    BoundingBox,
    Citation,
    CitedField,
    Confidence,
    DocumentType,
    FieldKey,
    Record,
)

def make_citation(
    page: int = 1,
    content: str = "",
    block_type: BlockType = BlockType.TABLE,
    confidence: Confidence = Confidence.HIGH,
    left: float = 0.1,
    top: float = 0.2,
    width: float = 0.3,
    height: float = 0.05,
) -> Citation:
    return Citation(
        block_type=block_type,
        content=content,
        bounding_box=BoundingBox(left=left, top=top, width=width, height=height, page=page),
        confidence=confidence,
    )

def make_field(value: str = "", pages: Iterable[int] = ()) -> CitedField:
    """CitedField with one citation per page listed (in that order)."""
    return CitedField(value=value, citations=[make_citation(page=p, content=value) for p in pages])

def make_record(
    record_id: str = "prod-1",
    document_id: str = "doc-1",
    **fields: Union[str, CitedField],
) -> Record:
    """
    Record from keyword fields; keys are FieldKey values or attribute names.
    Plain strings become uncited fields.
    """
    data: Dict[str, Any] = {"id": record_id, "document_id": document_id}
    for key, value in fields.items():
        attr = FIELD_ATTRS[FieldKey(key)] if key in {k.value for k in FieldKey} else key
        data[attr] = value if isinstance(value, CitedField) else CitedField(value=value)
    return Record(**data)

def raw_citation(page: int = 1, content: str = "", block_type: str = "Table", with_bbox: bool = True) -> Dict[str, Any]:
    citation: Dict[str, Any] = {"type": block_type, "content": content, "confidence": "high"}
    if with_bbox:
        citation["bbox"] = {"left": 0.1, "top": 0.2, "width": 0.3, "height": 0.04, "page": page}
    return citation

def raw_product(name: str, page: int = 1, **values: str) -> Dict[str, Any]:
    """One backend product: itemName cited on `page`, other fields uncited."""
    product: Dict[str, Any] = {
        "itemName": {"value": name, "citations": [raw_citation(page=page, content=name)]},
    }
    for key, value in values.items():
        product[key] = {"value": value, "citations": []}
    return product

class FakeBackend:
    """Extraction backend returning a canned response (or raising)."""

    def __init__(self, response: Any = None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def extract(self, filename: str, data: bytes, schema: Dict[str, Any], system_prompt: str) -> Any:
        self.calls.append({"filename": filename, "schema": schema, "system_prompt": system_prompt})
        if self.error is not None:
            raise self.error
        return self.response

class StubClassifier:
    """Returns one fixed code; raises for item names listed in `fail_for`."""

    def __init__(self, code: str = "09 51 00", fail_for: Iterable[str] = ()):
        self.code = code
        self.fail_for = set(fail_for)
        self.calls: List[str] = []

    async def classify(self, item_name, description, manufacturer, allowed_sections=None) -> str:
        self.calls.append(item_name)
        if item_name in self.fail_for:
            raise RuntimeError(f"classifier down for {item_name}")
        return self.code

