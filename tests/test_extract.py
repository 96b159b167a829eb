"""
Unit tests for the extraction adapter.

The backend is always faked; these tests pin how raw responses become
Records (citations, bbox fallbacks, async-job handling, registry lookup).
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.config import Settings
from app.models.schemas import BlockType, Confidence, DocumentType
from app.services.extract import (
    EXTRACT_SETTINGS,
    ReductoBackend,
    extract_records,
    map_products_to_records,
    normalize_block_type,
    normalize_confidence,
    parse_bbox,
    parse_cited_field,
    unwrap_products,
)
from app.util.exceptions import AsyncJobResponseError, ConfigurationError, ExtractionError
from extraction.prompts import (
    EXTRACTION_CONFIGS,
    PURCHASE_ORDER_CONFIG,
    SPECIFICATION_CONFIG,
    get_extraction_config,
    schema_field_keys,
)
from tests.factories import FakeBackend, raw_citation, raw_product


class TestUnwrapProducts:
    """Test the unwrap_products function."""

    def test_dict_result(self):
        """{"result": {"products": [...]}} yields the list."""
        response = {"result": {"products": [raw_product("Desk")]}}
        assert len(unwrap_products(response)) == 1

    def test_array_chunks_concatenated(self):
        """Array extraction chunks are joined in order."""
        response = {"result": [
            {"products": [raw_product("A")]},
            {"products": [raw_product("B"), raw_product("C")]},
        ]}
        names = [p["itemName"]["value"] for p in unwrap_products(response)]
        assert names == ["A", "B", "C"]

    def test_missing_products_is_empty(self):
        """No products array -> [] (logged, not raised)."""
        assert unwrap_products({"result": {"items": []}}) == []

    def test_async_job_handle_raises(self):
        """A bare job_id is an async job, which we refuse."""
        with pytest.raises(AsyncJobResponseError, match="synchronous extraction required"):
            unwrap_products({"job_id": "job-123"})

    def test_async_job_is_extraction_error(self):
        """Callers catching ExtractionError also catch async-job failures."""
        with pytest.raises(ExtractionError):
            unwrap_products({"job_id": "job-123"})

    def test_non_mapping_raises(self):
        """Garbage response is a hard error."""
        with pytest.raises(ExtractionError):
            unwrap_products("not json")

    def test_sdk_objects_are_dumped(self):
        """Objects exposing model_dump() are read like dicts."""
        response = MagicMock()
        response.model_dump.return_value = {"result": {"products": [raw_product("Desk")]}}
        assert unwrap_products(response)[0]["itemName"]["value"] == "Desk"


class TestCitationParsing:
    """Test bbox/citation/field normalization."""

    def test_missing_bbox_is_degenerate(self):
        """No bbox -> {0,0,0,0,page 1}."""
        box = parse_bbox(None)
        assert (box.left, box.top, box.width, box.height, box.page) == (0, 0, 0, 0, 1)

    def test_bbox_page_floor(self):
        """Page 0 from the backend still yields a valid 1-based page."""
        assert parse_bbox({"left": 0.1, "page": 0}).page == 1

    def test_original_page_kept(self):
        """original_page is carried through."""
        assert parse_bbox({"page": 2, "original_page": 7}).original_page == 7

    def test_block_type_normalization(self):
        """Spaced / cased labels map onto BlockType; unknown -> Text."""
        assert normalize_block_type("List Item") == BlockType.LIST_ITEM
        assert normalize_block_type("Section Header") == BlockType.SECTION_HEADER
        assert normalize_block_type("table") == BlockType.TABLE
        assert normalize_block_type("Footnote") == BlockType.TEXT
        assert normalize_block_type(None) == BlockType.TEXT

    def test_confidence_normalization(self):
        """Known levels pass through; anything else is medium."""
        assert normalize_confidence("HIGH") == Confidence.HIGH
        assert normalize_confidence(0.93) == Confidence.MEDIUM

    def test_cited_field_without_bbox(self):
        """A citation missing its bbox is kept with the degenerate box."""
        field = parse_cited_field({"value": "Acme", "citations": [raw_citation(with_bbox=False)]})
        assert field.value == "Acme"
        assert field.citations[0].bounding_box.page == 1

    def test_cited_field_defaults(self):
        """Missing value/citations default to "" / []."""
        field = parse_cited_field({})
        assert field.value == ""
        assert field.citations == []

    def test_scalar_field(self):
        """A bare scalar is an uncited value."""
        assert parse_cited_field(12).value == "12"

    def test_granular_confidence_and_parent(self):
        """Numerical confidence and parent block survive mapping."""
        raw = raw_citation(page=3)
        raw["granular_confidence"] = {"extract_confidence": 0.91, "parse_confidence": 0.88}
        raw["parentBlock"] = {"type": "Table", "content": "row", "bbox": {"page": 3}}
        citation = parse_cited_field({"value": "x", "citations": [raw]}).citations[0]
        assert citation.granular_confidence.extract_confidence == 0.91
        assert citation.parent_block.bounding_box.page == 3


class TestMapProducts:
    """Test the map_products_to_records function."""

    def test_records_stamped(self):
        """Every record gets a fresh id plus document id/type."""
        keys = schema_field_keys(PURCHASE_ORDER_CONFIG.schema)
        records = map_products_to_records(
            [raw_product("Desk", page=2), raw_product("Chair", page=4)],
            keys, "doc-9", DocumentType.SUBMITTAL,
        )
        assert [r.item_name.value for r in records] == ["Desk", "Chair"]
        assert {r.document_id for r in records} == {"doc-9"}
        assert {r.document_type for r in records} == {DocumentType.SUBMITTAL}
        assert len({r.id for r in records}) == 2
        assert records[1].item_name.citations[0].page == 4

    def test_absent_fields_default_empty(self):
        """Fields the backend skipped are empty and uncited."""
        keys = schema_field_keys(PURCHASE_ORDER_CONFIG.schema)
        record = map_products_to_records([raw_product("Desk")], keys, "doc-1", DocumentType.PURCHASE_ORDER)[0]
        assert record.price.value == ""
        assert record.price.citations == []

    def test_non_object_products_skipped(self):
        """A stray string in the array is skipped."""
        keys = schema_field_keys(PURCHASE_ORDER_CONFIG.schema)
        records = map_products_to_records(["oops", raw_product("Desk")], keys, "doc-1", DocumentType.PURCHASE_ORDER)
        assert len(records) == 1


class TestExtractionRegistry:
    """Test the document type -> schema/prompt table."""

    def test_every_type_has_an_entry(self):
        """The mapping is closed over DocumentType."""
        assert set(EXTRACTION_CONFIGS) == set(DocumentType)

    def test_placeholder_types_use_purchase_order(self):
        """drawing / rfi / submittal carry the purchase-order pair."""
        for doc_type in (DocumentType.DRAWING, DocumentType.RFI, DocumentType.SUBMITTAL):
            assert get_extraction_config(doc_type) is PURCHASE_ORDER_CONFIG

    def test_specification_has_its_own(self):
        """Specification sections get their own prompt."""
        assert get_extraction_config("specification") is SPECIFICATION_CONFIG

    def test_unknown_type_falls_back(self):
        """Unknown type strings fall back to the default pair."""
        assert get_extraction_config("invoice") is PURCHASE_ORDER_CONFIG

    def test_schema_wraps_products(self):
        """Every schema requires a products array."""
        for config in EXTRACTION_CONFIGS.values():
            assert config.schema["required"] == ["products"]
            assert config.schema["properties"]["products"]["type"] == "array"


class TestExtractRecords:
    """Test the extract_records entry point."""

    @pytest.mark.asyncio
    async def test_happy_path(self):
        """Backend called once with the type's schema/prompt; records mapped."""
        backend = FakeBackend({"result": {"products": [raw_product("Desk", page=2)]}})
        records = await extract_records(backend, ("po.pdf", b"%PDF"), DocumentType.SPECIFICATION, "doc-1")
        assert len(backend.calls) == 1
        assert backend.calls[0]["system_prompt"] == SPECIFICATION_CONFIG.prompt
        assert records[0].item_name.citations[0].page == 2

    @pytest.mark.asyncio
    async def test_zero_products(self):
        """A successful response with no products gives []."""
        backend = FakeBackend({"result": {"products": []}})
        assert await extract_records(backend, ("po.pdf", b""), DocumentType.PURCHASE_ORDER, "doc-1") == []

    @pytest.mark.asyncio
    async def test_backend_error_wrapped(self):
        """Network-ish failures surface as ExtractionError with the cause attached."""
        cause = ConnectionError("reset")
        backend = FakeBackend(error=cause)
        with pytest.raises(ExtractionError) as exc_info:
            await extract_records(backend, ("po.pdf", b""), DocumentType.PURCHASE_ORDER, "doc-1")
        assert exc_info.value.original_error is cause

    @pytest.mark.asyncio
    async def test_async_job_propagates(self):
        """The async-job error is not re-wrapped."""
        backend = FakeBackend({"job_id": "job-1"})
        with pytest.raises(AsyncJobResponseError):
            await extract_records(backend, ("po.pdf", b""), DocumentType.PURCHASE_ORDER, "doc-1")

    @pytest.mark.asyncio
    async def test_unknown_document_type(self):
        """An unknown type string is an ExtractionError and the backend is never called."""
        backend = FakeBackend({"result": {"products": []}})
        with pytest.raises(ExtractionError, match="Unknown document type 'invoice'") as exc_info:
            await extract_records(backend, ("po.pdf", b""), "invoice", "doc-1")
        assert isinstance(exc_info.value.original_error, ValueError)
        assert backend.calls == []


class TestReductoBackend:
    """Test the Reducto client wrapper."""

    def test_missing_key_is_configuration_error(self):
        """Building without a key fails at construction, not import."""
        with pytest.raises(ConfigurationError):
            ReductoBackend.from_settings(Settings(reducto_api_key=None, _env_file=None))

    @pytest.mark.asyncio
    async def test_upload_then_extract(self):
        """Upload result is fed to extract.run with citations enabled."""
        client = MagicMock()
        client.upload = AsyncMock(return_value="reducto://upload-1")
        client.extract.run = AsyncMock(return_value={"result": {"products": []}})

        backend = ReductoBackend(client)
        result = await backend.extract("po.pdf", b"%PDF", {"type": "object"}, "prompt")

        client.upload.assert_awaited_once_with(file=("po.pdf", b"%PDF"))
        kwargs = client.extract.run.await_args.kwargs
        assert kwargs["input"] == "reducto://upload-1"
        assert kwargs["instructions"] == {"schema": {"type": "object"}, "system_prompt": "prompt"}
        assert kwargs["settings"] == EXTRACT_SETTINGS
        assert kwargs["settings"]["citations"]["enabled"] is True
        assert result == {"result": {"products": []}}
