"""
Unit tests for the MasterFormat classification fallback.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.config import Settings
from app.models.schemas import is_generated
from app.services.classify import (
    OpenAIClassifier,
    backfill_classification,
    build_prompt,
    is_missing_spec_id,
    normalize_spec_code,
)
from app.util.exceptions import ClassificationError, ConfigurationError
from extraction.patterns import DEFAULT_MASTERFORMAT_SCOPE
from tests.factories import StubClassifier, make_field, make_record


class TestNormalizeSpecCode:
    """Test the normalize_spec_code function."""

    @pytest.mark.parametrize("raw, expected", [
        ("09 51 00", "09 51 00"),
        ("095100", "09 51 00"),
        ("09.51.00", "09 51 00"),
        ("Section 12 24 00 - Window Shades", "12 24 00"),
        ("N/A", "N/A"),
        ("", "N/A"),
        (None, "N/A"),
        ("9 51", "N/A"),
    ])
    def test_normalize(self, raw, expected):
        """Anything that isn't three 2-digit groups becomes N/A."""
        assert normalize_spec_code(raw) == expected


class TestIsMissingSpecId:
    """Test the is_missing_spec_id function."""

    def test_missing_values(self):
        """Empty and N/A (any case, padded) count as missing."""
        for value in ("", "  ", "N/A", "n/a", " N/a "):
            assert is_missing_spec_id(value)

    def test_present_value(self):
        """A real code is not missing."""
        assert not is_missing_spec_id("09 51 00")


class TestBackfill:
    """Test the backfill_classification function."""

    @pytest.mark.asyncio
    async def test_fills_missing_with_no_citations(self):
        """Backfilled code has no citations, so it reads as generated."""
        record = make_record(itemName=make_field("Acoustic Ceiling Tile", pages=[2]), specIdNumber="N/A")
        [filled] = await backfill_classification([record], StubClassifier("09 51 00"))
        assert filled.spec_id_number.value == "09 51 00"
        assert filled.spec_id_number.citations == []
        assert is_generated(filled.spec_id_number)
        assert filled.item_name == record.item_name

    @pytest.mark.asyncio
    async def test_idempotent(self):
        """A second run leaves an already-filled record alone."""
        classifier = StubClassifier("09 51 00")
        first = await backfill_classification([make_record(itemName="Ceiling Tile")], classifier)
        second = await backfill_classification(first, classifier)
        assert second[0] == first[0]
        assert second[0].spec_id_number.value == "09 51 00"
        assert classifier.calls == ["Ceiling Tile"]

    @pytest.mark.asyncio
    async def test_existing_code_untouched(self):
        """Records that already carry a spec ID aren't classified."""
        classifier = StubClassifier()
        record = make_record(itemName="Desk", specIdNumber=make_field("12 50 00", pages=[1]))
        [out] = await backfill_classification([record], classifier)
        assert out is record
        assert classifier.calls == []

    @pytest.mark.asyncio
    async def test_nothing_to_classify_from(self):
        """No name and no description -> skipped."""
        classifier = StubClassifier()
        [out] = await backfill_classification([make_record(manufacturer="Acme")], classifier)
        assert out.spec_id_number.value == ""
        assert classifier.calls == []

    @pytest.mark.asyncio
    async def test_description_alone_is_enough(self):
        """A description without a name still gets classified."""
        classifier = StubClassifier("12 24 00")
        [out] = await backfill_classification([make_record(productDescription="Roller shade")], classifier)
        assert out.spec_id_number.value == "12 24 00"

    @pytest.mark.asyncio
    async def test_na_result_leaves_record(self):
        """Classifier saying N/A changes nothing."""
        record = make_record(itemName="Mystery Item")
        [out] = await backfill_classification([record], StubClassifier("N/A"))
        assert out is record

    @pytest.mark.asyncio
    async def test_failure_is_per_record(self):
        """One failing call doesn't stop the others."""
        classifier = StubClassifier("22 40 00", fail_for={"Sink"})
        records = [
            make_record("prod-1", itemName="Faucet"),
            make_record("prod-2", itemName="Sink"),
            make_record("prod-3", itemName="Toilet"),
        ]
        out = await backfill_classification(records, classifier)
        assert [r.id for r in out] == ["prod-1", "prod-2", "prod-3"]
        assert out[0].spec_id_number.value == "22 40 00"
        assert out[1] is records[1]
        assert out[2].spec_id_number.value == "22 40 00"


class TestOpenAIClassifier:
    """Test the OpenAI client wrapper."""

    def _client(self, content):
        client = MagicMock()
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
        client.chat.completions.create = AsyncMock(return_value=response)
        return client

    def test_missing_key_is_configuration_error(self):
        """No key -> error only when the classifier is built."""
        with pytest.raises(ConfigurationError):
            OpenAIClassifier.from_settings(Settings(openai_api_key=None, _env_file=None))

    @pytest.mark.asyncio
    async def test_request_shape_and_normalization(self):
        """Deterministic, short request; reply normalized."""
        client = self._client(" 09.51.00\n")
        classifier = OpenAIClassifier(client, model="gpt-4o-mini")
        code = await classifier.classify("Ceiling Tile", "2x2 lay-in", "Armstrong")
        assert code == "09 51 00"

        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0
        assert kwargs["max_tokens"] == 15
        prompt = kwargs["messages"][0]["content"]
        assert "Ceiling Tile" in prompt
        assert DEFAULT_MASTERFORMAT_SCOPE[0] in prompt

    @pytest.mark.asyncio
    async def test_empty_reply_is_na(self):
        """No content -> N/A."""
        classifier = OpenAIClassifier(self._client(None))
        assert await classifier.classify("x", "", "") == "N/A"

    @pytest.mark.asyncio
    async def test_api_failure_raised(self):
        """Transport errors surface as ClassificationError."""
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=TimeoutError("slow"))
        with pytest.raises(ClassificationError):
            await OpenAIClassifier(client).classify("x", "", "")

    def test_custom_scope_in_prompt(self):
        """allowed_sections replaces the default scope."""
        prompt = build_prompt("Desk", "", "", ["Division 12 - Furnishings"])
        assert "Division 12 - Furnishings" in prompt
        assert DEFAULT_MASTERFORMAT_SCOPE[0] not in prompt
