"""
MasterFormat classification fallback.

- OpenAIClassifier.classify(name, description, manufacturer, allowed) asks a
  small chat model for one section number; whatever comes back is normalized
  to "DD SS ss" or "N/A".
- backfill_classification(records, classifier) fills in spec IDs only where
  they're missing ("" / "N/A", any case, trimmed) and there's a name or
  description to classify from. All calls run concurrently. A backfilled
  value gets no citations, which is what marks it as generated.

A failure on one record leaves that record as it was; the rest still run.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Protocol, Sequence

from openai import AsyncOpenAI

from app.config import Settings, get_settings
from app.models.schemas import CitedField, Record
from app.util.exceptions import ClassificationError, ConfigurationError
from app.util.logger import get_logger
from extraction.patterns import DEFAULT_MASTERFORMAT_SCOPE, NOT_AVAILABLE, SPEC_CODE_PAT


class Classifier(Protocol):
    async def classify(
        self,
        item_name: str,
        description: str,
        manufacturer: str,
        allowed_sections: Optional[Sequence[str]] = None,
    ) -> str:
        ...


def normalize_spec_code(raw: Optional[str]) -> str:
    """'09.51.00' / '095100' / 'Section 09 51 00' -> '09 51 00'; anything else -> 'N/A'."""
    m = SPEC_CODE_PAT.search(raw or "")
    if not m:
        return NOT_AVAILABLE
    return f"{m.group(1)} {m.group(2)} {m.group(3)}"


def is_missing_spec_id(value: Optional[str]) -> bool:
    normalized = (value or "").strip().lower()
    return normalized in ("", NOT_AVAILABLE.lower())


def build_prompt(item_name: str, description: str, manufacturer: str, allowed_sections: Sequence[str]) -> str:
    sections = "\n".join(allowed_sections)
    return (
        "Classify this product into a CSI MasterFormat section number.\n\n"
        f"Product: {item_name}\n"
        f"Description: {description}\n"
        f"Manufacturer: {manufacturer}\n\n"
        f"Allowed MasterFormat scope (classify ONLY within these):\n{sections}\n\n"
        'If the product does not fit any allowed section, return "N/A".\n'
        'Return ONLY the section number (e.g., "09 51 00") or "N/A". No explanation.'
    )


class OpenAIClassifier:
    """Chat-completion classifier; temperature 0, a handful of tokens."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini"):
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "OpenAIClassifier":
        settings = settings or get_settings()
        if not settings.openai_api_key:
            raise ConfigurationError("OpenAI API key not found. Set OPENAI_API_KEY in your .env file.")
        return cls(AsyncOpenAI(api_key=settings.openai_api_key), model=settings.openai_model)

    async def classify(
        self,
        item_name: str,
        description: str,
        manufacturer: str,
        allowed_sections: Optional[Sequence[str]] = None,
    ) -> str:
        prompt = build_prompt(item_name, description, manufacturer, allowed_sections or DEFAULT_MASTERFORMAT_SCOPE)
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=15,
                temperature=0,
            )
        except Exception as e:
            raise ClassificationError(f"Classification request failed: {e}", original_error=e) from e

        raw = ""
        if response.choices and response.choices[0].message.content:
            raw = response.choices[0].message.content.strip()
        return normalize_spec_code(raw)


async def _backfill_one(
    record: Record, classifier: Classifier, allowed_sections: Optional[Sequence[str]]
) -> Record:
    logger = get_logger("classify")
    if not is_missing_spec_id(record.spec_id_number.value):
        return record

    item_name = record.item_name.value
    description = record.product_description.value
    if not item_name and not description:
        return record

    try:
        code = await classifier.classify(item_name, description, record.manufacturer.value, allowed_sections)
    except Exception as e:
        logger.warning(f"Spec ID classification failed for {record.id} ({item_name!r}): {e}")
        return record

    code = normalize_spec_code(code)
    if is_missing_spec_id(code):
        return record
    return record.model_copy(update={"spec_id_number": CitedField(value=code, citations=[])})


async def backfill_classification(
    records: Sequence[Record],
    classifier: Classifier,
    allowed_sections: Optional[Sequence[str]] = None,
) -> List[Record]:
    """Same records, same order, with missing spec IDs filled where possible."""
    results = await asyncio.gather(*(_backfill_one(r, classifier, allowed_sections) for r in records))
    filled = sum(1 for before, after in zip(records, results) if before is not after)
    get_logger("classify").info(f"Backfilled spec IDs on {filled} of {len(records)} records")
    return list(results)
