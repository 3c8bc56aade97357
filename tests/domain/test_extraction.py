from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest

from leadbridge.domain.errors import ValidationError
from leadbridge.domain.extraction import (
    ADDRESS_SCHEMA,
    REGISTRATION_SCHEMA,
    parse_address,
    parse_registration_text,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from leadbridge.domain.extraction import ExtractionSchema


@dataclass
class ScriptedExtractor:
    answer: dict[str, object]
    seen: list[tuple[str, str]] = field(default_factory=list)

    async def extract(self, schema: ExtractionSchema, text: str) -> Mapping[str, object]:
        self.seen.append((schema.name, text))
        return self.answer


def test_parse_address_fills_missing_keys_with_empty_strings() -> None:
    extractor = ScriptedExtractor({"street": "Main 1", "city": "Berlin", "postalCode": 10115})

    parsed = asyncio.run(parse_address(extractor, "  Main 1, 10115 Berlin "))

    assert parsed == {
        "street": "Main 1",
        "city": "Berlin",
        "postalCode": "10115",
        "country": "",
        "federalState": "",
    }
    assert extractor.seen == [("address", "Main 1, 10115 Berlin")]


def test_parse_registration_reports_postal_code_as_zip_code() -> None:
    extractor = ScriptedExtractor(
        {"companyName": "Acme GmbH", "postalCode": "10115", "unexpected": "ignored"}
    )

    parsed = asyncio.run(parse_registration_text(extractor, "Acme GmbH ..."))

    assert parsed["companyName"] == "Acme GmbH"
    assert parsed["zipCode"] == "10115"
    assert "postalCode" not in parsed
    assert "unexpected" not in parsed
    assert set(parsed) == set(REGISTRATION_SCHEMA.fields.values())


@pytest.mark.parametrize("text", [None, "", "  \n "])
def test_blank_text_is_rejected_without_calling_the_extractor(text: str | None) -> None:
    extractor = ScriptedExtractor({})

    with pytest.raises(ValidationError):
        asyncio.run(parse_address(extractor, text))

    assert extractor.seen == []


def test_address_schema_asks_for_english_country_names() -> None:
    assert "English" in ADDRESS_SCHEMA.instructions
    assert ADDRESS_SCHEMA.prompt_prefix
