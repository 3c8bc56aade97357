"""Free text to structured wizard fields, via a pluggable text extractor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(slots=True, frozen=True)
class ExtractionSchema:
    """Instructions plus the output keys expected back from the extractor.

    ``fields`` maps each key the extractor returns to the key reported to callers.
    """

    name: str
    instructions: str
    fields: Mapping[str, str]
    prompt_prefix: str = ""


@runtime_checkable
class TextExtractor(Protocol):
    async def extract(self, schema: ExtractionSchema, text: str) -> Mapping[str, object]: ...


ADDRESS_SCHEMA = ExtractionSchema(
    name="address",
    instructions=(
        "You are an address parsing assistant. Parse the given address text and extract "
        "structured address information. Return ONLY a valid JSON object with the fields "
        "street (street name and house number), city, postalCode, country (country name "
        "in English) and federalState (state/province, optional). If a field cannot be "
        "determined, use an empty string."
    ),
    fields={
        "street": "street",
        "city": "city",
        "postalCode": "postalCode",
        "country": "country",
        "federalState": "federalState",
    },
    prompt_prefix="Parse this address: ",
)

REGISTRATION_SCHEMA = ExtractionSchema(
    name="registration",
    instructions=(
        "You are an expert at extracting company information from business registration "
        "documents. Return ONLY a valid JSON object with the string fields companyName, "
        "vatIdentificationNumber (USt-IdNr, Umsatzsteuer-ID), taxIdNumber (Steuernummer, "
        "St.-Nr.), restaurantCount, street, city, postalCode (PLZ), country (in English), "
        "federalState (Bundesland), businessName (Geschaeftsbezeichnung), ownerDirector "
        "(Inhaber, Geschaeftsfuehrer, Managing Director), ownerEmail and ownerTelephone. "
        "If a field cannot be found in the document, use an empty string."
    ),
    fields={
        "companyName": "companyName",
        "vatIdentificationNumber": "vatIdentificationNumber",
        "taxIdNumber": "taxIdNumber",
        "restaurantCount": "restaurantCount",
        "street": "street",
        "city": "city",
        "postalCode": "zipCode",
        "country": "country",
        "federalState": "federalState",
        "businessName": "businessName",
        "ownerDirector": "ownerDirector",
        "ownerEmail": "ownerEmail",
        "ownerTelephone": "ownerTelephone",
    },
    prompt_prefix="Extract company information from this business registration document:\n\n",
)


def _project(schema: ExtractionSchema, raw: Mapping[str, object]) -> dict[str, str]:
    result: dict[str, str] = {}
    for source, target in schema.fields.items():
        value = raw.get(source)
        result[target] = str(value).strip() if value not in (None, "") else ""
    return result


async def _extract(
    extractor: TextExtractor, schema: ExtractionSchema, text: str | None
) -> dict[str, str]:
    if not text or not text.strip():
        raise ValidationError(f"Text for {schema.name} extraction is required", field="text")
    raw = await extractor.extract(schema, text.strip())
    return _project(schema, raw)


async def parse_address(extractor: TextExtractor, text: str | None) -> dict[str, str]:
    return await _extract(extractor, ADDRESS_SCHEMA, text)


async def parse_registration_text(extractor: TextExtractor, text: str | None) -> dict[str, str]:
    """Company details found in the text of a registration document."""

    return await _extract(extractor, REGISTRATION_SCHEMA, text)


__all__ = [
    "ADDRESS_SCHEMA",
    "REGISTRATION_SCHEMA",
    "ExtractionSchema",
    "TextExtractor",
    "parse_address",
    "parse_registration_text",
]
