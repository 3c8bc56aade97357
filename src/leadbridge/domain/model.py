"""Wizard state accumulated by the onboarding front end.

These types describe what the caller submitted. A field left as ``None`` was not
provided and must not overwrite anything already stored remotely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

# Wizard document category -> primary record field holding its JSON file list.
DOCUMENT_FILE_FIELDS: Final[dict[str, str]] = {
    "businessRegistrationFiles": "custom_business_registration_files",
    "idFiles": "custom_id_files",
    "shareholdersFiles": "custom_shareholders_files",
    "registerExtractFiles": "custom_register_extract_files",
    "hrExtractFiles": "custom_hr_extract_files",
}


@dataclass(slots=True, frozen=True, kw_only=True)
class PostalAddress:
    street: str | None = None
    city: str | None = None
    zip_code: str | None = None
    federal_state: str | None = None
    country: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class ContactPerson:
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None

    @classmethod
    def from_full_name(
        cls,
        full_name: str | None,
        *,
        email: str | None = None,
        phone: str | None = None,
    ) -> ContactPerson:
        first, _, last = (full_name or "").strip().partition(" ")
        return cls(
            first_name=first or None,
            last_name=last.strip() or None,
            email=email,
            phone=phone,
        )

    @property
    def has_identity(self) -> bool:
        return bool(self.first_name or self.last_name or self.email)

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email or ""


@dataclass(slots=True, frozen=True, kw_only=True)
class CompanyInfo:
    company_name: str | None = None
    address: PostalAddress = field(default_factory=PostalAddress)
    vat_identification_number: str | None = None
    tax_id_number: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class BusinessEntry:
    """One physical business location; matched to its shop address by name."""

    business_name: str | None = None
    address: PostalAddress = field(default_factory=PostalAddress)
    owner: ContactPerson | None = None
    contact_person: ContactPerson | None = None
    has_distinct_contact: bool = False
    raw: dict[str, object] = field(default_factory=dict)

    @property
    def identity(self) -> str | None:
        return self.business_name or self.address.street

    def contact_identity(self) -> ContactPerson | None:
        if self.has_distinct_contact and self.contact_person and self.contact_person.has_identity:
            return self.contact_person
        if self.owner and self.owner.has_identity:
            return self.owner
        return None


@dataclass(slots=True, frozen=True, kw_only=True)
class PaymentInfo:
    account_holder: str | None = None
    iban: str | None = None
    bic: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class Documents:
    type_of_company: str | None = None
    files: dict[str, list[object]] = field(default_factory=dict)
    is_completed: bool = False


@dataclass(slots=True, frozen=True, kw_only=True)
class Upload:
    """Raw bytes submitted for one document category."""

    category: str
    filename: str
    content: bytes
    content_type: str | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class WizardSubmission:
    email: str | None
    company: CompanyInfo | None = None
    businesses: tuple[BusinessEntry, ...] | None = None
    payment: PaymentInfo | None = None
    documents: Documents | None = None
    services: tuple[str, ...] | None = None
