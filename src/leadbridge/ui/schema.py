"""Pydantic models for the wizard's inbound JSON and their domain translation."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from leadbridge.domain.model import (
    DOCUMENT_FILE_FIELDS,
    BusinessEntry,
    CompanyInfo,
    ContactPerson,
    Documents,
    PaymentInfo,
    PostalAddress,
    WizardSubmission,
)


class WizardModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class AddressModel(WizardModel):
    street: str | None = None
    city: str | None = None
    zip_code: str | None = Field(
        default=None, validation_alias=AliasChoices("zipCode", "postalCode", "zip_code")
    )
    federal_state: str | None = Field(
        default=None, validation_alias=AliasChoices("federalState", "state", "federal_state")
    )
    country: str | None = None

    def to_domain_address(self) -> PostalAddress:
        return PostalAddress(
            street=self.street,
            city=self.city,
            zip_code=self.zip_code,
            federal_state=self.federal_state,
            country=self.country,
        )


class CompanyInfoModel(AddressModel):
    company_name: str | None = Field(
        default=None, validation_alias=AliasChoices("companyName", "company_name")
    )
    vat_identification_number: str | None = Field(
        default=None,
        validation_alias=AliasChoices("vatIdentificationNumber", "vat_identification_number"),
    )
    tax_id_number: str | None = Field(
        default=None, validation_alias=AliasChoices("taxIdNumber", "tax_id_number")
    )

    def to_domain(self) -> CompanyInfo:
        return CompanyInfo(
            company_name=self.company_name,
            address=self.to_domain_address(),
            vat_identification_number=self.vat_identification_number,
            tax_id_number=self.tax_id_number,
        )


class BusinessModel(AddressModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    business_name: str | None = Field(
        default=None, validation_alias=AliasChoices("businessName", "business_name")
    )
    owner_director: str | None = Field(
        default=None, validation_alias=AliasChoices("ownerDirector", "owner_director")
    )
    owner_email: str | None = Field(
        default=None, validation_alias=AliasChoices("ownerEmail", "owner_email")
    )
    owner_telephone: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ownerTelephone", "ownerPhone", "owner_telephone"),
    )
    different_contact_person: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "differentContactPerson", "hasDifferentContactPerson", "different_contact_person"
        ),
    )
    contact_person: str | None = Field(
        default=None,
        validation_alias=AliasChoices("contactPerson", "contactPersonName", "contact_person"),
    )
    contact_person_email: str | None = Field(
        default=None, validation_alias=AliasChoices("contactPersonEmail", "contact_person_email")
    )
    contact_person_telephone: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "contactPersonTelephone", "contactPersonPhone", "contact_person_telephone"
        ),
    )

    @field_validator("different_contact_person", mode="before")
    @classmethod
    def _flag(cls, value: object) -> object:
        return False if value is None else value

    def to_domain(self, raw: dict[str, object]) -> BusinessEntry:
        owner = None
        if self.owner_director or self.owner_email:
            owner = ContactPerson.from_full_name(
                self.owner_director, email=self.owner_email, phone=self.owner_telephone
            )
        contact = None
        if self.contact_person or self.contact_person_email:
            contact = ContactPerson.from_full_name(
                self.contact_person,
                email=self.contact_person_email,
                phone=self.contact_person_telephone,
            )
        return BusinessEntry(
            business_name=self.business_name,
            address=self.to_domain_address(),
            owner=owner,
            contact_person=contact,
            has_distinct_contact=self.different_contact_person,
            raw=raw,
        )


class PaymentInfoModel(WizardModel):
    account_holder: str | None = Field(
        default=None, validation_alias=AliasChoices("accountHolder", "account_holder")
    )
    iban: str | None = None
    bic: str | None = None

    def to_domain(self) -> PaymentInfo:
        return PaymentInfo(account_holder=self.account_holder, iban=self.iban, bic=self.bic)


class DocumentsModel(WizardModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type_of_company: str | None = Field(
        default=None, validation_alias=AliasChoices("typeOfCompany", "type_of_company")
    )
    is_completed: bool = Field(
        default=False, validation_alias=AliasChoices("isCompleted", "is_completed")
    )

    @field_validator("is_completed", mode="before")
    @classmethod
    def _flag(cls, value: object) -> object:
        return False if value is None else value

    def to_domain(self) -> Documents:
        extra = self.model_extra or {}
        files: dict[str, list[object]] = {}
        for category in DOCUMENT_FILE_FIELDS:
            value = extra.get(category)
            if isinstance(value, list):
                files[category] = list(value)
        return Documents(
            type_of_company=self.type_of_company,
            files=files,
            is_completed=self.is_completed,
        )


class LeadSubmissionModel(WizardModel):
    email: str | None = None
    company_info: CompanyInfoModel | None = Field(
        default=None, validation_alias=AliasChoices("companyInfo", "company_info")
    )
    businesses: list[dict[str, object]] | None = None
    payment_info: PaymentInfoModel | None = Field(
        default=None, validation_alias=AliasChoices("paymentInfo", "payment_info")
    )
    documents: DocumentsModel | None = None
    services: list[str] | None = None

    def to_domain(self) -> WizardSubmission:
        businesses = None
        if self.businesses is not None:
            businesses = tuple(
                BusinessModel.model_validate(raw).to_domain(raw) for raw in self.businesses
            )
        services = None
        if self.services is not None:
            services = tuple(service.strip() for service in self.services if service.strip())
        return WizardSubmission(
            email=self.email,
            company=self.company_info.to_domain() if self.company_info else None,
            businesses=businesses,
            payment=self.payment_info.to_domain() if self.payment_info else None,
            documents=self.documents.to_domain() if self.documents else None,
            services=services,
        )


class EmailRequest(WizardModel):
    email: str | None = None


class ReferenceRequest(WizardModel):
    reference: str | None = Field(
        default=None, validation_alias=AliasChoices("reference", "salesPerson", "value")
    )


class AddressTextRequest(WizardModel):
    address_text: str | None = Field(
        default=None, validation_alias=AliasChoices("addressText", "address_text", "text")
    )


class RegistrationTextRequest(WizardModel):
    text: str | None = Field(default=None, validation_alias=AliasChoices("text", "documentText"))


__all__ = [
    "AddressTextRequest",
    "BusinessModel",
    "CompanyInfoModel",
    "DocumentsModel",
    "EmailRequest",
    "LeadSubmissionModel",
    "PaymentInfoModel",
    "ReferenceRequest",
    "RegistrationTextRequest",
]
