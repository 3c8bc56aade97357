"""Onboarding orchestration: wizard submissions in, reconciled remote records out."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from .catalog import list_company_types, list_services
from .errors import NotFoundError, RemoteError, ValidationError
from .model import DOCUMENT_FILE_FIELDS, Documents
from .normalization import DEFAULT_LOCALES, first_text, normalize_country, relative_file_path
from .ports import eq
from .resolver import IdentifierResolver
from .selection import (
    SelectionEncoding,
    SelectionMapper,
    decode_selection,
    encode_selection,
    ids_from_rows,
    rows_match_selection,
    selection_rows,
)
from .subresources import (
    ADDRESS_RESOURCE,
    LINK_CHILD_TABLE,
    NEWEST_FIRST,
    AddressType,
    SubResourceSynchronizer,
    SyncReport,
)
from .upsert import EMAIL_FIELD, PRIMARY_RESOURCE, UpsertEngine, UpsertResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .model import Upload, WizardSubmission
    from .normalization import CatalogEntry
    from .ports import FileContent, FileStore, Filter, Record, ResourceStore

log = getLogger(__name__)

PROFILE_RESOURCE: Final = "Custom User Register"
SELECTION_STRING_FIELD: Final = "custom_selected_services"
SELECTION_ROWS_FIELD: Final = "custom_service_selections"
TAX_ID_FIELDS: Final[tuple[str, ...]] = ("custom_custom_tax_id_number", "custom_tax_id_number")
BIC_FIELDS: Final[tuple[str, ...]] = ("custom_bic", "custom_custom_bic")
SHOP_ADDRESS_LIMIT: Final = 100

# Billing address field -> primary record field it overrides on the read path.
_ADDRESS_OVERRIDES: Final[dict[str, str]] = {
    "address_line1": "address_line1",
    "address_line2": "address_line2",
    "city": "city",
    "pincode": "pincode",
    "state": "state",
    "country": "country",
}

# Business entry key in the wizard payload -> shop address fields it is read from.
_BUSINESS_ADDRESS_KEYS: Final[dict[str, tuple[str, ...]]] = {
    "street": ("address_line1",),
    "city": ("city", "county"),
    "zipCode": ("pincode",),
    "federalState": ("state",),
    "country": ("country",),
}


@dataclass(slots=True, frozen=True)
class SubmissionResult:
    upsert: UpsertResult
    report: SyncReport
    service_names: tuple[str, ...] = ()

    @property
    def created(self) -> bool:
        return self.upsert.created

    @property
    def record(self) -> Record:
        return self.upsert.record

    def as_payload(self) -> dict[str, object]:
        verb = "created" if self.created else "updated"
        return {
            "success": True,
            "created": self.created,
            "lead": self.record,
            "message": f"Lead {verb} successfully",
            "syncReport": self.report.as_payload(),
            "degraded": list(self.upsert.degraded),
        }


@dataclass(slots=True, frozen=True)
class WizardState:
    """Wizard progress reassembled from the remote records."""

    record: Record
    businesses: list[object] = field(default_factory=list)
    files: dict[str, list[object]] = field(default_factory=dict)
    services: list[str] = field(default_factory=list)
    service_names: list[str] = field(default_factory=list)

    def as_payload(self) -> dict[str, object]:
        record = self.record
        city = first_text(record, ("city", "county"))
        return {
            **record,
            **self.files,
            "businesses": self.businesses,
            "companyInfo": {
                "companyName": first_text(record, ("company_name",)),
                "street": first_text(record, ("address_line1",)),
                "city": city,
                "zipCode": first_text(record, ("pincode",)),
                "federalState": first_text(record, ("state",)),
                "country": first_text(record, ("country",)),
                "vatIdentificationNumber": first_text(
                    record, ("custom_vat_identification_number",)
                ),
                "taxIdNumber": first_text(record, TAX_ID_FIELDS),
            },
            "paymentInfo": {
                "accountHolder": first_text(record, ("custom_account_holder",)),
                "iban": first_text(record, ("custom_iban",)),
                "bic": first_text(record, BIC_FIELDS),
            },
            "documents": {
                "typeOfCompany": first_text(record, ("custom_type_of_company",)),
                "isCompleted": record.get("custom_registration_status") == "Completed",
                **self.files,
            },
            "services": self.services,
            "serviceNames": self.service_names,
        }


def _dumps(value: object) -> str:
    return json.dumps(value, ensure_ascii=False)


def _decode_json_list(value: object, *, label: str) -> list[object]:
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return list(cast(list[object], value))
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            log.warning("Could not decode %s: %r", label, value[:80])
            return []
        if isinstance(decoded, list):
            return list(cast(list[object], decoded))
    log.warning("Ignoring non-list %s", label)
    return []


def build_lead_fields(
    submission: WizardSubmission,
    profile: Mapping[str, object] | None = None,
    *,
    locales: Sequence[str] = DEFAULT_LOCALES,
) -> dict[str, object]:
    """Primary record fields for everything the submission actually provided."""

    fields: dict[str, object] = {}
    telephone = first_text(profile or {}, ("telephone", "phone", "mobile_no"))
    if telephone:
        fields["phone"] = telephone
        fields["mobile_no"] = telephone

    company = submission.company
    if company is not None:
        address = company.address
        values: dict[str, object | None] = {
            "address_line1": address.street,
            "city": address.city,
            "pincode": address.zip_code,
            "state": address.federal_state,
            "country": normalize_country(address.country, locales),
            "custom_vat_identification_number": company.vat_identification_number,
            "custom_custom_tax_id_number": (company.tax_id_number or "").strip() or None,
        }
        fields.update({name: value for name, value in values.items() if value})

    if submission.businesses:
        fields["custom_businesses"] = _dumps([business.raw for business in submission.businesses])

    payment = submission.payment
    if payment is not None:
        payment_values: dict[str, object | None] = {
            "custom_account_holder": payment.account_holder,
            "custom_iban": payment.iban,
            "custom_bic": payment.bic,
        }
        fields.update({name: value for name, value in payment_values.items() if value})

    documents = submission.documents
    if documents is not None:
        if documents.type_of_company:
            fields["custom_type_of_company"] = documents.type_of_company
        for category, target in DOCUMENT_FILE_FIELDS.items():
            if category in documents.files:
                fields[target] = _dumps(documents.files[category])
        if documents.is_completed:
            fields["custom_registration_status"] = "Completed"

    return fields


class OnboardingService:
    """Reconcile wizard submissions against the remote store and read them back."""

    def __init__(
        self,
        store: ResourceStore,
        files: FileStore | None = None,
        *,
        selection_encoding: SelectionEncoding = SelectionEncoding.CSV,
        country_locales: Sequence[str] = DEFAULT_LOCALES,
    ) -> None:
        self._store = store
        self._files = files
        self._encoding = selection_encoding
        self._locales = tuple(country_locales)
        self.upserts = UpsertEngine(store)
        self.subresources = SubResourceSynchronizer(store, country_locales=self._locales)
        self.selections = SelectionMapper(store)
        self.references = IdentifierResolver(store)

    async def submit(
        self,
        submission: WizardSubmission,
        uploads: Sequence[Upload] = (),
    ) -> SubmissionResult:
        email = (submission.email or "").strip()
        if not email:
            raise ValidationError("Email is required", field="email")

        if uploads:
            existing = await self.upserts.find_by_email(email)
            owner_key = str(existing["name"]) if existing and existing.get("name") else None
            submission = await self.store_uploads(submission, uploads, owner_key=owner_key)

        profile = await self._registrant_profile(email)
        fields = build_lead_fields(submission, profile, locales=self._locales)

        names: list[str] = []
        structured: tuple[str, ...] = ()
        if submission.services:
            ids = list(submission.services)
            names = await self.selections.resolve_names(ids)
            fields[SELECTION_STRING_FIELD] = encode_selection(names, self._encoding)
            fields[SELECTION_ROWS_FIELD] = selection_rows(ids, names)
            structured = (SELECTION_ROWS_FIELD,)

        company_name = first_text(profile, ("company_name",)) or (
            submission.company.company_name if submission.company else None
        )
        result = await self.upserts.upsert_primary(
            email,
            fields,
            create_defaults={
                "lead_name": company_name or email,
                "company_name": company_name or "",
                "status": "Open",
                "lead_type": "Client",
            },
            structured_fields=structured,
        )

        report = await self.subresources.sync_businesses(
            result.key, submission.company, submission.businesses or ()
        )
        return SubmissionResult(result, report, tuple(names))

    async def store_uploads(
        self,
        submission: WizardSubmission,
        uploads: Sequence[Upload],
        *,
        owner_key: str | None = None,
    ) -> WizardSubmission:
        """Upload each file and append its URL to the matching document list.

        With ``owner_key`` the stored files are attached to that primary record.
        """

        if self._files is None:
            raise ValidationError("File uploads are not supported by this store", field="files")
        documents = submission.documents or Documents()
        files = {category: list(entries) for category, entries in documents.files.items()}
        for upload in uploads:
            if upload.category not in DOCUMENT_FILE_FIELDS:
                raise ValidationError(
                    f"Unknown document category {upload.category!r}", field=upload.category
                )
            reference = await self._files.upload_file(
                upload.filename,
                upload.content,
                content_type=upload.content_type,
                attached_to=(PRIMARY_RESOURCE, owner_key) if owner_key else None,
            )
            files.setdefault(upload.category, []).append(reference.file_url)
            log.info("Stored %s as %s", upload.filename, reference.file_url)
        return replace(submission, documents=replace(documents, files=files))

    async def load(self, email: str | None) -> WizardState | None:
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required", field="email")

        rows = await self._store.fetch(
            PRIMARY_RESOURCE, filters=[eq(EMAIL_FIELD, email)], fields=["*"], limit=1
        )
        if not rows:
            return None
        record = dict(rows[0])
        key = str(record.get("name") or "")
        if key:
            record.update(await self._store.get(PRIMARY_RESOURCE, key) or {})
            billing = await self._owned_addresses(key, AddressType.BILLING, limit=1)
            if billing:
                _apply_billing(record, billing[0])

        businesses = _decode_json_list(record.get("custom_businesses"), label="businesses")
        if key and businesses:
            shops = await self._owned_addresses(key, AddressType.SHOP, limit=SHOP_ADDRESS_LIMIT)
            businesses = _apply_shops(businesses, shops)

        files = {
            category: _decode_json_list(record.get(target), label=category)
            for category, target in DOCUMENT_FILE_FIELDS.items()
        }

        rows = record.get(SELECTION_ROWS_FIELD)
        tokens = decode_selection(record.get(SELECTION_STRING_FIELD))
        ids = ids_from_rows(rows)
        if tokens and not rows_match_selection(rows, tokens):
            # The string is rewritten on every submission; the rows only when accepted.
            ids = await self.selections.resolve_ids(tokens)
        names = await self.selections.resolve_names(ids) if ids else []
        return WizardState(record, businesses, files, ids, names)

    async def fetch_file(self, file_url: str | None) -> FileContent:
        """Stored file bytes for a store-relative path or an absolute URL on the store."""

        path = relative_file_path(file_url)
        if path is None:
            raise ValidationError("File URL is required", field="url")
        if self._files is None:
            raise ValidationError("File downloads are not supported by this store", field="url")
        try:
            return await self._files.download_file(path)
        except RemoteError as exc:
            if exc.status != 404:
                raise
            raise NotFoundError(f"File {path} not found", tried=(path,)) from exc

    async def validate_reference(self, reference: str | None) -> Record:
        return await self.references.resolve(reference)

    async def list_services(self) -> list[CatalogEntry]:
        return await list_services(self._store)

    async def list_company_types(self) -> list[CatalogEntry]:
        return await list_company_types(self._store)

    async def _registrant_profile(self, email: str) -> Record:
        try:
            rows = await self._store.fetch(
                PROFILE_RESOURCE, filters=[eq("user", email)], fields=["*"], limit=1
            )
        except RemoteError as exc:
            log.warning("Registrant profile for %s unavailable: %s", email, exc)
            return {}
        return rows[0] if rows else {}

    async def _owned_addresses(
        self, owner_key: str, address_type: AddressType, *, limit: int
    ) -> list[Record]:
        filters: list[Filter] = [
            eq("address_type", address_type.value),
            eq("link_doctype", PRIMARY_RESOURCE, doctype=LINK_CHILD_TABLE),
            eq("link_name", owner_key, doctype=LINK_CHILD_TABLE),
        ]
        try:
            return await self._store.fetch(
                ADDRESS_RESOURCE,
                filters=filters,
                fields=["*"],
                limit=limit,
                order_by=NEWEST_FIRST,
            )
        except RemoteError as exc:
            log.warning("%s addresses for %s unavailable: %s", address_type.value, owner_key, exc)
            return []


def _apply_billing(record: Record, address: Record) -> None:
    for source, target in _ADDRESS_OVERRIDES.items():
        value = first_text(address, (source,))
        if value:
            record[target] = value
    if not first_text(record, ("city",)):
        county = first_text(address, ("county",))
        if county:
            record["city"] = county


def _apply_shops(businesses: list[object], shops: Sequence[Record]) -> list[object]:
    by_title: dict[str, Record] = {}
    for shop in shops:
        title = first_text(shop, ("address_title",))
        if title:
            by_title.setdefault(title, shop)

    merged: list[object] = []
    for business in businesses:
        if not isinstance(business, Mapping):
            merged.append(business)
            continue
        entry = dict(cast(Mapping[str, object], business))
        title = first_text(entry, ("businessName", "street"))
        shop = by_title.get(title) if title else None
        if shop is not None:
            for target, sources in _BUSINESS_ADDRESS_KEYS.items():
                value = first_text(shop, sources)
                if value:
                    entry[target] = value
        merged.append(entry)
    return merged


__all__ = [
    "OnboardingService",
    "SubmissionResult",
    "WizardState",
    "build_lead_fields",
]
