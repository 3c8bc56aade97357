"""Find-or-create of the addresses and contacts hanging off a primary record."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .errors import LeadBridgeError
from .normalization import DEFAULT_LOCALES, normalize_country
from .ports import eq

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .model import BusinessEntry, CompanyInfo, ContactPerson, PostalAddress
    from .ports import Filter, Record, ResourceStore

log = getLogger(__name__)

ADDRESS_RESOURCE: Final = "Address"
CONTACT_RESOURCE: Final = "Contact"
LINK_CHILD_TABLE: Final = "Dynamic Link"
NEWEST_FIRST: Final = "modified desc"
BILLING_FALLBACK_TITLE: Final = "Billing"


class AddressType(StrEnum):
    BILLING = "Billing"
    SHOP = "Shop"


class Outcome(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class EntryStatus:
    """What happened to one sub-record during a synchronisation run."""

    entry: str
    kind: str
    outcome: Outcome
    record: str | None = None
    error: str | None = None

    def as_payload(self) -> dict[str, object]:
        return {
            "entry": self.entry,
            "kind": self.kind,
            "outcome": self.outcome.value,
            "record": self.record,
            "error": self.error,
        }


@dataclass(slots=True, frozen=True)
class SyncReport:
    entries: tuple[EntryStatus, ...] = ()

    @property
    def failures(self) -> tuple[EntryStatus, ...]:
        return tuple(entry for entry in self.entries if entry.outcome is Outcome.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failures

    def as_payload(self) -> list[dict[str, object]]:
        return [entry.as_payload() for entry in self.entries]


@dataclass(slots=True, frozen=True)
class SyncedRecord:
    record: Record
    created: bool

    @property
    def key(self) -> str | None:
        name = self.record.get("name")
        return str(name) if name else None

    @property
    def outcome(self) -> Outcome:
        return Outcome.CREATED if self.created else Outcome.UPDATED


def _owner_link(owner_resource: str, owner_key: str) -> list[dict[str, str]]:
    return [{"link_doctype": owner_resource, "link_name": owner_key}]


def _owner_filters(owner_resource: str, owner_key: str) -> list[Filter]:
    return [
        eq("link_doctype", owner_resource, doctype=LINK_CHILD_TABLE),
        eq("link_name", owner_key, doctype=LINK_CHILD_TABLE),
    ]


def address_fields(
    address: PostalAddress, locales: Sequence[str] = DEFAULT_LOCALES
) -> dict[str, object]:
    """Address record fields for the parts of ``address`` that were provided."""

    values: dict[str, object | None] = {
        "address_line1": address.street,
        "city": address.city,
        "county": address.city,
        "pincode": address.zip_code,
        "state": address.federal_state,
        "country": normalize_country(address.country, locales),
    }
    return {name: value for name, value in values.items() if value is not None}


def contact_fields(person: ContactPerson) -> dict[str, object]:
    values: dict[str, object] = {}
    if person.email:
        values["email_id"] = person.email
        values["email_ids"] = [{"email_id": person.email, "is_primary": 1}]
    if person.phone:
        values["phone"] = person.phone
        values["phone_nos"] = [
            {"phone": person.phone, "is_primary_phone": 1, "is_primary_mobile_no": 1}
        ]
    return values


class SubResourceSynchronizer:
    """Reconcile billing/shop addresses and contacts against the remote store.

    Sub-records are matched by their business identity and the link to their owning
    primary record, never by remote key, so repeated submissions update in place.
    """

    def __init__(
        self,
        store: ResourceStore,
        *,
        owner_resource: str = "Lead",
        country_locales: Sequence[str] = DEFAULT_LOCALES,
    ) -> None:
        self._store = store
        self._owner_resource = owner_resource
        self._locales = tuple(country_locales)

    async def find_address(
        self, owner_key: str, title: str, address_type: AddressType
    ) -> Record | None:
        rows = await self._store.fetch(
            ADDRESS_RESOURCE,
            filters=[
                eq("address_title", title),
                eq("address_type", address_type.value),
                *_owner_filters(self._owner_resource, owner_key),
            ],
            fields=["name", "address_title", "address_type"],
            limit=1,
            order_by=NEWEST_FIRST,
        )
        return rows[0] if rows else None

    async def sync_address(
        self,
        owner_key: str,
        title: str,
        address_type: AddressType,
        fields: Mapping[str, object],
    ) -> SyncedRecord:
        payload: dict[str, object] = {
            **fields,
            "address_title": title,
            "address_type": address_type.value,
        }
        existing = await self.find_address(owner_key, title, address_type)
        if existing is not None:
            key = str(existing["name"])
            record = await self._store.update(ADDRESS_RESOURCE, key, payload)
            record.setdefault("name", key)
            return SyncedRecord(record, created=False)

        payload["links"] = _owner_link(self._owner_resource, owner_key)
        record = await self._store.create(ADDRESS_RESOURCE, payload)
        return SyncedRecord(record, created=True)

    async def find_contact(self, owner_key: str, person: ContactPerson) -> Record | None:
        filters = [eq("first_name", _first_name(person))]
        if person.last_name:
            filters.append(eq("last_name", person.last_name))
        rows = await self._store.fetch(
            CONTACT_RESOURCE,
            filters=[*filters, *_owner_filters(self._owner_resource, owner_key)],
            fields=["name", "first_name", "last_name"],
            limit=1,
            order_by=NEWEST_FIRST,
        )
        return rows[0] if rows else None

    async def sync_contact(
        self,
        owner_key: str,
        address_key: str | None,
        identity: ContactPerson,
        extra_fields: Mapping[str, object] | None = None,
    ) -> SyncedRecord | None:
        if not identity.has_identity:
            return None

        payload: dict[str, object] = {
            **(extra_fields or {}),
            **contact_fields(identity),
            "first_name": _first_name(identity),
        }
        if identity.last_name:
            payload["last_name"] = identity.last_name
        if address_key:
            payload["address"] = address_key

        existing = await self.find_contact(owner_key, identity)
        if existing is not None:
            key = str(existing["name"])
            record = await self._store.update(CONTACT_RESOURCE, key, payload)
            record.setdefault("name", key)
            return SyncedRecord(record, created=False)

        payload["links"] = _owner_link(self._owner_resource, owner_key)
        record = await self._store.create(CONTACT_RESOURCE, payload)
        return SyncedRecord(record, created=True)

    async def sync_businesses(
        self,
        owner_key: str,
        company: CompanyInfo | None,
        businesses: Sequence[BusinessEntry],
    ) -> SyncReport:
        entries: list[EntryStatus] = []
        if company is not None and _has_billing_address(company.address):
            title = company.company_name or BILLING_FALLBACK_TITLE
            entries.append(
                await self._address_entry(
                    owner_key, title, AddressType.BILLING, company.address
                )
            )

        results = await asyncio.gather(
            *(
                self._sync_business(owner_key, index, business)
                for index, business in enumerate(businesses, start=1)
            )
        )
        for statuses in results:
            entries.extend(statuses)

        report = SyncReport(tuple(entries))
        for failure in report.failures:
            log.warning(
                "Sub-record sync failed for %s (%s): %s", failure.entry, failure.kind, failure.error
            )
        return report

    async def _sync_business(
        self, owner_key: str, index: int, business: BusinessEntry
    ) -> list[EntryStatus]:
        title = business.identity
        if not title:
            return [EntryStatus(f"business #{index}", "address", Outcome.SKIPPED)]

        shop = await self._address_entry(owner_key, title, AddressType.SHOP, business.address)
        statuses = [shop]
        person = business.contact_identity()
        if person is None:
            return statuses

        address_key = shop.record
        label = person.display_name
        try:
            synced = await self.sync_contact(owner_key, address_key, person)
        except LeadBridgeError as exc:
            statuses.append(EntryStatus(label, "contact", Outcome.FAILED, error=str(exc)))
            return statuses
        if synced is not None:
            statuses.append(EntryStatus(label, "contact", synced.outcome, record=synced.key))
        return statuses

    async def _address_entry(
        self,
        owner_key: str,
        title: str,
        address_type: AddressType,
        address: PostalAddress,
    ) -> EntryStatus:
        kind = f"{address_type.value.lower()} address"
        try:
            synced = await self.sync_address(
                owner_key, title, address_type, address_fields(address, self._locales)
            )
        except LeadBridgeError as exc:
            return EntryStatus(title, kind, Outcome.FAILED, error=str(exc))
        return EntryStatus(title, kind, synced.outcome, record=synced.key)


def _first_name(person: ContactPerson) -> str:
    if person.first_name:
        return person.first_name
    if person.email:
        return person.email.split("@", 1)[0]
    return person.last_name or ""


def _has_billing_address(address: PostalAddress) -> bool:
    return bool(address.street or address.city or address.country)


__all__ = [
    "AddressType",
    "EntryStatus",
    "Outcome",
    "SubResourceSynchronizer",
    "SyncReport",
    "SyncedRecord",
    "address_fields",
    "contact_fields",
]
