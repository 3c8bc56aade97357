"""Resolve a human-supplied reference string to one remote record."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .errors import NotFoundError, RemoteError, TrailEntry, ValidationError
from .ports import eq

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .ports import Record, ResourceStore

log = getLogger(__name__)

LISTING_PAGE_SIZE: Final = 1000


@dataclass(slots=True, frozen=True)
class ReferenceSchema:
    """Which fields of a resource can carry a human reference to it."""

    resource_type: str = "Sales Person"
    canonical_name_field: str = "sales_person_name"
    secondary_name_field: str = "name"
    linked_entity_field: str = "employee"

    @property
    def match_fields(self) -> tuple[str, ...]:
        return (
            self.secondary_name_field,
            self.canonical_name_field,
            self.linked_entity_field,
        )


SALES_PERSON = ReferenceSchema()


@dataclass(slots=True, frozen=True)
class Resolution:
    record: Record
    strategy: str
    trail: tuple[TrailEntry, ...] = field(default=())


type Strategy = Callable[[str], Awaitable[list[Record]]]


class IdentifierResolver:
    """Try lookup strategies of decreasing confidence until one produces a match.

    Strategies run strictly in order and the first one with any match wins; nothing
    after it is attempted. A strategy that fails remotely is noted and skipped.
    """

    def __init__(self, store: ResourceStore, schema: ReferenceSchema = SALES_PERSON) -> None:
        self._store = store
        self._schema = schema

    def strategies(self) -> list[tuple[str, Strategy]]:
        schema = self._schema
        return [
            ("primary_key", self._by_key),
            (schema.canonical_name_field, self._by_field(schema.canonical_name_field)),
            (schema.secondary_name_field, self._by_field(schema.secondary_name_field)),
            (schema.linked_entity_field, self._by_field(schema.linked_entity_field)),
            ("listing", self._by_listing),
        ]

    async def resolve(self, raw_reference: str | None) -> Record:
        resolution = await self.locate(raw_reference)
        return resolution.record

    async def locate(self, raw_reference: str | None) -> Resolution:
        reference = (raw_reference or "").strip()
        if not reference:
            raise ValidationError("Reference must not be blank", field="reference")

        trail: list[TrailEntry] = []
        tried: list[str] = []
        last_error: RemoteError | None = None
        failures = 0
        for name, strategy in self.strategies():
            tried.append(name)
            try:
                matches = await strategy(reference)
            except RemoteError as exc:
                failures += 1
                last_error = exc
                trail.append(TrailEntry(name, exc.display_message, exc.status))
                log.warning("Lookup strategy %s failed for %r: %s", name, reference, exc)
                continue
            if matches:
                log.info("Resolved %r via %s", reference, name)
                return Resolution(matches[0], name, tuple(trail))
            trail.append(TrailEntry(name, "no match"))

        if last_error is not None and failures == len(tried):
            raise last_error
        raise NotFoundError(
            f"No {self._schema.resource_type} matches {reference!r}",
            tried=tried,
            trail=trail,
        )

    async def _by_key(self, reference: str) -> list[Record]:
        record = await self._store.get(self._schema.resource_type, reference)
        return [record] if record else []

    def _by_field(self, field_name: str) -> Strategy:
        async def lookup(reference: str) -> list[Record]:
            return await self._store.fetch(
                self._schema.resource_type,
                filters=[eq(field_name, reference)],
                fields=["*"],
                limit=1,
            )

        return lookup

    async def _by_listing(self, reference: str) -> list[Record]:
        schema = self._schema
        rows = await self._store.fetch(
            schema.resource_type,
            fields=list(dict.fromkeys(schema.match_fields)),
            limit=LISTING_PAGE_SIZE,
        )
        hit = _match_listing(rows, reference, schema.match_fields)
        if hit is None:
            return []
        key = hit.get("name")
        if isinstance(key, str) and key:
            full = await self._store.get(schema.resource_type, key)
            if full:
                return [full]
        return [hit]


def _match_listing(
    rows: Sequence[Record], reference: str, fields: Sequence[str]
) -> Record | None:
    needle = reference.casefold()

    def values(row: Record) -> list[str]:
        return [str(row[name]).casefold() for name in fields if row.get(name)]

    for row in rows:
        if needle in values(row):
            return row
    for row in rows:
        if any(needle in value for value in values(row)):
            return row
    return None


__all__ = ["SALES_PERSON", "IdentifierResolver", "ReferenceSchema", "Resolution"]
