"""Idempotent create-or-update of the primary record keyed by email."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .errors import ConflictError, DegradedWriteError, RemoteError, ValidationError
from .ports import eq

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from .ports import Record, ResourceStore

log = getLogger(__name__)

PRIMARY_RESOURCE: Final = "Lead"
EMAIL_FIELD: Final = "email_id"
LOOKUP_FIELDS: Final[tuple[str, ...]] = ("name", EMAIL_FIELD, "company_name")

type Write = Callable[[Mapping[str, object]], Awaitable[Record]]


@dataclass(slots=True, frozen=True)
class UpsertResult:
    record: Record
    created: bool
    degraded: tuple[str, ...] = field(default=())

    @property
    def key(self) -> str:
        return str(self.record.get("name") or "")


class UpsertEngine:
    """Find the primary record by email, then update it or create it.

    A create that loses a race against another writer is turned into an update.
    Fields named in ``structured_fields`` are optional extras: if a write carrying them
    is rejected, it is repeated once without them.
    """

    def __init__(self, store: ResourceStore, *, resource_type: str = PRIMARY_RESOURCE) -> None:
        self._store = store
        self._resource_type = resource_type

    async def find_by_email(self, email: str) -> Record | None:
        rows = await self._store.fetch(
            self._resource_type,
            filters=[eq(EMAIL_FIELD, email)],
            fields=list(LOOKUP_FIELDS),
            limit=1,
        )
        return rows[0] if rows else None

    async def upsert_primary(
        self,
        email: str | None,
        fields: Mapping[str, object],
        *,
        create_defaults: Mapping[str, object] | None = None,
        structured_fields: Sequence[str] = (),
    ) -> UpsertResult:
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required", field="email")

        payload: dict[str, object] = {**fields, EMAIL_FIELD: email}
        existing = await self.find_by_email(email)
        if existing is not None:
            return await self._update(existing, payload, structured_fields)

        body = {**(create_defaults or {}), **payload}
        try:
            record, degraded = await self._write(self._create, body, structured_fields)
        except ConflictError:
            log.info("Create for %s conflicted; updating the existing record", email)
            existing = await self.find_by_email(email)
            if existing is None:
                raise
            return await self._update(existing, payload, structured_fields)
        log.info("Created %s %s for %s", self._resource_type, record.get("name"), email)
        return UpsertResult(record, created=True, degraded=degraded)

    async def _update(
        self,
        existing: Record,
        payload: Mapping[str, object],
        structured_fields: Sequence[str],
    ) -> UpsertResult:
        key = str(existing["name"])

        async def update(body: Mapping[str, object]) -> Record:
            return await self._store.update(self._resource_type, key, body)

        record, degraded = await self._write(update, payload, structured_fields)
        record.setdefault("name", key)
        log.info("Updated %s %s", self._resource_type, key)
        return UpsertResult(record, created=False, degraded=degraded)

    async def _create(self, body: Mapping[str, object]) -> Record:
        return await self._store.create(self._resource_type, body)

    async def _write(
        self,
        write: Write,
        payload: Mapping[str, object],
        structured_fields: Sequence[str],
    ) -> tuple[Record, tuple[str, ...]]:
        try:
            return await _send(write, payload, structured_fields), ()
        except DegradedWriteError as exc:
            log.warning("%s", exc)
            reduced = {name: value for name, value in payload.items() if name not in exc.fields}
            return await write(reduced), exc.fields


async def _send(
    write: Write,
    payload: Mapping[str, object],
    structured_fields: Sequence[str],
) -> Record:
    try:
        return await write(payload)
    except ConflictError:
        raise
    except RemoteError as exc:
        carried = tuple(name for name in structured_fields if name in payload)
        if exc.status is not None and carried:
            raise DegradedWriteError(carried, exc) from exc
        raise


__all__ = ["EMAIL_FIELD", "PRIMARY_RESOURCE", "UpsertEngine", "UpsertResult"]
