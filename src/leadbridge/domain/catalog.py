"""Read-only listings of the selectable catalogs (services, company types)."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from .discovery import COMPANY_TYPE_RESOURCE_CANDIDATES, SERVICE_RESOURCE_CANDIDATES, discover
from .normalization import canonical_company_type, canonical_service, is_active

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from .normalization import CatalogEntry
    from .ports import Record, ResourceStore

log = getLogger(__name__)

LISTING_LIMIT: Final = 1000


async def _list_catalog(
    store: ResourceStore,
    candidates: Sequence[str],
    canonicalize: Callable[[Mapping[str, object]], CatalogEntry | None],
    *,
    concept: str,
) -> list[CatalogEntry]:
    async def lookup(resource_type: str) -> list[Record]:
        return await store.fetch(resource_type, fields=["*"], limit=LISTING_LIMIT)

    found = await discover(candidates, lookup, concept=concept)
    entries = [canonicalize(row) for row in found.result if is_active(row)]
    listed = [entry for entry in entries if entry is not None]
    log.debug("Listed %d %s entries from %r", len(listed), concept, found.name)
    return listed


async def list_services(store: ResourceStore) -> list[CatalogEntry]:
    """Active service catalog entries; raises ``NotFoundError`` if no catalog exists."""

    return await _list_catalog(
        store, SERVICE_RESOURCE_CANDIDATES, canonical_service, concept="service catalog"
    )


async def list_company_types(store: ResourceStore) -> list[CatalogEntry]:
    return await _list_catalog(
        store,
        COMPANY_TYPE_RESOURCE_CANDIDATES,
        canonical_company_type,
        concept="company type",
    )


__all__ = ["list_company_types", "list_services"]
