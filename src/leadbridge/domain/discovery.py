"""Searching for the resource-type name an installation actually uses for a concept."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .errors import NotFoundError, RemoteError, TrailEntry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

log = getLogger(__name__)

SERVICE_RESOURCE_CANDIDATES: Final[tuple[str, ...]] = (
    "Services",
    "Service",
    "Restaurant Service",
    "Restaurant Services",
    "POS Service",
    "POS Services",
)

COMPANY_TYPE_RESOURCE_CANDIDATES: Final[tuple[str, ...]] = (
    "Company Type",
    "CompanyType",
    "Company Types",
    "CompanyTypes",
    "Company_Type",
    "Company_Types",
)


@dataclass(frozen=True)
class Discovery[T]:
    """The first candidate whose lookup succeeded, with the failures before it."""

    name: str
    result: T
    trail: tuple[TrailEntry, ...] = ()


async def discover[T](
    candidates: Sequence[str],
    lookup: Callable[[str], Awaitable[T]],
    *,
    concept: str = "resource",
) -> Discovery[T]:
    """Return the first candidate for which ``lookup`` completes without a remote error."""

    trail: list[TrailEntry] = []
    for candidate in candidates:
        try:
            result = await lookup(candidate)
        except RemoteError as exc:
            entry = TrailEntry(candidate, exc.display_message, exc.status)
            trail.append(entry)
            log.info("Lookup of %s failed: %s", concept, entry)
            continue
        if trail:
            log.info("Resolved %s to %r after %d failed lookups", concept, candidate, len(trail))
        return Discovery(candidate, result, tuple(trail))

    raise NotFoundError(
        f"No {concept} resource found; tried {', '.join(candidates)}",
        tried=candidates,
        trail=trail,
    )


__all__ = [
    "COMPANY_TYPE_RESOURCE_CANDIDATES",
    "SERVICE_RESOURCE_CANDIDATES",
    "Discovery",
    "discover",
]
