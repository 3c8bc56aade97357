"""Translation between opaque service identifiers and their display names."""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from .discovery import SERVICE_RESOURCE_CANDIDATES, discover
from .errors import NotFoundError, RemoteError
from .normalization import display_name, fold
from .ports import Filter

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .ports import Record, ResourceStore

log = getLogger(__name__)

CATALOG_LISTING_LIMIT: Final = 1000


class SelectionEncoding(StrEnum):
    """How the flattened service-selection string is written."""

    CSV = "csv"
    JSON = "json"


def encode_selection(
    names: Sequence[str], encoding: SelectionEncoding = SelectionEncoding.CSV
) -> str:
    if encoding is SelectionEncoding.JSON:
        return json.dumps(list(names), ensure_ascii=False)
    return ", ".join(names)


def decode_selection(value: object) -> list[str]:
    """Parse a flattened selection written in either encoding."""

    if value is None:
        return []
    if isinstance(value, list):
        return [str(item).strip() for item in cast(list[object], value) if str(item).strip()]
    text = str(value).strip()
    if not text:
        return []
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            return decode_selection(cast(list[object], decoded))
    return [part.strip() for part in text.split(",") if part.strip()]


def selection_rows(ids: Sequence[str], names: Sequence[str]) -> list[dict[str, str]]:
    return [
        {"service": service, "service_name": name}
        for service, name in zip(ids, names, strict=True)
    ]


def _row_values(rows: object, key: str) -> list[str]:
    if not isinstance(rows, list):
        return []
    values: list[str] = []
    for row in cast(list[object], rows):
        if not isinstance(row, Mapping):
            continue
        value = cast(Mapping[str, object], row).get(key)
        if isinstance(value, str) and value.strip():
            values.append(value.strip())
    return values


def ids_from_rows(rows: object) -> list[str]:
    """Service identifiers carried by structured selection rows."""

    return _row_values(rows, "service")


def names_from_rows(rows: object) -> list[str]:
    return _row_values(rows, "service_name")


def rows_match_selection(rows: object, tokens: Sequence[str]) -> bool:
    """Whether structured rows name the same services as a decoded selection string.

    Tokens may be identifiers or display names; both are compared case-insensitively.
    Rows left over from an earlier write that dropped them no longer match.
    """

    names = names_from_rows(rows)
    # A comma-separated string splits names that contain commas.
    spellings = (ids_from_rows(rows), names, decode_selection(", ".join(names)))
    folded = [fold(token) for token in tokens]
    return any(folded == [fold(value) for value in spelling] for spelling in spellings)


class SelectionMapper:
    """Map service identifiers to display names and back via the service catalog.

    The catalog is optional from the engine's point of view: whenever it cannot be
    found or queried the input is returned as-is.
    """

    def __init__(
        self,
        store: ResourceStore,
        *,
        candidates: Sequence[str] = SERVICE_RESOURCE_CANDIDATES,
    ) -> None:
        self._store = store
        self._candidates = tuple(candidates)

    async def resolve_names(self, ids: Sequence[str]) -> list[str]:
        ids = list(ids)
        if not ids:
            return []
        unique = list(dict.fromkeys(ids))

        async def lookup(resource_type: str) -> list[Record]:
            return await self._store.fetch(
                resource_type,
                filters=[Filter("name", "in", unique)],
                fields=["*"],
                limit=len(unique),
            )

        try:
            found = await discover(self._candidates, lookup, concept="service catalog")
        except (NotFoundError, RemoteError) as exc:
            log.warning("Service names unavailable, keeping identifiers: %s", exc)
            return ids

        names: dict[str, str] = {}
        for row in found.result:
            key = row.get("name")
            if isinstance(key, str):
                names[key] = display_name(row) or key
        return [names.get(service, service) for service in ids]

    async def resolve_ids(self, tokens: Iterable[str]) -> list[str]:
        tokens = [token for token in tokens if token]
        if not tokens:
            return []

        async def lookup(resource_type: str) -> list[Record]:
            return await self._store.fetch(
                resource_type, fields=["*"], limit=CATALOG_LISTING_LIMIT
            )

        try:
            found = await discover(self._candidates, lookup, concept="service catalog")
        except (NotFoundError, RemoteError) as exc:
            log.warning("Service identifiers unavailable, keeping tokens: %s", exc)
            return tokens

        index: dict[str, str] = {}
        for row in found.result:
            key = row.get("name")
            if not isinstance(key, str):
                continue
            label = display_name(row)
            if label:
                index.setdefault(fold(label), key)
        for row in found.result:
            key = row.get("name")
            if isinstance(key, str):
                index[fold(key)] = key
        return [index.get(fold(token), token) for token in tokens]


__all__ = [
    "SelectionEncoding",
    "SelectionMapper",
    "decode_selection",
    "encode_selection",
    "ids_from_rows",
    "names_from_rows",
    "rows_match_selection",
    "selection_rows",
]
