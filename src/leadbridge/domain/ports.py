"""Ports the reconciliation engine needs from the remote store."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


type Record = dict[str, object]


@dataclass(slots=True, frozen=True)
class Filter:
    """One filter condition; ``doctype`` targets a child table row."""

    field: str
    operator: str
    value: object
    doctype: str | None = None

    def as_wire(self) -> list[object]:
        if self.doctype is None:
            return [self.field, self.operator, self.value]
        return [self.doctype, self.field, self.operator, self.value]


def eq(field: str, value: object, *, doctype: str | None = None) -> Filter:
    return Filter(field, "=", value, doctype=doctype)


@dataclass(slots=True, frozen=True)
class FileReference:
    """Reference returned by the store after storing uploaded bytes."""

    file_url: str
    file_name: str
    name: str | None = None


@dataclass(slots=True, frozen=True)
class FileContent:
    content: bytes
    content_type: str | None = None


@runtime_checkable
class ResourceStore(Protocol):
    """Generic resource CRUD against the remote store."""

    async def fetch(
        self,
        resource_type: str,
        *,
        filters: Sequence[Filter] | None = None,
        fields: Sequence[str] | None = None,
        limit: int | None = None,
        order_by: str | None = None,
    ) -> list[Record]: ...

    async def get(self, resource_type: str, key: str) -> Record | None: ...

    async def create(self, resource_type: str, payload: Mapping[str, object]) -> Record: ...

    async def update(
        self, resource_type: str, key: str, payload: Mapping[str, object]
    ) -> Record: ...


@runtime_checkable
class FileStore(Protocol):
    """Stores uploaded bytes and serves them back.

    ``attached_to`` is a ``(resource_type, key)`` pair the stored file is linked to.
    """

    async def upload_file(
        self,
        filename: str,
        content: bytes,
        *,
        content_type: str | None = None,
        is_private: bool = True,
        folder: str | None = None,
        attached_to: tuple[str, str] | None = None,
    ) -> FileReference: ...

    async def download_file(self, file_url: str) -> FileContent: ...


__all__ = [
    "FileContent",
    "FileReference",
    "FileStore",
    "Filter",
    "Record",
    "ResourceStore",
    "eq",
]
