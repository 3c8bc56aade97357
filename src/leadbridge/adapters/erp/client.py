"""HTTP client for the remote store's generic resource API."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError as SchemaValidationError

from leadbridge.adapters.http_resilience import ResilientClient
from leadbridge.domain.errors import ConflictError, RemoteError
from leadbridge.domain.ports import FileContent, FileReference

from .schema import ErrorEnvelope, UploadResponse, unwrap_record, unwrap_records

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Mapping, Sequence
    from types import TracebackType

    from leadbridge.config.erp import RemoteConfig
    from leadbridge.config.http_resilience import ResilienceConfig
    from leadbridge.domain.ports import Filter, Record

log = getLogger(__name__)

RESOURCE_PATH = "/api/resource"
UPLOAD_PATH = "/api/method/upload_file"
PRIVATE_FILES_PREFIX = "/private/files/"
PUBLIC_FILES_PREFIX = "/files/"

_CONFLICT_EXC_TYPES = frozenset({"DuplicateEntryError", "UniqueValidationError"})
_CONFLICT_MARKERS = ("must be unique", "duplicate entry", "duplicateentryerror")


def _resource_path(resource_type: str, key: str | None = None) -> str:
    path = f"{RESOURCE_PATH}/{quote(resource_type, safe='')}"
    if key is not None:
        path = f"{path}/{quote(key, safe='')}"
    return path


def _is_conflict(status: int, exc_type: str | None, message: str | None) -> bool:
    if status == 409:
        return True
    if exc_type and exc_type.rsplit(".", 1)[-1] in _CONFLICT_EXC_TYPES:
        return True
    lowered = (message or "").lower()
    return any(marker in lowered for marker in _CONFLICT_MARKERS)


def _error_from_response(method: str, path: str, response: httpx.Response) -> RemoteError:
    envelope: ErrorEnvelope | None = None
    try:
        envelope = ErrorEnvelope.model_validate(response.json())
    except (ValueError, SchemaValidationError):
        envelope = None

    if envelope is not None:
        server_message = envelope.summary()
        exc_type = envelope.exc_type
        detail = " ".join(filter(None, (server_message, envelope.exception)))
    else:
        server_message = response.text.strip()[:200] or None
        exc_type = None
        detail = server_message

    message = f"{method} {path} returned {response.status_code}"
    if server_message:
        message = f"{message}: {server_message}"
    conflict = _is_conflict(response.status_code, exc_type, detail)
    error_cls = ConflictError if conflict else RemoteError
    return error_cls(
        message,
        status=response.status_code,
        exc_type=exc_type,
        server_message=server_message,
    )


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class RemoteResourceClient:
    """Generic CRUD wrapper around the store's ``/api/resource`` surface.

    Use as an async context manager to share one connection pool across calls;
    outside a session every call opens and closes its own client.
    """

    def __init__(
        self,
        *,
        config: RemoteConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or _default_client_factory
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> RemoteResourceClient:
        self._client = self._client_factory(self._resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def fetch(
        self,
        resource_type: str,
        *,
        filters: Sequence[Filter] | None = None,
        fields: Sequence[str] | None = None,
        limit: int | None = None,
        order_by: str | None = None,
    ) -> list[Record]:
        params: dict[str, str] = {}
        if filters:
            params["filters"] = json.dumps([item.as_wire() for item in filters], ensure_ascii=False)
        if fields:
            params["fields"] = json.dumps(list(fields))
        if limit is not None:
            params["limit_page_length"] = str(limit)
        if order_by:
            params["order_by"] = order_by

        payload = await self._request("GET", _resource_path(resource_type), params=params)
        return unwrap_records(payload)

    async def get(self, resource_type: str, key: str) -> Record | None:
        try:
            payload = await self._request("GET", _resource_path(resource_type, key))
        except RemoteError as exc:
            if exc.status == 404:
                return None
            raise
        record = unwrap_record(payload)
        return record or None

    async def create(self, resource_type: str, payload: Mapping[str, object]) -> Record:
        body = {key: value for key, value in payload.items() if key != "name"}
        response = await self._request("POST", _resource_path(resource_type), json_body=body)
        return unwrap_record(response)

    async def update(
        self, resource_type: str, key: str, payload: Mapping[str, object]
    ) -> Record:
        body = {name: value for name, value in payload.items() if name != "name"}
        response = await self._request("PUT", _resource_path(resource_type, key), json_body=body)
        return unwrap_record(response)

    async def upload_file(
        self,
        filename: str,
        content: bytes,
        *,
        content_type: str | None = None,
        is_private: bool = True,
        folder: str | None = None,
        attached_to: tuple[str, str] | None = None,
    ) -> FileReference:
        data = {"is_private": "1" if is_private else "0"}
        if folder:
            data["folder"] = folder
        if attached_to is not None:
            data["doctype"], data["docname"] = attached_to
        files = {"file": (filename, content, content_type or "application/octet-stream")}
        payload = await self._request("POST", UPLOAD_PATH, data=data, files=files)
        try:
            uploaded = UploadResponse.model_validate(payload).message
        except SchemaValidationError as exc:
            raise RemoteError(f"Unexpected upload response for {filename!r}") from exc
        return FileReference(
            file_url=uploaded.file_url,
            file_name=uploaded.file_name or filename,
            name=uploaded.name,
        )

    async def download_file(self, file_url: str) -> FileContent:
        """Fetch stored file bytes with the store credential.

        Private paths that are missing are retried under the public ``/files/`` prefix,
        which is where installations without private storage keep them.
        """

        try:
            response = await self._send("GET", file_url)
        except RemoteError as exc:
            if exc.status != 404 or not file_url.startswith(PRIVATE_FILES_PREFIX):
                raise
            public_url = PUBLIC_FILES_PREFIX + file_url[len(PRIVATE_FILES_PREFIX) :]
            log.debug("%s not found; trying %s", file_url, public_url)
            response = await self._send("GET", public_url)
        return FileContent(
            content=response.content,
            content_type=response.headers.get("content-type"),
        )

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[ResilientClient]:
        if self._client is not None:
            yield self._client
            return
        async with self._client_factory(self._resilience) as client:
            yield client

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: object = None,
        data: Mapping[str, str] | None = None,
        files: Mapping[str, tuple[str, bytes, str]] | None = None,
    ) -> httpx.Response:
        try:
            async with self._session() as client:
                response = await client.request(
                    method,
                    path,
                    params=dict(params) if params else None,
                    json=json_body,
                    data=dict(data) if data else None,
                    files=dict(files) if files else None,
                )
        except httpx.TimeoutException as exc:
            raise RemoteError(
                f"{method} {path} timed out after {self._resilience.timeout_seconds}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            error = _error_from_response(method, path, response)
            log.debug("Remote error: %s", error)
            raise error
        return response

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: object = None,
        data: Mapping[str, str] | None = None,
        files: Mapping[str, tuple[str, bytes, str]] | None = None,
    ) -> object:
        response = await self._send(
            method, path, params=params, json_body=json_body, data=data, files=files
        )
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(
                f"{method} {path} returned an unparseable body",
                status=response.status_code,
            ) from exc
