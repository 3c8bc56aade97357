"""Pydantic models and envelope helpers for the remote resource API payloads."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import cast

from pydantic import BaseModel, ConfigDict, Field

_TAG_RE = re.compile(r"<[^>]+>")


class ErpBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ErrorEnvelope(ErpBaseModel):
    exc_type: str | None = None
    exception: str | None = None
    message: object = None
    server_messages: str | None = Field(default=None, alias="_server_messages")

    def summary(self) -> str | None:
        """Return the most specific human-readable message in the envelope."""

        for message in _decode_server_messages(self.server_messages):
            return message
        if isinstance(self.message, str) and self.message.strip():
            return _strip_tags(self.message)
        if self.exception:
            return self.exception.strip()
        return None


class UploadedFile(ErpBaseModel):
    file_url: str
    file_name: str | None = None
    name: str | None = None


class UploadResponse(ErpBaseModel):
    message: UploadedFile


def _strip_tags(value: str) -> str:
    return _TAG_RE.sub("", value).strip()


def _decode_server_messages(raw: str | None) -> list[str]:
    # ``_server_messages`` is a JSON list of JSON-encoded objects with a ``message`` key.
    if not raw:
        return []
    try:
        outer = json.loads(raw)
    except json.JSONDecodeError:
        return [_strip_tags(raw)]
    if not isinstance(outer, list):
        return []
    messages: list[str] = []
    for item in cast(list[object], outer):
        decoded: object = item
        if isinstance(item, str):
            try:
                decoded = json.loads(item)
            except json.JSONDecodeError:
                decoded = item
        if isinstance(decoded, Mapping):
            text = cast(Mapping[str, object], decoded).get("message")
            if isinstance(text, str) and text.strip():
                messages.append(_strip_tags(text))
        elif isinstance(decoded, str) and decoded.strip():
            messages.append(_strip_tags(decoded))
    return messages


def _records_in(value: object) -> list[dict[str, object]]:
    if not isinstance(value, list):
        return []
    return [
        dict(cast(Mapping[str, object], item))
        for item in cast(list[object], value)
        if isinstance(item, Mapping)
    ]


def unwrap_records(payload: object) -> list[dict[str, object]]:
    """Normalise the list envelopes the store returns into a plain list of records.

    Tries ``{"data": [...]}``, a bare list and ``{"message": [...]}`` in that order;
    the first non-empty match wins and anything else yields an empty list.
    """

    candidates: list[object] = []
    if isinstance(payload, Mapping):
        mapping = cast(Mapping[str, object], payload)
        candidates.append(mapping.get("data"))
    else:
        candidates.append(None)
    candidates.append(payload)
    if isinstance(payload, Mapping):
        candidates.append(cast(Mapping[str, object], payload).get("message"))

    for candidate in candidates:
        records = _records_in(candidate)
        if records:
            return records
    return []


def unwrap_record(payload: object) -> dict[str, object]:
    """Return the single record carried by a get/create/update response."""

    if not isinstance(payload, Mapping):
        return {}
    mapping = cast(Mapping[str, object], payload)
    for key in ("data", "message"):
        inner = mapping.get(key)
        if isinstance(inner, Mapping):
            return dict(cast(Mapping[str, object], inner))
    return dict(mapping)
