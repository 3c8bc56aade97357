"""Error taxonomy shared by the reconciliation engine and its adapters."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


class LeadBridgeError(Exception):
    """Base class for all engine errors."""


class ValidationError(LeadBridgeError):
    """Caller input is missing or malformed; raised before any remote call."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


@dataclass(slots=True, frozen=True)
class TrailEntry:
    """One failed (or empty) attempt recorded while searching for a record."""

    attempt: str
    outcome: str
    status: int | None = None

    def __str__(self) -> str:
        suffix = f" ({self.status})" if self.status is not None else ""
        return f"{self.attempt}: {self.outcome}{suffix}"


class NotFoundError(LeadBridgeError):
    """Every lookup strategy or candidate name was exhausted without a match."""

    def __init__(
        self,
        message: str,
        *,
        tried: Sequence[str] = (),
        trail: Sequence[TrailEntry] = (),
    ) -> None:
        super().__init__(message)
        self.tried = tuple(tried)
        self.trail = tuple(trail)


class RemoteError(LeadBridgeError):
    """Transport failure or non-2xx response from the remote store."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        exc_type: str | None = None,
        server_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.exc_type = exc_type
        self.server_message = server_message

    @property
    def display_message(self) -> str:
        return self.server_message or str(self)


class ConflictError(RemoteError):
    """The remote store rejected a write because of a uniqueness violation."""


class DegradedWriteError(LeadBridgeError):
    """A secondary representation was rejected and dropped from a write."""

    def __init__(self, fields: tuple[str, ...], cause: RemoteError) -> None:
        names = ", ".join(fields)
        super().__init__(f"Write rejected while carrying {names}; retrying without: {cause}")
        self.fields = fields
        self.cause = cause


class ExtractionError(LeadBridgeError):
    """The text-extraction collaborator failed or returned unusable output."""
