"""Remote business-records store adapter."""

from __future__ import annotations

from .client import RemoteResourceClient
from .schema import ErrorEnvelope, unwrap_record, unwrap_records

__all__ = [
    "ErrorEnvelope",
    "RemoteResourceClient",
    "unwrap_record",
    "unwrap_records",
]
