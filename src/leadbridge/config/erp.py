"""Remote business-records store configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from leadbridge.domain.normalization import DEFAULT_LOCALES as DEFAULT_COUNTRY_LOCALES
from leadbridge.domain.selection import SelectionEncoding

from .env import optional_env_var, optional_float_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0


def format_authorization(credential: str) -> str:
    """Return ``credential`` in the ``token key:secret`` form the store expects."""

    credential = credential.strip()
    if not credential:
        return credential
    lowered = credential.lower()
    if lowered.startswith("token "):
        return "token " + credential[len("token ") :]
    if lowered.startswith("bearer "):
        return "token " + credential[len("bearer ") :]
    if ":" in credential:
        return f"token {credential}"
    return credential


@dataclass(frozen=True, slots=True)
class RemoteConfig:
    """Holds the remote store endpoint, credential and request behaviour."""

    endpoint: str
    credential: str
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    selection_encoding: SelectionEncoding = SelectionEncoding.CSV
    country_locales: tuple[str, ...] = DEFAULT_COUNTRY_LOCALES
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None

    def __post_init__(self) -> None:
        if not self.endpoint.strip():
            raise ConfigurationError("Remote endpoint must not be blank")
        if not self.credential.strip():
            raise ConfigurationError("Remote credential must not be blank")
        if self.request_timeout <= 0:
            raise ConfigurationError("Request timeout must be positive")

    @property
    def resilience(self) -> ResilienceConfig:
        return ResilienceConfig(
            name="erp",
            base_url=self.endpoint.rstrip("/"),
            timeout_seconds=self.request_timeout,
            retry=self.retry,
            ratelimit=self.ratelimit,
            default_headers={
                "Authorization": format_authorization(self.credential),
                "Accept": "application/json",
            },
        )


def get_remote_config() -> RemoteConfig:
    values = require_env_vars(("ERP_BASE_URL", "ERP_API_TOKEN"))
    encoding_raw = optional_env_var("ERP_SELECTION_ENCODING", SelectionEncoding.CSV.value)
    try:
        encoding = SelectionEncoding(encoding_raw.lower())
    except ValueError as exc:
        raise ConfigurationError(
            f"ERP_SELECTION_ENCODING must be one of csv, json; got {encoding_raw!r}"
        ) from exc
    locales_raw = optional_env_var("ERP_COUNTRY_LOCALES", ",".join(DEFAULT_COUNTRY_LOCALES))
    locales = tuple(part.strip() for part in locales_raw.split(",") if part.strip())

    return RemoteConfig(
        endpoint=values["ERP_BASE_URL"],
        credential=values["ERP_API_TOKEN"],
        request_timeout=optional_float_env_var(
            "ERP_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS
        ),
        selection_encoding=encoding,
        country_locales=locales or DEFAULT_COUNTRY_LOCALES,
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
    )
