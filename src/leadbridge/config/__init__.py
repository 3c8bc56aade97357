"""Application configuration helpers."""

from __future__ import annotations

from leadbridge.common.logging import configure_logging

from .env import optional_env_var, optional_float_env_var, require_env_vars
from .erp import RemoteConfig, SelectionEncoding, format_authorization, get_remote_config
from .errors import ConfigurationError, MissingConfigurationError
from .extraction import ExtractionConfig, get_extraction_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

__all__ = [
    "ConfigurationError",
    "ExtractionConfig",
    "MissingConfigurationError",
    "RateLimit",
    "RemoteConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "SelectionEncoding",
    "configure_logging",
    "format_authorization",
    "get_extraction_config",
    "get_remote_config",
    "optional_env_var",
    "optional_float_env_var",
    "require_env_vars",
]
