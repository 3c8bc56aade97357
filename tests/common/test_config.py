from __future__ import annotations

import pytest

from leadbridge.config import (
    ConfigurationError,
    MissingConfigurationError,
    RemoteConfig,
    SelectionEncoding,
    get_extraction_config,
    get_remote_config,
    optional_float_env_var,
    require_env_vars,
)


@pytest.fixture
def remote_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    monkeypatch.setenv("ERP_BASE_URL", "https://erp.example.com/")
    monkeypatch.setenv("ERP_API_TOKEN", "key:secret")
    for name in ("ERP_SELECTION_ENCODING", "ERP_COUNTRY_LOCALES", "ERP_REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", " value ")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert exc.value.names == ("BLANK_VAR", "MISSING_VAR")
    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_remote_config_defaults(remote_env: pytest.MonkeyPatch) -> None:
    config = get_remote_config()

    assert config.endpoint == "https://erp.example.com/"
    assert config.selection_encoding is SelectionEncoding.CSV
    assert config.country_locales == ("en", "de", "tr")
    assert config.request_timeout == 30.0
    resilience = config.resilience
    assert resilience.base_url == "https://erp.example.com"
    assert resilience.default_headers is not None
    assert resilience.default_headers["Authorization"] == "token key:secret"


def test_remote_config_reads_overrides(remote_env: pytest.MonkeyPatch) -> None:
    remote_env.setenv("ERP_SELECTION_ENCODING", "JSON")
    remote_env.setenv("ERP_COUNTRY_LOCALES", "en, fr")
    remote_env.setenv("ERP_REQUEST_TIMEOUT", "5")

    config = get_remote_config()

    assert config.selection_encoding is SelectionEncoding.JSON
    assert config.country_locales == ("en", "fr")
    assert config.request_timeout == 5.0


def test_remote_config_rejects_unknown_encoding(remote_env: pytest.MonkeyPatch) -> None:
    remote_env.setenv("ERP_SELECTION_ENCODING", "xml")

    with pytest.raises(ConfigurationError, match="ERP_SELECTION_ENCODING"):
        get_remote_config()


def test_remote_config_requires_endpoint(remote_env: pytest.MonkeyPatch) -> None:
    remote_env.delenv("ERP_BASE_URL")

    with pytest.raises(MissingConfigurationError, match="ERP_BASE_URL"):
        get_remote_config()


@pytest.mark.parametrize("raw", ["soon", "0", "-1"])
def test_timeouts_must_be_positive_numbers(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("EXAMPLE_TIMEOUT", raw)

    with pytest.raises(ConfigurationError, match="EXAMPLE_TIMEOUT"):
        optional_float_env_var("EXAMPLE_TIMEOUT", 1.0)


def test_remote_config_validates_its_values() -> None:
    with pytest.raises(ConfigurationError):
        RemoteConfig(endpoint=" ", credential="key:secret")
    with pytest.raises(ConfigurationError):
        RemoteConfig(endpoint="https://erp", credential="key:secret", request_timeout=0)


def test_extraction_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.delenv("OPENAI_MODEL", raising=False)
    monkeypatch.delenv("OPENAI_TIMEOUT", raising=False)

    config = get_extraction_config()

    assert config.api_key == "sk-test"
    assert config.model == "gpt-4o-mini"
