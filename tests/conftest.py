from __future__ import annotations

import os

import pytest

_CONFIG_PREFIXES = ("ERP_", "OPENAI_")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's shell or .env settings out of the tests."""

    for name in list(os.environ):
        if name.startswith(_CONFIG_PREFIXES):
            monkeypatch.delenv(name)
