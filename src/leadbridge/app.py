"""Application wiring: configured adapters plugged into the onboarding engine."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from leadbridge.adapters.erp import RemoteResourceClient
from leadbridge.adapters.extraction import OpenAITextExtractor
from leadbridge.config import get_extraction_config, get_remote_config
from leadbridge.domain.onboarding import OnboardingService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from leadbridge.config import ExtractionConfig, RemoteConfig
    from leadbridge.domain.normalization import CatalogEntry
    from leadbridge.domain.onboarding import WizardState
    from leadbridge.domain.ports import Record


log = getLogger(__name__)


def build_onboarding_service(
    client: RemoteResourceClient, config: RemoteConfig
) -> OnboardingService:
    return OnboardingService(
        client,
        client,
        selection_encoding=config.selection_encoding,
        country_locales=config.country_locales,
    )


@asynccontextmanager
async def onboarding_session(
    config: RemoteConfig | None = None,
) -> AsyncIterator[OnboardingService]:
    """Yield an onboarding service sharing one remote connection pool."""

    effective_config = config or get_remote_config()
    async with RemoteResourceClient(config=effective_config) as client:
        yield build_onboarding_service(client, effective_config)


def build_text_extractor(config: ExtractionConfig | None = None) -> OpenAITextExtractor:
    return OpenAITextExtractor(config or get_extraction_config())


async def _resolve_reference(reference: str, config: RemoteConfig | None) -> Record:
    async with onboarding_session(config) as service:
        return await service.validate_reference(reference)


async def _load_lead(email: str, config: RemoteConfig | None) -> WizardState | None:
    async with onboarding_session(config) as service:
        return await service.load(email)


async def _list_services(config: RemoteConfig | None) -> list[CatalogEntry]:
    async with onboarding_session(config) as service:
        return await service.list_services()


def resolve_reference(reference: str, *, config: RemoteConfig | None = None) -> Record:
    """Resolve a sales-person reference against the configured store."""

    log.info("Resolving reference %r", reference)
    return asyncio.run(_resolve_reference(reference, config))


def load_lead(email: str, *, config: RemoteConfig | None = None) -> WizardState | None:
    log.info("Loading wizard state for %s", email)
    return asyncio.run(_load_lead(email, config))


def list_service_catalog(*, config: RemoteConfig | None = None) -> list[CatalogEntry]:
    return asyncio.run(_list_services(config))


__all__ = [
    "build_onboarding_service",
    "build_text_extractor",
    "list_service_catalog",
    "load_lead",
    "onboarding_session",
    "resolve_reference",
]
