"""Build and authenticate the configured providers in priority order."""

import logging
from typing import List, Tuple

import httpx

from romshelf.providers.base import GuideProvider, MetadataProvider
from romshelf.providers.gamefaqs import GameFAQsProvider
from romshelf.providers.screenscraper import ScreenScraperProvider
from romshelf.providers.thegamesdb import TheGamesDBProvider

logger = logging.getLogger(__name__)

METADATA_PROVIDERS = ('screenscraper', 'thegamesdb')
GUIDE_PROVIDERS = ('gamefaqs',)


class ProviderConfigError(Exception):
    """Unknown or unusable provider configuration."""
    pass


def _create_metadata_provider(key: str, client: httpx.AsyncClient) -> MetadataProvider:
    if key == 'screenscraper':
        return ScreenScraperProvider(client)
    if key == 'thegamesdb':
        return TheGamesDBProvider(client)
    raise ProviderConfigError(f"Unknown metadata provider: {key}")


def _create_guide_provider(key: str, config: dict) -> GuideProvider:
    if key == 'gamefaqs':
        timeout = config.get('api', {}).get('request_timeout', 30)
        return GameFAQsProvider(timeout=timeout)
    raise ProviderConfigError(f"Unknown guide provider: {key}")


async def build_providers(
    config: dict,
    client: httpx.AsyncClient
) -> Tuple[List[MetadataProvider], List[GuideProvider]]:
    """
    Create the providers listed under 'scraping' and authenticate them.

    Args:
        config: Configuration dictionary
        client: Shared HTTP client for HTTP-based providers

    Returns:
        Tuple of (metadata providers, guide providers), each in configured order

    Raises:
        ProviderConfigError: If a provider name is unknown
        AuthFailedError: If a provider rejects its credentials
    """
    scraping = config.get('scraping', {})
    credentials = config.get('providers', {})

    metadata_providers = []
    for key in scraping.get('metadata_providers', []):
        provider = _create_metadata_provider(key, client)
        await provider.authenticate(credentials.get(key) or {})
        metadata_providers.append(provider)

    guide_providers = []
    for key in scraping.get('guide_providers', []):
        provider = _create_guide_provider(key, config)
        await provider.authenticate(credentials.get(key) or {})
        guide_providers.append(provider)

    logger.info(
        "Providers: metadata=[%s] guides=[%s]",
        ", ".join(p.name for p in metadata_providers),
        ", ".join(p.name for p in guide_providers),
    )
    return metadata_providers, guide_providers
