import httpx
import pytest

from romshelf.config.loader import DEFAULT_CONFIG, merge_dicts
from romshelf.providers.errors import AuthFailedError
from romshelf.providers.gamefaqs import GameFAQsProvider
from romshelf.providers.registry import ProviderConfigError, build_providers
from romshelf.providers.screenscraper import ScreenScraperProvider
from romshelf.providers.thegamesdb import TheGamesDBProvider


def _config(**scraping):
    return merge_dicts(DEFAULT_CONFIG, {
        "scraping": scraping,
        "providers": {
            "screenscraper": {"devid": "dev", "devpassword": "pw", "region_preferences": ["eu", "us"]},
            "thegamesdb": {"api_key": "key"},
            "gamefaqs": {"host": "gopher.example", "port": 7070},
        },
        "api": {"request_timeout": 12},
    })


@pytest.mark.unit
@pytest.mark.asyncio
async def test_build_providers_in_configured_order():
    config = _config(metadata_providers=["thegamesdb", "screenscraper"], guide_providers=["gamefaqs"])

    async with httpx.AsyncClient() as client:
        metadata, guides = await build_providers(config, client)

    assert [type(p) for p in metadata] == [TheGamesDBProvider, ScreenScraperProvider]
    assert metadata[1].region_preferences == ["eu", "us"]

    assert len(guides) == 1
    gamefaqs = guides[0]
    assert isinstance(gamefaqs, GameFAQsProvider)
    assert (gamefaqs.host, gamefaqs.port, gamefaqs.timeout) == ("gopher.example", 7070, 12)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_build_providers_with_empty_lists():
    async with httpx.AsyncClient() as client:
        metadata, guides = await build_providers(
            _config(metadata_providers=["thegamesdb"], guide_providers=[]), client
        )

    assert [p.name for p in metadata] == ["TheGamesDB"]
    assert guides == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_provider_rejected():
    async with httpx.AsyncClient() as client:
        with pytest.raises(ProviderConfigError):
            await build_providers(_config(metadata_providers=["mobygames"], guide_providers=[]), client)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_credentials_fail_authentication():
    config = _config(metadata_providers=["screenscraper"], guide_providers=[])
    config["providers"]["screenscraper"] = {}

    async with httpx.AsyncClient() as client:
        with pytest.raises(AuthFailedError):
            await build_providers(config, client)
