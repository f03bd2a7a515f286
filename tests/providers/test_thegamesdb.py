import httpx
import pytest
import pytest_asyncio
import respx

from romshelf.providers.errors import (
    AuthFailedError,
    NetworkError,
    NotFoundError,
    ParseError,
    PlatformUnsupportedError,
    RateLimitedError,
)
from romshelf.providers.thegamesdb import TheGamesDBProvider, parse_game, select_boxart_url

API_HOST = "api.thegamesdb.net"
API_PATH = "/v1/Games/ByGameName"

GAMES_PAYLOAD = {
    "code": 200,
    "data": {
        "count": 1,
        "games": [
            {
                "id": 136,
                "game_title": "Super Mario World",
                "release_date": "1990-11-21",
                "players": 2,
                "overview": "Mario and Luigi visit Dinosaur Land.",
                "rating": "E - Everyone",
            }
        ],
    },
    "include": {
        "boxart": {
            "base_url": {
                "original": "https://cdn.thegamesdb.net/images/original/",
                "small": "https://cdn.thegamesdb.net/images/small/",
            },
            "data": {
                "136": [
                    {"id": 1, "side": "back", "filename": "boxart/back/136-1.jpg"},
                    {"id": 2, "side": "front", "filename": "boxart/front/136-1.jpg"},
                ]
            },
        }
    },
}


@pytest_asyncio.fixture
async def provider():
    async with httpx.AsyncClient() as client:
        provider = TheGamesDBProvider(client)
        await provider.authenticate({"api_key": "key123"})
        yield provider


@pytest.mark.unit
def test_select_boxart_prefers_front():
    assert select_boxart_url(GAMES_PAYLOAD, 136) == (
        "https://cdn.thegamesdb.net/images/original/boxart/front/136-1.jpg"
    )


@pytest.mark.unit
def test_select_boxart_falls_back_to_first_image():
    payload = {
        "include": {
            "boxart": {
                "base_url": "https://cdn.example/",
                "data": {"7": [{"side": "back", "filename": "back.jpg"}]},
            }
        }
    }
    assert select_boxart_url(payload, 7) == "https://cdn.example/back.jpg"
    assert select_boxart_url(payload, 8) is None
    assert select_boxart_url({}, 7) is None


@pytest.mark.unit
def test_parse_game_ignores_non_numeric_rating():
    metadata = parse_game(GAMES_PAYLOAD["data"]["games"][0])
    assert metadata.name == "Super Mario World"
    assert metadata.players == "2"
    assert metadata.rating is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_authenticate_requires_api_key():
    async with httpx.AsyncClient() as client:
        with pytest.raises(AuthFailedError):
            await TheGamesDBProvider(client).authenticate({})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_search_by_name_and_platform(provider, make_rom, snes_console):
    rom = make_rom("SFC", "Super Mario World.sfc")

    with respx.mock:
        route = respx.get(host=API_HOST, path=API_PATH).mock(
            return_value=httpx.Response(200, json=GAMES_PAYLOAD)
        )
        metadata = await provider.search(rom, snes_console)

    params = route.calls.last.request.url.params
    assert params["name"] == "Super Mario World"
    assert params["filter[platform]"] == "6"
    assert params["apikey"] == "key123"
    assert metadata.release_date == "1990-11-21"
    assert metadata.image_url.endswith("boxart/front/136-1.jpg")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_search_no_games_is_not_found(provider, make_rom, snes_console):
    rom = make_rom("SFC", "Homebrew.sfc")
    payload = {"data": {"count": 0, "games": []}}

    with respx.mock:
        respx.get(host=API_HOST, path=API_PATH).mock(return_value=httpx.Response(200, json=payload))
        with pytest.raises(NotFoundError):
            await provider.search(rom, snes_console)


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("response,error", [
    (httpx.Response(403, text="allowance"), RateLimitedError),
    (httpx.Response(500, text="oops"), NetworkError),
    (httpx.Response(200, text="not json"), ParseError),
    (httpx.Response(200, json={"data": {}}), ParseError),
])
async def test_search_errors(provider, make_rom, snes_console, response, error):
    rom = make_rom("SFC", "Zelda.sfc")

    with respx.mock:
        respx.get(host=API_HOST, path=API_PATH).mock(return_value=response)
        with pytest.raises(error):
            await provider.search(rom, snes_console)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_search_unsupported_console(provider, make_rom, snes_console):
    from romshelf.config.consoles import Console

    rom = make_rom("SFC", "Zelda.sfc")
    with pytest.raises(PlatformUnsupportedError):
        await provider.search(rom, Console(name="Vectrex", patterns=("VECTREX",)))
