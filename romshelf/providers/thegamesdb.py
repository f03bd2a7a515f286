"""TheGamesDB metadata provider (v1 REST API)."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from romshelf.config.consoles import Console
from romshelf.providers.base import GameMetadata, MetadataProvider
from romshelf.providers.errors import (
    AuthFailedError,
    NetworkError,
    NotFoundError,
    ParseError,
    PlatformUnsupportedError,
    RateLimitedError,
)
from romshelf.providers.http_client import download_to_file
from romshelf.scanner.rom_types import ROMInfo

logger = logging.getLogger(__name__)

THEGAMESDB_API_URL = "https://api.thegamesdb.net/v1"


def _boxart_base_url(boxart: Dict[str, Any]) -> str:
    base_url = boxart.get('base_url', '')
    # The API returns one base URL per image size
    if isinstance(base_url, dict):
        base_url = base_url.get('original') or next(iter(base_url.values()), '')
    return str(base_url or '')


def select_boxart_url(payload: Dict[str, Any], game_id: Any) -> Optional[str]:
    """
    Pick the box art URL for a game, preferring the front side.

    Args:
        payload: Decoded Games/ByGameName response
        game_id: Id of the chosen game

    Returns:
        Absolute image URL, or None if the game has no box art
    """
    include = payload.get('include') or {}
    boxart = include.get('boxart') if isinstance(include, dict) else None
    if not isinstance(boxart, dict):
        return None

    data = boxart.get('data') or {}
    images = data.get(str(game_id)) if isinstance(data, dict) else None
    if not isinstance(images, list) or not images:
        return None

    base_url = _boxart_base_url(boxart)
    for image in images:
        if image.get('side') == 'front' and image.get('filename'):
            return f"{base_url}{image['filename']}"

    first = images[0].get('filename')
    return f"{base_url}{first}" if first else None


def parse_game(game: Dict[str, Any]) -> GameMetadata:
    rating = None
    if game.get('rating') is not None:
        try:
            rating = float(game['rating'])
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-numeric rating: {game['rating']}")

    players = game.get('players')
    return GameMetadata(
        name=game.get('game_title') or "Unknown",
        description=game.get('overview'),
        release_date=game.get('release_date'),
        players=str(players) if players is not None else None,
        rating=rating,
    )


class TheGamesDBProvider(MetadataProvider):
    """
    Metadata and box art from TheGamesDB.

    Games are looked up by file stem, filtered by the console's platform id.
    TheGamesDB reports an exhausted key allowance as HTTP 403, which is
    treated as a rate limit.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str] = None,
        base_url: str = THEGAMESDB_API_URL
    ):
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')

    @property
    def name(self) -> str:
        return "TheGamesDB"

    async def authenticate(self, credentials: Dict[str, Any]) -> None:
        api_key = credentials.get('api_key')
        if not api_key:
            raise AuthFailedError("TheGamesDB api_key is required")
        self.api_key = str(api_key)

    async def search(self, rom: ROMInfo, console: Console) -> GameMetadata:
        if console.thegamesdb_id is None:
            raise PlatformUnsupportedError(f"TheGamesDB has no id for {console.name}")
        if not self.api_key:
            raise AuthFailedError("TheGamesDB api_key is not configured")

        params = {
            'apikey': self.api_key,
            'name': rom.basename,
            'filter[platform]': str(console.thegamesdb_id),
            'include': 'boxart',
        }

        try:
            response = await self.client.get(f"{self.base_url}/Games/ByGameName", params=params)
        except httpx.HTTPError as e:
            raise NetworkError(f"TheGamesDB request failed: {e}")

        if response.status_code == 403:
            raise RateLimitedError("TheGamesDB allowance exhausted (HTTP 403)")
        if not response.is_success:
            raise NetworkError(f"TheGamesDB HTTP error: {response.status_code}")

        try:
            payload = response.json()
            games = payload['data']['games']
        except (ValueError, KeyError, TypeError) as e:
            raise ParseError(f"Invalid TheGamesDB response: {e}")

        if not games:
            raise NotFoundError(f"No TheGamesDB match for '{rom.basename}'")

        game = games[0]
        metadata = parse_game(game)
        metadata.image_url = select_boxart_url(payload, game.get('id'))
        return metadata

    async def download_image(self, url: str, destination: Path) -> None:
        await download_to_file(self.client, url, destination)
