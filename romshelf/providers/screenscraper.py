"""ScreenScraper metadata provider (jeuInfos.php, JSON output)."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

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
    get_error_message,
)
from romshelf.providers.http_client import download_to_file
from romshelf.scanner.hash_calculator import calculate_crc32
from romshelf.scanner.rom_types import ROMInfo

logger = logging.getLogger(__name__)

SCREENSCRAPER_API_URL = "https://api.screenscraper.fr/api2"
DEFAULT_BOX_ART_TYPE = "box-2D"
DEFAULT_REGION_PREFERENCES = ["us", "wor", "eu", "jp", "ss"]
IMAGE_MAX_WIDTH = 250
IMAGE_MAX_HEIGHT = 360

_REDACTED_PARAMS = ('devpassword', 'sspassword')


def _first_text(value: Any) -> Optional[str]:
    """Return value[0]['text'] from a ScreenScraper localized list."""
    if isinstance(value, list) and value and isinstance(value[0], dict):
        text = value[0].get('text')
        return str(text) if text is not None else None
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, dict) and value.get('text') is not None:
        return str(value['text'])
    return None


def parse_game_metadata(payload: Dict[str, Any]) -> GameMetadata:
    """
    Extract game metadata from a jeuInfos.php response.

    Args:
        payload: Decoded JSON body

    Returns:
        GameMetadata without image URLs

    Raises:
        ParseError: If the response has no 'jeu' element
    """
    response = payload.get('response') if isinstance(payload.get('response'), dict) else {}
    jeu = response.get('jeu') or payload.get('jeu')
    if not isinstance(jeu, dict):
        raise ParseError("Missing 'jeu' field")

    genre = None
    genres = jeu.get('genres')
    if isinstance(genres, list) and genres and isinstance(genres[0], dict):
        genre = _first_text(genres[0].get('noms'))

    rating = None
    rating_text = _first_text(jeu.get('classifications'))
    if rating_text is not None:
        try:
            rating = float(rating_text)
        except ValueError:
            logger.debug(f"Ignoring non-numeric rating: {rating_text}")

    return GameMetadata(
        name=_first_text(jeu.get('noms')) or "Unknown",
        description=_first_text(jeu.get('synopsis')),
        release_date=_first_text(jeu.get('dates')),
        developer=_text(jeu.get('developpeur')),
        publisher=_text(jeu.get('editeur')),
        genre=genre,
        players=_text(jeu.get('joueurs')),
        rating=rating,
    )


def select_media_url(
    payload: Dict[str, Any],
    media_type: str,
    region_preferences: List[str]
) -> Optional[str]:
    """
    Pick the media URL of a type, best region first.

    Args:
        payload: Decoded JSON body
        media_type: ScreenScraper media type (e.g., 'box-2D')
        region_preferences: Regions in order of preference

    Returns:
        URL string, or None if no media of that type exists
    """
    response = payload.get('response') if isinstance(payload.get('response'), dict) else {}
    jeu = response.get('jeu') or payload.get('jeu') or {}
    medias = jeu.get('medias') if isinstance(jeu, dict) else None
    if not isinstance(medias, list):
        return None

    matching = [
        m for m in medias
        if isinstance(m, dict) and m.get('type') == media_type and m.get('url')
    ]

    def region_rank(media: Dict[str, Any]) -> int:
        region = media.get('region', 'unknown')
        if region in region_preferences:
            return region_preferences.index(region)
        return len(region_preferences)

    # list.sort is stable: equal ranks keep API order
    matching.sort(key=region_rank)
    return matching[0]['url'] if matching else None


class ScreenScraperProvider(MetadataProvider):
    """
    Metadata and box art from ScreenScraper.

    ROMs are identified by file name, size and CRC32. Developer credentials
    (devid/devpassword/softname) come from configuration; user credentials
    (username/password) are optional and raise the account's quota.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        box_art_type: str = DEFAULT_BOX_ART_TYPE,
        region_preferences: Optional[List[str]] = None,
        base_url: str = SCREENSCRAPER_API_URL
    ):
        self.client = client
        self.box_art_type = box_art_type
        self.region_preferences = region_preferences or list(DEFAULT_REGION_PREFERENCES)
        self.base_url = base_url.rstrip('/')
        self._auth_params: Dict[str, str] = {}

    @property
    def name(self) -> str:
        return "ScreenScraper"

    async def authenticate(self, credentials: Dict[str, Any]) -> None:
        """
        Store developer and optional user credentials.

        Args:
            credentials: providers.screenscraper config section

        Raises:
            AuthFailedError: If developer credentials are missing
        """
        devid = credentials.get('devid')
        devpassword = credentials.get('devpassword')
        if not devid or not devpassword:
            raise AuthFailedError("ScreenScraper developer credentials (devid/devpassword) are required")

        self._auth_params = {
            'devid': str(devid),
            'devpassword': str(devpassword),
            'softname': str(credentials.get('softname') or 'romshelf'),
        }
        username = credentials.get('username')
        password = credentials.get('password')
        if username and password:
            self._auth_params['ssid'] = str(username)
            self._auth_params['sspassword'] = str(password)

        if credentials.get('box_art_type'):
            self.box_art_type = credentials['box_art_type']
        if credentials.get('region_preferences'):
            self.region_preferences = list(credentials['region_preferences'])

        logger.debug(f"ScreenScraper configured (user: {username or 'anonymous'})")

    def _redact(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            k: ('***' if k in _REDACTED_PARAMS else v) for k, v in params.items()
        }

    async def _query_game(self, params: Dict[str, Any]) -> Dict[str, Any]:
        query = {**self._auth_params, 'output': 'json', **params}
        logger.debug(f"ScreenScraper query: {self._redact(query)}")

        try:
            response = await self.client.get(f"{self.base_url}/jeuInfos.php", params=query)
        except httpx.HTTPError as e:
            raise NetworkError(f"ScreenScraper request failed: {e}")

        status = response.status_code
        if status == 200:
            try:
                return response.json()
            except ValueError as e:
                raise ParseError(f"Invalid JSON from ScreenScraper: {e}")

        message = get_error_message(status)
        if status == 403:
            raise AuthFailedError(message)
        if status == 404:
            raise NotFoundError(message)
        if 429 <= status <= 431:
            raise RateLimitedError(message)
        raise NetworkError(f"{message}: {response.text[:200]}")

    async def search(self, rom: ROMInfo, console: Console) -> GameMetadata:
        if console.screenscraper_id is None:
            raise PlatformUnsupportedError(f"ScreenScraper has no id for {console.name}")
        if not self._auth_params:
            raise AuthFailedError("ScreenScraper is not authenticated")

        params: Dict[str, Any] = {
            'romnom': rom.filename,
            'systemeid': str(console.screenscraper_id),
            'romtype': 'rom',
        }

        # Size and CRC are optional hints; an unreadable file is still searched by name
        try:
            params['romtaille'] = str(rom.path.stat().st_size)
            crc = await asyncio.to_thread(calculate_crc32, rom.path)
            if crc:
                params['crc'] = crc
        except OSError as e:
            logger.debug(f"Could not hash {rom.path}: {e}")

        payload = await self._query_game(params)
        metadata = parse_game_metadata(payload)
        metadata.image_url = select_media_url(payload, self.box_art_type, self.region_preferences)
        return metadata

    async def download_image(self, url: str, destination: Path) -> None:
        await download_to_file(
            self.client,
            url,
            destination,
            params={'maxwidth': IMAGE_MAX_WIDTH, 'maxheight': IMAGE_MAX_HEIGHT},
        )
