"""
GameFAQs archive guide provider (gopher protocol)

The archive mirror serves one gopher directory per game:

    /gamefaqs-archive/<platform>/<normalized game name>

Text entries (item type '0') ending in .txt are the guides.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from romshelf.config.consoles import Console
from romshelf.providers.base import GuideProvider
from romshelf.providers.errors import NetworkError, PlatformUnsupportedError, ProviderIOError
from romshelf.scanner.rom_types import ROMInfo

logger = logging.getLogger(__name__)

DEFAULT_HOST = "gopher.endangeredsoft.org"
DEFAULT_PORT = 70
DEFAULT_TIMEOUT = 30.0

_LEADING_NUMBER_RE = re.compile(r"^\d+[.)]")
_TRAILING_TAGS_RE = re.compile(r"[(\[].+[)\]]$")
_STRIP_RE = re.compile(r"[^a-z0-9 -]")


@dataclass
class GopherEntry:
    """One line of a gopher directory listing"""
    item_type: str  # '0' = text file, '1' = directory, '3' = error
    display_name: str
    path: str


def normalize_game_name(stem: str) -> str:
    """
    Convert a ROM file stem to the archive's directory naming.

    Leading list numbers ('01.') and trailing region/revision tags are
    dropped, '&' becomes 'and', and the rest is lowercased and hyphenated.

    Args:
        stem: File name without extension

    Returns:
        Normalized name (e.g., 'mario-and-luigi-superstar-saga')
    """
    name = _LEADING_NUMBER_RE.sub("", stem, count=1)
    name = _TRAILING_TAGS_RE.sub("", name, count=1)
    name = name.strip().lower()
    name = name.replace('&', ' and ')
    name = name.replace('é', 'e')
    name = _STRIP_RE.sub("", name).replace('-', ' ')
    return '-'.join(name.split())


def parse_gopher_line(line: str) -> Optional[GopherEntry]:
    """
    Parse a gopher directory line.

    Returns:
        GopherEntry, or None for blank or malformed lines
    """
    if not line:
        return None

    parts = line[1:].split('\t')
    if len(parts) < 2:
        return None

    return GopherEntry(item_type=line[0], display_name=parts[0], path=parts[1])


def parse_directory(content: str) -> List[GopherEntry]:
    entries = []
    for line in content.splitlines():
        if line == '.':
            break
        entry = parse_gopher_line(line)
        if entry:
            entries.append(entry)
    return entries


class GameFAQsProvider(GuideProvider):
    """Text guides from the GameFAQs gopher archive."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT
    ):
        self.host = host
        self.port = port
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "GameFAQs"

    async def authenticate(self, credentials: Dict[str, Any]) -> None:
        self.host = credentials.get('host', self.host)
        self.port = int(credentials.get('port', self.port))

    async def _fetch(self, selector: str) -> str:
        """
        Send a gopher request and read the whole response.

        Raises:
            NetworkError: On connection failure or timeout
        """
        try:
            return await asyncio.wait_for(self._request(selector), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise NetworkError(f"Gopher request timed out: {selector}")
        except OSError as e:
            raise NetworkError(f"Gopher request to {self.host}:{self.port} failed: {e}")

    async def _request(self, selector: str) -> str:
        reader, writer = await asyncio.open_connection(self.host, self.port)
        try:
            writer.write(f"{selector}\r\n".encode('utf-8'))
            await writer.drain()
            data = await reader.read()
        finally:
            writer.close()
            await writer.wait_closed()
        return data.decode('utf-8', errors='replace')

    async def search_guides(self, rom: ROMInfo, console: Console) -> List[str]:
        if not console.gamefaqs_archive_id:
            raise PlatformUnsupportedError(f"GameFAQs archive has no folder for {console.name}")

        selector = f"/gamefaqs-archive/{console.gamefaqs_archive_id}/{normalize_game_name(rom.basename)}"
        logger.debug(f"Searching GameFAQs guides: {selector}")

        entries = parse_directory(await self._fetch(selector))
        # A missing game directory comes back as an error item, i.e. no guides
        return [
            entry.path for entry in entries
            if entry.item_type == '0' and entry.path.endswith('.txt')
        ]

    async def download_guide(self, handle: str, destination: Path) -> None:
        content = await self._fetch(handle)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(content, encoding='utf-8')
        except OSError as e:
            raise ProviderIOError(f"Failed to save guide {destination}: {e}")
