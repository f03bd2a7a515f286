"""Provider capability interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from romshelf.config.consoles import Console
from romshelf.scanner.rom_types import ROMInfo


@dataclass
class GameMetadata:
    """Metadata returned by a successful provider search."""
    name: str
    description: Optional[str] = None
    release_date: Optional[str] = None
    developer: Optional[str] = None
    publisher: Optional[str] = None
    genre: Optional[str] = None
    players: Optional[str] = None
    rating: Optional[float] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None


class MetadataProvider(ABC):
    """
    A backend that can identify a ROM and supply box art.

    Implementations raise the exceptions from romshelf.providers.errors;
    the scraping workflow decides how each one is handled.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used for logging and backoff bookkeeping."""

    async def authenticate(self, credentials: Dict[str, Any]) -> None:
        """
        Prepare the provider for use.

        Args:
            credentials: Provider section from the configuration

        Raises:
            AuthFailedError: If required credentials are missing or rejected
        """

    @abstractmethod
    async def search(self, rom: ROMInfo, console: Console) -> GameMetadata:
        """
        Look up a ROM.

        Raises:
            NotFoundError, RateLimitedError, AuthFailedError,
            PlatformUnsupportedError, NetworkError, ParseError
        """

    @abstractmethod
    async def download_image(self, url: str, destination: Path) -> None:
        """
        Download box art to destination.

        Raises:
            NetworkError, ProviderIOError
        """

    async def close(self) -> None:
        """Release network resources."""


class GuideProvider(ABC):
    """A backend that can list and download text guides for a ROM."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used for logging and backoff bookkeeping."""

    async def authenticate(self, credentials: Dict[str, Any]) -> None:
        """Prepare the provider for use (no-op by default)."""

    @abstractmethod
    async def search_guides(self, rom: ROMInfo, console: Console) -> List[str]:
        """
        List guide handles for a ROM.

        Returns:
            Guide handles (possibly empty)
        """

    @abstractmethod
    async def download_guide(self, handle: str, destination: Path) -> None:
        """
        Download one guide to destination.

        Raises:
            NetworkError, ProviderIOError
        """

    async def close(self) -> None:
        """Release network resources."""
