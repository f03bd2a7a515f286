"""
Shared pytest fixtures and utilities for the romshelf test suite.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
import yaml

from romshelf.config.consoles import Console, ConsolesConfig
from romshelf.providers.base import GameMetadata, GuideProvider, MetadataProvider
from romshelf.scanner.rom_types import ROMInfo
from romshelf.workflow.options import ScrapeOptions


SNES = Console(
    name="SNES",
    patterns=("SNES", "SFC"),
    screenscraper_id=4,
    thegamesdb_id=6,
    gamefaqs_archive_id="snes",
)

NES = Console(
    name="NES",
    patterns=("NES", "FC"),
    screenscraper_id=3,
    thegamesdb_id=7,
    gamefaqs_archive_id="nes",
)

# Only known to one provider
ODYSSEY = Console(name="Odyssey", patterns=("ODYSSEY",), thegamesdb_id=4961)


class FakeMetadataProvider(MetadataProvider):
    """
    Scripted metadata provider.

    Each search() consumes the next outcome: a GameMetadata is returned,
    an exception is raised. The last outcome repeats once the script runs out.
    """

    def __init__(self, name: str, outcomes: List[Union[GameMetadata, Exception]],
                 download_error: Optional[Exception] = None):
        self._name = name
        self.outcomes = list(outcomes)
        self.download_error = download_error
        self.searched: List[str] = []
        self.downloaded: List[Path] = []

    @property
    def name(self) -> str:
        return self._name

    async def search(self, rom, console):
        self.searched.append(rom.filename)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def download_image(self, url, destination):
        if self.download_error is not None:
            raise self.download_error
        destination.write_bytes(b"\x89PNG fake")
        self.downloaded.append(destination)


class FakeGuideProvider(GuideProvider):
    """Scripted guide provider returning the same handles (or error) every time."""

    def __init__(self, name: str, outcome: Union[List[str], Exception],
                 failing_handles: tuple = (), download_error: Optional[Exception] = None):
        self._name = name
        self.outcome = outcome
        self.failing_handles = failing_handles
        self.download_error = download_error
        self.searched: List[str] = []
        self.downloaded: List[str] = []

    @property
    def name(self) -> str:
        return self._name

    async def search_guides(self, rom, console):
        self.searched.append(rom.filename)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return list(self.outcome)

    async def download_guide(self, handle, destination):
        from romshelf.providers.errors import NetworkError

        if handle in self.failing_handles:
            if self.download_error is not None:
                raise self.download_error
            raise NetworkError(f"gopher error for {handle}")
        destination.write_text(f"guide {handle}")
        self.downloaded.append(handle)


@pytest.fixture
def metadata_provider_factory() -> Callable[..., FakeMetadataProvider]:
    return FakeMetadataProvider


@pytest.fixture
def guide_provider_factory() -> Callable[..., FakeGuideProvider]:
    return FakeGuideProvider


@pytest.fixture
def game_metadata() -> GameMetadata:
    return GameMetadata(
        name="Super Mario World",
        developer="Nintendo EAD",
        publisher="Nintendo",
        genre="Platform",
        release_date="1990-11-21",
        rating=0.9,
        image_url="https://images.example/smw.png",
    )


@pytest.fixture
def consoles() -> ConsolesConfig:
    return ConsolesConfig([SNES, NES, ODYSSEY])


@pytest.fixture
def snes_console() -> Console:
    return SNES


@pytest.fixture
def odyssey_console() -> Console:
    return ODYSSEY


@pytest.fixture
def roms_root(tmp_path: Path) -> Path:
    root = tmp_path / "Roms"
    root.mkdir()
    return root


@pytest.fixture
def make_rom(roms_root: Path) -> Callable[..., ROMInfo]:
    """
    Create a ROM file under the ROM root and return its ROMInfo.

    Usage:
        rom = make_rom("SFC", "Super Mario World.sfc", SNES)
    """

    def _builder(folder: str, filename: str, console: Console = SNES,
                 content: bytes = b"rom-data") -> ROMInfo:
        console_dir = roms_root / folder
        console_dir.mkdir(parents=True, exist_ok=True)
        path = console_dir / filename
        path.write_bytes(content)
        return ROMInfo(
            path=path,
            filename=filename,
            basename=path.stem,
            console=console,
            file_size=len(content),
        )

    return _builder


@pytest.fixture
def options(roms_root: Path) -> ScrapeOptions:
    return ScrapeOptions(roms_path=roms_root, box_art_width=None)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[[Optional[Dict[str, Any]]], Path]:
    """
    Create a minimal config.yaml in a temp directory.

    Usage:
        path = make_config({"runtime": {"ui": "headless"}})
    """

    def _builder(overrides: Optional[Dict[str, Any]] = None) -> Path:
        base = {
            "paths": {
                "roms": str(tmp_path / "Roms"),
            },
            "scraping": {
                "metadata_providers": ["screenscraper", "thegamesdb"],
                "guide_providers": ["gamefaqs"],
            },
            "providers": {
                "screenscraper": {
                    "devid": "test-dev",
                    "devpassword": "test-dev-password",
                },
                "thegamesdb": {
                    "api_key": "test-key",
                },
            },
            "runtime": {"ui": "headless"},
        }
        if overrides:
            base = merge_dicts(base, overrides)

        cfg_path = tmp_path / "config.yaml"
        cfg_path.write_text(yaml.safe_dump(base))
        return cfg_path

    return _builder


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow+deep merge helper for fixture config dictionaries.
    """
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result
