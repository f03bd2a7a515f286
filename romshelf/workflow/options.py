"""Scrape session options derived from configuration."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from romshelf.config.loader import get_config_value


@dataclass
class ScrapeOptions:
    """Settings that shape one scraping session"""
    roms_path: Path
    images_folder: str = "Imgs"
    guides_folder: str = "Guides"
    box_art_width: Optional[int] = None
    refresh: bool = False
    consoles_file: Optional[Path] = None

    @classmethod
    def from_config(cls, config: dict) -> "ScrapeOptions":
        consoles_file = get_config_value(config, 'paths.consoles')
        return cls(
            roms_path=Path(get_config_value(config, 'paths.roms', '.')).expanduser(),
            images_folder=get_config_value(config, 'scraping.images_folder', 'Imgs'),
            guides_folder=get_config_value(config, 'scraping.guides_folder', 'Guides'),
            box_art_width=get_config_value(config, 'scraping.box_art_width'),
            refresh=bool(get_config_value(config, 'scraping.refresh', False)),
            consoles_file=Path(consoles_file).expanduser() if consoles_file else None,
        )
