"""Console catalogue loading and folder matching."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONSOLES_FILE = Path(__file__).parent / "consoles.yaml"


class ConsolesError(Exception):
    """Console catalogue errors."""
    pass


@dataclass(frozen=True)
class Console:
    """
    A game console and its identifiers at each provider.

    Attributes:
        name: Display name (e.g., 'SNES')
        patterns: Folder names that identify this console (case-insensitive)
        screenscraper_id: ScreenScraper systemeid
        thegamesdb_id: TheGamesDB platform id
        gamefaqs_archive_id: Platform folder in the GameFAQs gopher archive
    """
    name: str
    patterns: Tuple[str, ...] = ()
    screenscraper_id: Optional[int] = None
    thegamesdb_id: Optional[int] = None
    gamefaqs_archive_id: Optional[str] = None

    def matches(self, folder_name: str) -> bool:
        folder = folder_name.lower()
        return any(pattern.lower() == folder for pattern in self.patterns)


class ConsolesConfig:
    """
    Ordered collection of known consoles.

    Example:
        consoles = ConsolesConfig.load()
        snes = consoles.find_console('SFC')
    """

    def __init__(self, consoles: List[Console]):
        self.consoles = list(consoles)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "ConsolesConfig":
        """
        Load the console catalogue from YAML.

        Args:
            path: Catalogue file. Uses the bundled consoles.yaml if None.

        Returns:
            ConsolesConfig instance

        Raises:
            ConsolesError: If the file cannot be read or has an invalid layout
        """
        path = Path(path).expanduser() if path else DEFAULT_CONSOLES_FILE

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConsolesError(f"Invalid YAML in consoles file {path}: {e}")
        except OSError as e:
            raise ConsolesError(f"Failed to read consoles file {path}: {e}")

        if not isinstance(data, dict) or not isinstance(data.get('consoles'), list):
            raise ConsolesError(f"Consoles file must contain a 'consoles' list: {path}")

        consoles = []
        for index, entry in enumerate(data['consoles']):
            if not isinstance(entry, dict) or not entry.get('name'):
                raise ConsolesError(f"Console entry {index} is missing a name")

            patterns = entry.get('patterns') or [entry['name']]
            if not isinstance(patterns, list):
                raise ConsolesError(f"Console '{entry['name']}': patterns must be a list")

            consoles.append(Console(
                name=str(entry['name']),
                patterns=tuple(str(p) for p in patterns),
                screenscraper_id=entry.get('screenscraper_id'),
                thegamesdb_id=entry.get('thegamesdb_id'),
                gamefaqs_archive_id=entry.get('gamefaqs_archive_id'),
            ))

        logger.debug(f"Loaded {len(consoles)} consoles from {path}")
        return cls(consoles)

    def find_console(self, folder_name: str) -> Optional[Console]:
        """Return the first console whose patterns match a folder name."""
        for console in self.consoles:
            if console.matches(folder_name):
                return console
        return None

    def get(self, name: str) -> Optional[Console]:
        for console in self.consoles:
            if console.name == name:
                return console
        return None

    def all_patterns(self) -> List[str]:
        return [pattern for console in self.consoles for pattern in console.patterns]

    def __len__(self) -> int:
        return len(self.consoles)

    def __iter__(self):
        return iter(self.consoles)
