"""
Library storage for scraped item records

Layout under the data directory (<roms>/.romshelf):

    games/<console>_<rom name without extension>.json
    games.txt     append-only index of processed ROM names
    crawled       append-only visited log ('<console folder>/<filename>')
"""

import json
import logging
import shutil
from pathlib import Path
from typing import List, Optional

from romshelf.scanner.rom_types import ROMInfo
from romshelf.workflow.status import ItemResult

logger = logging.getLogger(__name__)

DATA_DIR_NAME = ".romshelf"

_RECORD_UNSAFE_CHARS = '/\\:'


def data_dir_for(roms_path: Path) -> Path:
    """Return the data directory for a ROM root."""
    return Path(roms_path) / DATA_DIR_NAME


def record_filename(console: str, basename: str) -> str:
    """Build the per-item record filename ('/', '\\' and ':' become '_')."""
    raw = f"{console}_{basename}"
    return ''.join('_' if ch in _RECORD_UNSAFE_CHARS else ch for ch in raw) + ".json"


class LibraryStore:
    """
    Persists per-item results and the append-only logs.

    save_item() and the append methods raise OSError so the caller decides
    how to report a failed write; loads never raise.
    """

    def __init__(self, data_dir: Path):
        """
        Initialize storage.

        Args:
            data_dir: Data directory (usually <roms>/.romshelf)
        """
        self.data_dir = Path(data_dir)
        self.games_dir = self.data_dir / "games"
        self.index_file = self.data_dir / "games.txt"
        self.visited_file = self.data_dir / "crawled"

    def record_path(self, rom: ROMInfo) -> Path:
        return self.games_dir / record_filename(rom.console_name, rom.basename)

    def load_item(self, rom: ROMInfo) -> Optional[ItemResult]:
        """
        Load the previously stored record for a ROM.

        Returns:
            ItemResult, or None if there is no readable record
        """
        path = self.record_path(rom)
        if not path.exists():
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return ItemResult.from_dict(json.load(f))
        except (json.JSONDecodeError, OSError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable record {path}: {e}")
            return None

    def save_item(self, rom: ROMInfo, result: ItemResult) -> Path:
        """
        Write a ROM's record, replacing any previous one.

        Returns:
            Path of the written record

        Raises:
            OSError: If the record cannot be written
        """
        path = self.record_path(rom)
        path.parent.mkdir(parents=True, exist_ok=True)

        temp_file = path.with_suffix('.tmp')
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(result.to_dict(), f, indent=2)
            temp_file.replace(path)
        except OSError:
            if temp_file.exists():
                temp_file.unlink()
            raise

        logger.debug(f"Saved record: {path.name}")
        return path

    def _append_line(self, path: Path, line: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'a', encoding='utf-8') as f:
            f.write(f"{line}\n")

    def append_index(self, result: ItemResult) -> None:
        """Append the ROM name to the library index."""
        self._append_line(self.index_file, result.rom_name)

    def append_visited(self, rom: ROMInfo) -> None:
        """Append the ROM's path to the visited log."""
        self._append_line(self.visited_file, rom.get_visited_path())

    def load_index(self) -> List[str]:
        if not self.index_file.exists():
            return []
        try:
            return self.index_file.read_text(encoding='utf-8').splitlines()
        except OSError as e:
            logger.warning(f"Failed to read index {self.index_file}: {e}")
            return []

    def clear(self) -> None:
        """Remove stored records, the index and the visited log."""
        try:
            if self.games_dir.exists():
                shutil.rmtree(self.games_dir)
            for path in (self.index_file, self.visited_file):
                if path.exists():
                    path.unlink()
            logger.info(f"Cleared stored library data in {self.data_dir}")
        except OSError as e:
            logger.warning(f"Failed to clear library data in {self.data_dir}: {e}")
