"""ROM type definitions and data structures."""

from dataclasses import dataclass
from pathlib import Path

from romshelf.config.consoles import Console


@dataclass(frozen=True)
class ROMInfo:
    """
    Information about a scanned ROM file.

    This is the primary data structure passed through the scraping pipeline.
    """
    path: Path                      # Absolute path to ROM file
    filename: str                   # Filename with extension (display name)
    basename: str                   # Filename without extension (media/guide names)
    console: Console                # Console the ROM's folder was matched to
    file_size: int = 0              # File size in bytes

    @property
    def console_dir(self) -> Path:
        """Directory holding the ROM (its console folder)."""
        return self.path.parent

    @property
    def console_name(self) -> str:
        return self.console.name

    def get_visited_path(self) -> str:
        """Path recorded in the visited log: '<console folder>/<filename>'."""
        return f"{self.console_dir.name}/{self.filename}"
