"""Main ROM scanner implementation."""

import logging
from pathlib import Path
from typing import List, Optional

from romshelf.config.consoles import Console, ConsolesConfig
from romshelf.scanner.rom_types import ROMInfo

logger = logging.getLogger(__name__)

# Sidecar files written by frontends next to ROMs
IGNORED_EXTENSIONS = {'xml', 'miyoocmd', 'cfg', 'db', 'nfo'}

DEFAULT_IMAGES_FOLDER = "Imgs"


class ScannerError(Exception):
    """ROM scanning errors."""
    pass


class RomScanner:
    """
    Discovers ROMs below a root directory.

    Each top-level folder whose name matches a console pattern is treated as
    that console's ROM folder; every regular, non-hidden file inside it that
    is not a known sidecar is a ROM. Entries are visited in sorted order so
    repeated scans of the same tree give the same item order.
    """

    def __init__(self, consoles: ConsolesConfig, images_folder: str = DEFAULT_IMAGES_FOLDER):
        """
        Initialize scanner.

        Args:
            consoles: Console catalogue used to recognise folders
            images_folder: Name of the per-console box-art folder to ignore
        """
        self.consoles = consoles
        self.images_folder = images_folder

    def scan_directory(self, root: Path) -> List[ROMInfo]:
        """
        Scan a ROM root for all console folders and their ROMs.

        Args:
            root: ROM root directory

        Returns:
            List of ROMInfo objects in deterministic order

        Raises:
            ScannerError: If the root directory cannot be read
        """
        root = Path(root)
        if not root.is_dir():
            raise ScannerError(f"ROM path is not a directory: {root}")

        try:
            entries = sorted(root.iterdir(), key=lambda p: p.name)
        except PermissionError:
            raise ScannerError(f"Permission denied accessing ROM directory: {root}")
        except OSError as e:
            raise ScannerError(f"Failed to scan ROM directory {root}: {e}")

        roms = []
        for entry in entries:
            if not entry.is_dir() or entry.name.startswith('.'):
                continue

            console = self.consoles.find_console(entry.name)
            if console is None:
                logger.debug(f"Skipping unrecognised folder: {entry.name}")
                continue

            console_roms = self._scan_console_dir(entry, console)
            logger.info(f"Found {len(console_roms)} ROMs for {console.name} in {entry.name}")
            roms.extend(console_roms)

        logger.info(f"Scan complete: {len(roms)} ROMs found")
        return roms

    def _scan_console_dir(self, console_dir: Path, console: Console) -> List[ROMInfo]:
        try:
            entries = sorted(console_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            # One unreadable console folder does not stop the scan
            logger.warning(f"Failed to read {console_dir}: {e}")
            return []

        roms = []
        for entry in entries:
            rom_info = self._process_entry(entry, console)
            if rom_info:
                roms.append(rom_info)
        return roms

    def _process_entry(self, entry: Path, console: Console) -> Optional[ROMInfo]:
        """
        Build ROMInfo for a single filesystem entry.

        Returns:
            ROMInfo, or None if the entry is not a ROM
        """
        name = entry.name
        if name.startswith('.') or name == self.images_folder:
            return None
        if not entry.is_file():
            return None

        extension = entry.suffix.lstrip('.').lower()
        if extension in IGNORED_EXTENSIONS:
            return None

        try:
            file_size = entry.stat().st_size
        except OSError:
            file_size = 0

        return ROMInfo(
            path=entry,
            filename=name,
            basename=entry.stem,
            console=console,
            file_size=file_size,
        )
