"""
Completion cache for scrape outcomes

Records "nothing found" outcomes as marker files so later runs can skip
ROMs that every provider already rejected, and keeps the last session's
progress and recent results for resume/status display.

Layout under the cache directory:

    metadata_not_found/<console>/<rom>.marker
    guides_not_found/<console>/<rom>.marker
    progress.json
    results.json

Keys are sanitized by replacing path-hostile characters with '_'. Names that
differ only in those characters share a marker (e.g. 'A:B' and 'A_B').
"""

import json
import logging
import shutil
from enum import Enum
from pathlib import Path
from typing import List, Optional

from romshelf.workflow.status import RecentResult, SessionProgress

logger = logging.getLogger(__name__)

MAX_RECENT_RESULTS = 10

_UNSAFE_CHARS = '/\\:*?"<>|'


class CacheCategory(Enum):
    """Scrape categories tracked by the completion cache."""
    METADATA = "metadata"
    GUIDES = "guides"


def sanitize_key(name: str) -> str:
    """
    Make a console or ROM name safe for use as a path component.

    Args:
        name: Raw name

    Returns:
        Name with unsafe characters replaced by '_'
    """
    safe = ''.join('_' if ch in _UNSAFE_CHARS else ch for ch in name)
    if safe in ('', '.', '..'):
        safe = '_' + safe
    return safe


class CompletionCache:
    """
    Filesystem-resident completion markers and session snapshots

    All writes are best-effort: failures are logged and never raised, a
    missing marker simply means the ROM is tried again.

    Example:
        cache = CompletionCache(roms_dir / '.romshelf' / 'cache')
        cache.init()

        if not cache.has_failed(CacheCategory.METADATA, 'SNES', 'game.sfc'):
            ...
            cache.mark_not_found(CacheCategory.METADATA, 'SNES', 'game.sfc')
    """

    def __init__(self, cache_dir: Path):
        """
        Initialize completion cache

        Args:
            cache_dir: Root directory of the cache tree
        """
        self.cache_dir = Path(cache_dir)
        self.progress_file = self.cache_dir / "progress.json"
        self.results_file = self.cache_dir / "results.json"

    def init(self) -> None:
        """Create the cache directory tree."""
        try:
            for category in CacheCategory:
                self._category_dir(category).mkdir(parents=True, exist_ok=True)
            logger.debug(f"Completion cache ready: {self.cache_dir}")
        except OSError as e:
            logger.warning(f"Failed to create cache directory {self.cache_dir}: {e}")

    def _category_dir(self, category: CacheCategory) -> Path:
        return self.cache_dir / f"{category.value}_not_found"

    def _marker_path(self, category: CacheCategory, console: str, rom_name: str) -> Path:
        return (
            self._category_dir(category)
            / sanitize_key(console)
            / f"{sanitize_key(rom_name)}.marker"
        )

    # ------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------

    def has_failed(self, category: CacheCategory, console: str, rom_name: str) -> bool:
        """Check whether a not-found marker exists for this ROM."""
        return self._marker_path(category, console, rom_name).exists()

    def mark_not_found(self, category: CacheCategory, console: str, rom_name: str) -> None:
        """Record that every provider reported nothing for this ROM."""
        marker = self._marker_path(category, console, rom_name)
        try:
            marker.parent.mkdir(parents=True, exist_ok=True)
            marker.write_text("")
            logger.debug(f"Marked {category.value} not found: {console}/{rom_name}")
        except OSError as e:
            logger.warning(f"Failed to write cache marker {marker}: {e}")

    def clear(self, category: CacheCategory, console: str, rom_name: str) -> None:
        """Remove the not-found marker for this ROM, if any."""
        marker = self._marker_path(category, console, rom_name)
        try:
            marker.unlink()
            logger.debug(f"Cleared {category.value} marker: {console}/{rom_name}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove cache marker {marker}: {e}")

    # ------------------------------------------------------------------
    # Session snapshots
    # ------------------------------------------------------------------

    def _write_json(self, path: Path, data) -> None:
        # Atomic write: write to temp file, then rename
        temp_file = path.with_suffix('.tmp')
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            temp_file.replace(path)
        except OSError as e:
            logger.warning(f"Failed to write {path}: {e}")
            if temp_file.exists():
                temp_file.unlink()

    def _read_json(self, path: Path):
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    def save_progress(self, progress: SessionProgress) -> None:
        self._write_json(self.progress_file, progress.to_dict())

    def load_progress(self) -> Optional[SessionProgress]:
        """
        Load the last saved session progress.

        Returns:
            SessionProgress, or None if absent or unreadable
        """
        data = self._read_json(self.progress_file)
        if not isinstance(data, dict):
            return None
        try:
            return SessionProgress.from_dict(data)
        except TypeError as e:
            logger.warning(f"Ignoring malformed progress snapshot: {e}")
            return None

    def add_result(self, result: RecentResult) -> None:
        """Insert a result at the front of the bounded recent-results list."""
        results = self.load_results()
        results.insert(0, result)
        del results[MAX_RECENT_RESULTS:]
        self._write_json(self.results_file, [r.to_dict() for r in results])

    def load_results(self) -> List[RecentResult]:
        """Load recent results, newest first."""
        data = self._read_json(self.results_file)
        if not isinstance(data, list):
            return []

        results = []
        for entry in data:
            try:
                results.append(RecentResult.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed recent result: {e}")
        return results

    def clear_session(self) -> None:
        """Remove progress and recent results (markers are kept)."""
        for path in (self.progress_file, self.results_file):
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Failed to remove {path}: {e}")

    def clear_all(self) -> None:
        """Remove the entire cache tree."""
        if not self.cache_dir.exists():
            return
        try:
            shutil.rmtree(self.cache_dir)
            logger.info(f"Cleared completion cache: {self.cache_dir}")
        except OSError as e:
            logger.warning(f"Failed to clear cache {self.cache_dir}: {e}")
