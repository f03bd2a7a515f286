"""
Scraping session orchestration

Coordinates one scraping session: scan the ROM root, process every ROM in
scan order through the ItemProcessor, persist each result and report
progress. Items are processed strictly one at a time; cancellation is
checked before each item, so an in-flight item always finishes.
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from romshelf.config.consoles import ConsolesConfig
from romshelf.providers.base import GuideProvider, MetadataProvider
from romshelf.scanner.rom_scanner import RomScanner
from romshelf.scanner.rom_types import ROMInfo
from romshelf.ui.event_bus import EventBus
from romshelf.ui.events import ProgressEvent
from romshelf.workflow.backoff import BackoffRegistry
from romshelf.workflow.completion_cache import CompletionCache
from romshelf.workflow.item_processor import ItemProcessor
from romshelf.workflow.options import ScrapeOptions
from romshelf.workflow.status import ItemResult, RecentResult, SessionProgress
from romshelf.workflow.storage import LibraryStore, data_dir_for

logger = logging.getLogger(__name__)


class OrchestratorError(Exception):
    """Setup errors that prevent a session from starting."""
    pass


@dataclass
class SessionSummary:
    """Outcome of one scraping session"""
    total: int
    completed: int
    success: int
    fail: int
    skip: int
    cancelled: bool


class SessionOrchestrator:
    """
    Runs scraping sessions over a ROM root.

    Example:
        orchestrator = SessionOrchestrator(options, event_bus=bus)
        summary = await orchestrator.run(metadata_providers, guide_providers, cancel_event)
    """

    def __init__(
        self,
        options: ScrapeOptions,
        event_bus: Optional[EventBus] = None,
        consoles: Optional[ConsolesConfig] = None,
        store: Optional[LibraryStore] = None,
        cache: Optional[CompletionCache] = None,
        backoff_factory=BackoffRegistry
    ):
        """
        Initialize orchestrator.

        Args:
            options: Session options
            event_bus: Optional bus receiving ProgressEvent
            consoles: Console catalogue (loaded from options.consoles_file if None)
            store: Library storage (defaults to <roms>/.romshelf)
            cache: Completion cache (defaults to <roms>/.romshelf/cache)
            backoff_factory: Callable creating a fresh BackoffRegistry per run
        """
        self.options = options
        self.event_bus = event_bus
        self.consoles = consoles
        data_dir = data_dir_for(options.roms_path)
        self.store = store or LibraryStore(data_dir)
        self.cache = cache or CompletionCache(data_dir / "cache")
        self.backoff_factory = backoff_factory
        self.progress = SessionProgress()

    def _emit(self, message: str, item_update: Optional[ItemResult] = None, active: bool = True) -> None:
        """Log a progress message and publish it (never blocks)."""
        if item_update is not None:
            logger.info(f"{item_update.status.symbol} [{item_update.rom_name}] {message}")
        else:
            logger.info(message)

        if self.event_bus is None:
            return

        self.event_bus.publish_nowait(ProgressEvent(
            message=message,
            total=self.progress.total,
            completed=self.progress.completed,
            success_count=self.progress.success_count,
            fail_count=self.progress.fail_count,
            skip_count=self.progress.skip_count,
            current_rom=self.progress.current_rom,
            item_update=copy.deepcopy(item_update) if item_update is not None else None,
            active=active,
        ))

    def reset_library(self) -> None:
        """Remove the completion cache and all stored records (full reset)."""
        self.cache.clear_all()
        self.store.clear()

    def _load_consoles(self) -> ConsolesConfig:
        if self.consoles is None:
            self.consoles = ConsolesConfig.load(self.options.consoles_file)
        return self.consoles

    async def run(
        self,
        metadata_providers: List[MetadataProvider],
        guide_providers: List[GuideProvider],
        cancel_event: Optional[asyncio.Event] = None
    ) -> SessionSummary:
        """
        Run one scraping session.

        Args:
            metadata_providers: Metadata providers in priority order
            guide_providers: Guide providers in priority order
            cancel_event: Set to request a stop at the next item boundary

        Returns:
            SessionSummary with final counters

        Raises:
            OrchestratorError: If no provider is configured
            ConsolesError: If the console catalogue cannot be loaded
            ScannerError: If the ROM root cannot be read
        """
        if not metadata_providers and not guide_providers:
            raise OrchestratorError("No providers configured")

        consoles = self._load_consoles()

        if self.options.refresh:
            logger.info("Refresh requested: clearing cache and stored results")
            self.reset_library()

        scanner = RomScanner(consoles, images_folder=self.options.images_folder)
        roms = scanner.scan_directory(self.options.roms_path)

        self.cache.init()
        self.cache.clear_session()
        self.progress = SessionProgress(total=len(roms))
        self._emit(f"Found {len(roms)} ROMs to process")
        self.cache.save_progress(self.progress)

        processor = ItemProcessor(
            metadata_providers,
            guide_providers,
            self.options,
            self.cache,
            self.backoff_factory(),
            self.store,
            emit=self._emit,
        )

        cancelled = False
        for rom in roms:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                self._emit("Scraping cancelled by user")
                break

            self.progress.current_rom = rom.filename
            logger.debug(f"Processing {rom.console_name}/{rom.filename}")
            result = await processor.process(rom)

            self.progress.record(result.status)
            self._persist(rom, result)
            self._emit(f"Completed: {rom.filename} ({result.status.value})", result)

        self.progress.current_rom = None
        self.cache.save_progress(self.progress)

        summary = SessionSummary(
            total=self.progress.total,
            completed=self.progress.completed,
            success=self.progress.success_count,
            fail=self.progress.fail_count,
            skip=self.progress.skip_count,
            cancelled=cancelled,
        )
        self._emit(
            f"Scraping {'cancelled' if cancelled else 'complete'}! "
            f"Total: {summary.total}, Success: {summary.success}, "
            f"Skipped: {summary.skip}, Failed: {summary.fail}",
            active=False,
        )
        return summary

    def _persist(self, rom: ROMInfo, result: ItemResult) -> None:
        """Save the record and logs; write failures are logged, not raised."""
        writes = (
            ("record", lambda: self.store.save_item(rom, result)),
            ("index entry", lambda: self.store.append_index(result)),
            ("visited entry", lambda: self.store.append_visited(rom)),
        )
        for label, write in writes:
            try:
                write()
            except OSError as e:
                logger.warning(f"Failed to save {label} for {rom.filename}: {e}")

        self.cache.add_result(RecentResult(
            rom_name=result.rom_name,
            console=result.console,
            metadata_status=result.metadata.status,
            guides_status=result.guides.status,
            timestamp=int(time.time()),
        ))
        self.cache.save_progress(self.progress)
