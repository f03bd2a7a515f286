"""
Per-ROM scraping: metadata track then guides track

Each track consults the filesystem and the completion cache first, then
tries providers in configured order until one gives a usable answer.
Provider errors never escape: they are classified, logged and folded into
the track's status.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional

from romshelf.media.resize import ResizeError, resize_image
from romshelf.providers.base import GameMetadata, GuideProvider, MetadataProvider
from romshelf.providers.errors import ErrorCategory, ProviderError, categorize_error
from romshelf.scanner.rom_types import ROMInfo
from romshelf.workflow.backoff import BackoffRegistry
from romshelf.workflow.completion_cache import CacheCategory, CompletionCache
from romshelf.workflow.options import ScrapeOptions
from romshelf.workflow.status import ItemResult, MetadataTrack, ScrapeStatus
from romshelf.workflow.storage import LibraryStore

logger = logging.getLogger(__name__)

EmitCallback = Callable[[str, Optional[ItemResult]], None]

NOT_FOUND_MESSAGE = "Not found in any source"
NO_GUIDES_MESSAGE = "No guides found"


class _Attempts:
    """Outcome bookkeeping for one pass over a provider list"""

    def __init__(self):
        self.tried_any = False
        self.all_not_found = True
        self.last_error: Optional[str] = None

    @property
    def cacheable(self) -> bool:
        """True when at least one provider answered and all said 'not found'."""
        return self.tried_any and self.all_not_found


class ItemProcessor:
    """
    Runs the metadata and guides pipelines for one ROM at a time.

    Example:
        processor = ItemProcessor(metadata_providers, guide_providers,
                                  options, cache, backoff, store, emit)
        result = await processor.process(rom)
    """

    def __init__(
        self,
        metadata_providers: List[MetadataProvider],
        guide_providers: List[GuideProvider],
        options: ScrapeOptions,
        cache: CompletionCache,
        backoff: BackoffRegistry,
        store: LibraryStore,
        emit: Optional[EmitCallback] = None
    ):
        """
        Initialize item processor.

        Args:
            metadata_providers: Metadata providers in priority order
            guide_providers: Guide providers in priority order
            options: Session options
            cache: Completion cache (shared with the orchestrator)
            backoff: Backoff registry for this run
            store: Library storage, used to carry forward stored fields
            emit: Callback receiving progress messages and record snapshots
        """
        self.metadata_providers = metadata_providers
        self.guide_providers = guide_providers
        self.options = options
        self.cache = cache
        self.backoff = backoff
        self.store = store
        self._emit_callback = emit

    def _emit(self, message: str, result: Optional[ItemResult] = None) -> None:
        if self._emit_callback:
            self._emit_callback(message, result)

    def image_path(self, rom: ROMInfo) -> Path:
        return rom.console_dir / self.options.images_folder / f"{rom.basename}.png"

    def guides_dir(self, rom: ROMInfo) -> Path:
        return rom.console_dir / self.options.guides_folder / rom.basename

    def _display_path(self, path: Path) -> str:
        """Path relative to the ROM root, as stored in records."""
        try:
            return path.relative_to(self.options.roms_path).as_posix()
        except ValueError:
            return str(path)

    async def process(self, rom: ROMInfo) -> ItemResult:
        """
        Scrape one ROM.

        Args:
            rom: ROM to process

        Returns:
            ItemResult with both tracks resolved
        """
        result = ItemResult(rom_name=rom.filename, console=rom.console_name)
        previous = self.store.load_item(rom)

        await self.scrape_metadata(rom, result, previous)

        if self.guide_providers:
            result.guides_attempted = True
            await self.scrape_guides(rom, result, previous)

        return result

    def _classify(self, provider_name: str, rom: ROMInfo, error: Exception, attempts: _Attempts) -> ErrorCategory:
        """Record a provider failure; returns its category."""
        category = categorize_error(error)

        if category == ErrorCategory.UNSUPPORTED:
            logger.debug(f"{provider_name} does not support {rom.console_name}: {error}")
            return category

        attempts.tried_any = True
        if category == ErrorCategory.NOT_FOUND:
            logger.info(f"{provider_name}: no match for {rom.filename}")
            return category

        attempts.all_not_found = False
        attempts.last_error = f"{provider_name}: {error}"
        if category == ErrorCategory.OTHER:
            if isinstance(error, ProviderError):
                logger.warning(f"{provider_name} failed for {rom.filename}: {error}")
            else:
                logger.error(f"Unexpected error from {provider_name} for {rom.filename}: {error}", exc_info=True)
        return category

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def _carry_forward(self, track: MetadataTrack, previous: Optional[ItemResult]) -> None:
        if previous is not None:
            track.copy_fields_from(previous.metadata)

    async def scrape_metadata(
        self,
        rom: ROMInfo,
        result: ItemResult,
        previous: Optional[ItemResult] = None
    ) -> None:
        """
        Resolve the metadata track of a ROM.

        Args:
            rom: ROM being processed
            result: Record to update in place
            previous: Record stored by an earlier run, if any
        """
        track = result.metadata

        if not self.metadata_providers:
            track.status = ScrapeStatus.SKIPPED
            return

        image_path = self.image_path(rom)
        if not self.options.refresh and image_path.exists():
            self._carry_forward(track, previous)
            track.image_path = self._display_path(image_path)
            track.status = ScrapeStatus.SKIPPED
            self._emit(f"Skipping {rom.filename} (already scraped)", result)
            return

        if not self.options.refresh and self.cache.has_failed(
            CacheCategory.METADATA, rom.console_name, rom.filename
        ):
            self._carry_forward(track, previous)
            track.status = ScrapeStatus.SKIPPED
            track.error_message = "No metadata found in a previous run"
            self._emit(f"Skipping {rom.filename} (not found previously)", result)
            return

        track.status = ScrapeStatus.SEARCHING
        attempts = _Attempts()

        for provider in self.metadata_providers:
            self._emit(f"Trying {provider.name} for: {rom.filename}", result)
            try:
                metadata = await provider.search(rom, rom.console)
            except Exception as e:
                category = self._classify(provider.name, rom, e, attempts)
                if category == ErrorCategory.RATE_LIMITED:
                    await self.backoff.apply_backoff(
                        provider.name,
                        notify=lambda message: self._emit(message, result)
                    )
                continue

            attempts.tried_any = True
            self.backoff.reset(provider.name)
            self.cache.clear(CacheCategory.METADATA, rom.console_name, rom.filename)
            self._apply_metadata(track, metadata)

            if metadata.image_url:
                await self._download_image(provider, metadata.image_url, image_path, rom, result)
            else:
                track.status = ScrapeStatus.FAILED
                track.error_message = f"No box art available from {provider.name}"
                self._emit(f"Found metadata but no image for: {rom.filename}", result)
            return

        track.status = ScrapeStatus.FAILED
        if attempts.cacheable:
            track.error_message = NOT_FOUND_MESSAGE
            self.cache.mark_not_found(CacheCategory.METADATA, rom.console_name, rom.filename)
        elif not attempts.tried_any:
            track.error_message = f"No metadata provider supports {rom.console_name}"
        else:
            track.error_message = f"Failed to scrape: {attempts.last_error}"
        self._emit(f"Metadata failed for {rom.filename}: {track.error_message}", result)

    def _apply_metadata(self, track: MetadataTrack, metadata: GameMetadata) -> None:
        track.name = metadata.name
        track.developer = metadata.developer
        track.publisher = metadata.publisher
        track.genre = metadata.genre
        track.release_date = metadata.release_date
        track.rating = f"{metadata.rating:.1f}" if metadata.rating is not None else None

    async def _download_image(
        self,
        provider: MetadataProvider,
        url: str,
        image_path: Path,
        rom: ROMInfo,
        result: ItemResult
    ) -> None:
        track = result.metadata
        self._emit(f"Downloading image for: {rom.filename}", result)

        try:
            image_path.parent.mkdir(parents=True, exist_ok=True)
            await provider.download_image(url, image_path)
        except Exception as e:
            if isinstance(e, (ProviderError, OSError)):
                logger.warning(f"Image download failed for {rom.filename}: {e}")
            else:
                logger.error(f"Unexpected error downloading image for {rom.filename}: {e}", exc_info=True)
            track.status = ScrapeStatus.FAILED
            track.error_message = f"Image download failed: {e}"
            self._emit(f"Image download failed for: {rom.filename}", result)
            return

        if self.options.box_art_width:
            try:
                resize_image(image_path, self.options.box_art_width)
            except ResizeError as e:
                logger.warning(str(e))

        track.status = ScrapeStatus.SUCCESS
        track.image_path = self._display_path(image_path)
        track.error_message = None
        self._emit(f"Scraped metadata for: {rom.filename}", result)

    # ------------------------------------------------------------------
    # Guides
    # ------------------------------------------------------------------

    async def scrape_guides(
        self,
        rom: ROMInfo,
        result: ItemResult,
        previous: Optional[ItemResult] = None
    ) -> None:
        """
        Resolve the guides track of a ROM.

        Args:
            rom: ROM being processed
            result: Record to update in place
            previous: Record stored by an earlier run, if any
        """
        track = result.guides
        guides_dir = self.guides_dir(rom)

        if not self.options.refresh and guides_dir.is_dir():
            existing = [p for p in guides_dir.iterdir() if p.is_file()]
            if existing:
                stored = previous.guides.count if previous is not None else None
                track.count = stored if stored is not None else len(existing)
                track.status = ScrapeStatus.SKIPPED
                self._emit(f"Skipping guides for {rom.filename} (already downloaded)", result)
                return

        if not self.options.refresh and self.cache.has_failed(
            CacheCategory.GUIDES, rom.console_name, rom.filename
        ):
            track.status = ScrapeStatus.SKIPPED
            track.error_message = "No guides found in a previous run"
            return

        track.status = ScrapeStatus.SEARCHING
        attempts = _Attempts()

        for provider in self.guide_providers:
            self._emit(f"Trying {provider.name} guides for: {rom.filename}", result)
            try:
                handles = await provider.search_guides(rom, rom.console)
            except Exception as e:
                category = self._classify(provider.name, rom, e, attempts)
                if category == ErrorCategory.UNSUPPORTED:
                    continue
                track.status = ScrapeStatus.FAILED
                track.error_message = (
                    NO_GUIDES_MESSAGE if category == ErrorCategory.NOT_FOUND
                    else f"Guide search failed: {e}"
                )
                if category == ErrorCategory.RATE_LIMITED:
                    await self.backoff.apply_backoff(
                        provider.name,
                        notify=lambda message: self._emit(message, result)
                    )
                continue

            attempts.tried_any = True
            if not handles:
                track.status = ScrapeStatus.FAILED
                track.error_message = NO_GUIDES_MESSAGE
                continue

            self.backoff.reset(provider.name)
            self.cache.clear(CacheCategory.GUIDES, rom.console_name, rom.filename)
            await self._download_guides(provider, handles, guides_dir, rom, result)
            return

        if not attempts.tried_any:
            # No guide provider covers this console: nothing to attempt
            track.status = ScrapeStatus.SKIPPED
            return

        if attempts.cacheable:
            self.cache.mark_not_found(CacheCategory.GUIDES, rom.console_name, rom.filename)

    async def _download_guides(
        self,
        provider: GuideProvider,
        handles: List[str],
        guides_dir: Path,
        rom: ROMInfo,
        result: ItemResult
    ) -> None:
        track = result.guides
        try:
            guides_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Failed to create guides directory {guides_dir}: {e}")
            track.status = ScrapeStatus.FAILED
            track.error_message = f"Could not create guides directory: {e}"
            return

        downloaded = 0
        for handle in handles:
            filename = handle.rstrip('/').rsplit('/', 1)[-1] or "guide.txt"
            try:
                await provider.download_guide(handle, guides_dir / filename)
                downloaded += 1
            except (ProviderError, OSError) as e:
                logger.warning(f"Failed to download guide {handle}: {e}")
            except Exception as e:
                logger.error(f"Unexpected error downloading guide {handle}: {e}", exc_info=True)

        track.status = ScrapeStatus.SUCCESS
        track.count = downloaded
        track.error_message = None
        self._emit(f"Downloaded {downloaded} guide(s) for: {rom.filename}", result)
