import asyncio
import json
from dataclasses import replace

import pytest

from romshelf.providers.errors import NotFoundError
from romshelf.ui.event_bus import EventBus
from romshelf.ui.events import ProgressEvent
from romshelf.workflow.backoff import BackoffRegistry
from romshelf.workflow.orchestrator import OrchestratorError, SessionOrchestrator
from romshelf.workflow.status import ScrapeStatus


async def _no_sleep(seconds):
    return None


def _backoff():
    return BackoffRegistry(sleep=_no_sleep)


@pytest.fixture
def library(roms_root):
    """Three ROMs in two console folders; scan order is FC, then SFC sorted."""
    (roms_root / "FC").mkdir()
    (roms_root / "FC" / "Metroid.nes").write_bytes(b"nes")
    (roms_root / "SFC").mkdir()
    (roms_root / "SFC" / "A Link to the Past.sfc").write_bytes(b"sfc1")
    (roms_root / "SFC" / "Super Metroid.sfc").write_bytes(b"sfc2")
    (roms_root / "SFC" / "gamelist.xml").write_text("<gameList/>")
    (roms_root / "Unknown").mkdir()
    (roms_root / "Unknown" / "file.bin").write_bytes(b"?")
    return roms_root


@pytest.fixture
def orchestrator_factory(options, consoles):
    def _builder(opts=None, event_bus=None):
        return SessionOrchestrator(
            opts or options,
            event_bus=event_bus,
            consoles=consoles,
            backoff_factory=_backoff,
        )
    return _builder


@pytest.mark.integration
@pytest.mark.asyncio
async def test_session_end_to_end(library, orchestrator_factory, metadata_provider_factory, game_metadata):
    provider = metadata_provider_factory(
        "ScreenScraper", [NotFoundError("Game not found"), game_metadata, game_metadata]
    )
    orchestrator = orchestrator_factory()

    summary = await orchestrator.run([provider], [])

    assert provider.searched == ["Metroid.nes", "A Link to the Past.sfc", "Super Metroid.sfc"]
    assert (summary.total, summary.completed) == (3, 3)
    assert (summary.success, summary.fail, summary.skip) == (2, 1, 0)
    assert not summary.cancelled

    data_dir = library / ".romshelf"
    records = sorted(p.name for p in (data_dir / "games").iterdir())
    assert records == ["NES_Metroid.json", "SNES_A Link to the Past.json", "SNES_Super Metroid.json"]
    assert (data_dir / "games.txt").read_text().splitlines() == [
        "Metroid.nes", "A Link to the Past.sfc", "Super Metroid.sfc",
    ]
    assert (data_dir / "crawled").read_text().splitlines() == [
        "FC/Metroid.nes", "SFC/A Link to the Past.sfc", "SFC/Super Metroid.sfc",
    ]
    assert (data_dir / "cache" / "metadata_not_found" / "NES" / "Metroid.nes.marker").exists()

    recent = orchestrator.cache.load_results()
    assert [r.rom_name for r in recent] == ["Super Metroid.sfc", "A Link to the Past.sfc", "Metroid.nes"]
    assert recent[2].metadata_status is ScrapeStatus.FAILED

    progress = orchestrator.cache.load_progress()
    assert progress.completed == 3
    assert progress.current_rom is None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_second_run_skips_everything(library, orchestrator_factory, metadata_provider_factory, game_metadata):
    first = metadata_provider_factory(
        "ScreenScraper", [NotFoundError("Game not found"), game_metadata, game_metadata]
    )
    await orchestrator_factory().run([first], [])

    second = metadata_provider_factory("ScreenScraper", [game_metadata])
    orchestrator = orchestrator_factory()
    summary = await orchestrator.run([second], [])

    assert second.searched == []
    assert (summary.success, summary.fail, summary.skip) == (0, 0, 3)

    # Skipped records keep the fields found by the first run
    record = json.loads((orchestrator.store.games_dir / "SNES_Super Metroid.json").read_text())
    assert record["metadata"]["status"] == "skipped"
    assert record["metadata"]["name"] == "Super Mario World"
    assert record["metadata"]["image_path"] == "SFC/Imgs/Super Metroid.png"

    missing = json.loads((orchestrator.store.games_dir / "NES_Metroid.json").read_text())
    assert missing["metadata"]["error_message"] == "No metadata found in a previous run"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_refresh_rescrapes(library, options, orchestrator_factory, metadata_provider_factory, game_metadata):
    await orchestrator_factory().run(
        [metadata_provider_factory("ScreenScraper", [game_metadata])], []
    )

    provider = metadata_provider_factory("ScreenScraper", [game_metadata])
    summary = await orchestrator_factory(opts=replace(options, refresh=True)).run([provider], [])

    assert len(provider.searched) == 3
    assert summary.success == 3
    # The index was reset before the refreshed run
    assert len((library / ".romshelf" / "games.txt").read_text().splitlines()) == 3


@pytest.mark.integration
@pytest.mark.asyncio
async def test_cancel_stops_at_item_boundary(library, orchestrator_factory, metadata_provider_factory, game_metadata):
    cancel_event = asyncio.Event()
    provider = metadata_provider_factory("ScreenScraper", [game_metadata])
    original_search = provider.search

    async def search_then_cancel(rom, console):
        cancel_event.set()
        return await original_search(rom, console)

    provider.search = search_then_cancel

    summary = await orchestrator_factory().run([provider], [], cancel_event)

    assert summary.cancelled
    assert summary.total == 3
    assert summary.completed == 1
    assert summary.success == 1
    assert provider.searched == ["Metroid.nes"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_run_without_providers_raises(library, orchestrator_factory):
    with pytest.raises(OrchestratorError):
        await orchestrator_factory().run([], [])


@pytest.mark.integration
@pytest.mark.asyncio
async def test_progress_events_published(library, orchestrator_factory, metadata_provider_factory, guide_provider_factory, game_metadata):
    bus = EventBus(max_queue_size=1000)
    events = []
    bus.subscribe(ProgressEvent, events.append)
    task = asyncio.create_task(bus.process_events())

    orchestrator = orchestrator_factory(event_bus=bus)
    await orchestrator.run(
        [metadata_provider_factory("ScreenScraper", [game_metadata])],
        [guide_provider_factory("GameFAQs", [])],
    )

    await bus.stop()
    task.cancel()

    assert events[0].message == "Found 3 ROMs to process"
    assert events[0].total == 3

    final = events[-1]
    assert not final.active
    assert final.message == "Scraping complete! Total: 3, Success: 3, Skipped: 0, Failed: 0"

    completed = [e for e in events if e.message.startswith("Completed:")]
    assert [e.completed for e in completed] == [1, 2, 3]
    assert all(e.item_update is not None for e in completed)
    assert all(e.item_update.guides_attempted for e in completed)

    # Counters never run backwards
    counts = [e.completed for e in events]
    assert counts == sorted(counts)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_download_crash_does_not_abort_session(library, orchestrator_factory, metadata_provider_factory, game_metadata):
    provider = metadata_provider_factory(
        "ScreenScraper", [game_metadata], download_error=RuntimeError("unexpected payload")
    )
    orchestrator = orchestrator_factory()

    summary = await orchestrator.run([provider], [])

    assert (summary.total, summary.completed) == (3, 3)
    assert (summary.success, summary.fail, summary.skip) == (0, 3, 0)
    assert not summary.cancelled

    record = json.loads((library / ".romshelf" / "games" / "SNES_Super Metroid.json").read_text())
    assert record["metadata"]["status"] == "failed"
    assert record["metadata"]["name"] == "Super Mario World"
