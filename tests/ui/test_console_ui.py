import io

import pytest
from rich.console import Console

from romshelf.ui.console_ui import ConsoleUI, print_recent_results, status_text
from romshelf.ui.events import ProgressEvent
from romshelf.workflow.orchestrator import SessionSummary
from romshelf.workflow.status import (
    ItemResult,
    MetadataTrack,
    RecentResult,
    ScrapeStatus,
)


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120, force_terminal=False, color_system=None)


def _item(name, status=ScrapeStatus.SUCCESS):
    return ItemResult(
        rom_name=name,
        console="SNES",
        metadata=MetadataTrack(status=status, name=name.split(".")[0]),
    )


@pytest.mark.unit
def test_status_text():
    text = status_text(ScrapeStatus.FAILED)
    assert text.plain == "✗ failed"
    assert text.style == "red"


@pytest.mark.unit
def test_recent_items_only_added_on_completion(console):
    ui = ConsoleUI({}, console=console, recent_limit=2)
    ui.start()
    try:
        ui.handle_event(ProgressEvent(message="Found 3 ROMs to process", total=3))
        ui.handle_event(ProgressEvent(message="Trying ScreenScraper for: a.sfc", total=3,
                                      item_update=_item("a.sfc", ScrapeStatus.SEARCHING)))
        ui.handle_event(ProgressEvent(message="Completed: a.sfc", total=3, completed=1,
                                      success_count=1, item_update=_item("a.sfc")))
        ui.handle_event(ProgressEvent(message="Trying ScreenScraper for: b.sfc", total=3, completed=1,
                                      success_count=1, item_update=_item("b.sfc", ScrapeStatus.SEARCHING)))
        ui.handle_event(ProgressEvent(message="Completed: b.sfc", total=3, completed=2, success_count=1,
                                      fail_count=1, item_update=_item("b.sfc", ScrapeStatus.FAILED)))
        ui.handle_event(ProgressEvent(message="Completed: c.sfc", total=3, completed=3, success_count=2,
                                      fail_count=1, item_update=_item("c.sfc")))
    finally:
        ui.stop()

    # Bounded, newest first
    assert [item.rom_name for item in ui.recent_items] == ["c.sfc", "b.sfc"]
    assert ui.counts == {"success": 2, "skipped": 0, "failed": 1}
    assert ui.last_message == "Completed: c.sfc"
    assert ui.progress.tasks[0].completed == 3


@pytest.mark.unit
def test_print_summary(console):
    ui = ConsoleUI({}, console=console)
    ui.print_summary(SessionSummary(total=3, completed=3, success=2, fail=1, skip=0, cancelled=False))

    output = console.file.getvalue()
    assert "Scraping complete" in output
    assert "Total" in output


@pytest.mark.unit
def test_print_recent_results(console):
    print_recent_results(console, [
        RecentResult("Zelda.sfc", "SNES", ScrapeStatus.SUCCESS, ScrapeStatus.SKIPPED, 1),
        RecentResult("Metroid.nes", "NES", ScrapeStatus.FAILED, ScrapeStatus.FAILED, 0),
    ])

    output = console.file.getvalue()
    assert "Recent results" in output
    assert output.index("Zelda.sfc") < output.index("Metroid.nes")
    assert "✓ success" in output
