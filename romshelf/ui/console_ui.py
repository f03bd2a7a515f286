"""
Rich console UI for romshelf

Shows a live progress bar with running counters and the most recently
finished ROMs, driven entirely by ProgressEvent.
"""

import logging
from collections import deque
from typing import Deque, Optional

from rich import box
from rich.console import Console, Group
from rich.live import Live
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.table import Table
from rich.text import Text

from romshelf import __version__
from romshelf.ui.event_bus import EventBus
from romshelf.ui.events import ProgressEvent
from romshelf.workflow.status import ItemResult, ScrapeStatus

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    ScrapeStatus.PENDING: "dim",
    ScrapeStatus.SEARCHING: "cyan",
    ScrapeStatus.SUCCESS: "green",
    ScrapeStatus.FAILED: "red",
    ScrapeStatus.SKIPPED: "yellow",
}


def status_text(status: ScrapeStatus) -> Text:
    return Text(f"{status.symbol} {status.value}", style=STATUS_STYLES[status])


class ConsoleUI:
    """
    Live terminal view of a scraping session

    Example:
        ui = ConsoleUI(config)
        ui.attach(event_bus)
        ui.start()
        # ... run session ...
        ui.stop()
        ui.print_summary(summary)
    """

    def __init__(self, config: dict, console: Optional[Console] = None, recent_limit: int = 8):
        """
        Initialize console UI

        Args:
            config: Configuration dictionary
            console: Rich console to render on (created if None)
            recent_limit: Finished ROMs shown below the progress bar
        """
        self.config = config
        self.console = console or Console()
        self.live: Optional[Live] = None

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            console=self.console
        )
        self.task_id: Optional[TaskID] = None
        self.recent_items: Deque[ItemResult] = deque(maxlen=recent_limit)
        self.last_message = ""
        self.counts = {'success': 0, 'skipped': 0, 'failed': 0}
        self._last_completed = 0

    def attach(self, event_bus: EventBus) -> None:
        event_bus.subscribe(ProgressEvent, self.handle_event)

    def start(self) -> None:
        """Start the live display"""
        if self.live is not None:
            return
        self.console.print(f"[bold]romshelf[/bold] {__version__}")
        self.task_id = self.progress.add_task("Scanning", total=None)
        self.live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=8,
            transient=False
        )
        self.live.start()
        logger.debug("Console UI started")

    def stop(self) -> None:
        """Stop the live display"""
        if self.live is not None:
            self.live.update(self._render())
            self.live.stop()
            self.live = None

    def handle_event(self, event: ProgressEvent) -> None:
        self.last_message = event.message
        self.counts = {
            'success': event.success_count,
            'skipped': event.skip_count,
            'failed': event.fail_count,
        }

        if self.task_id is not None:
            description = event.current_rom or ("Finished" if not event.active else "Scanning")
            self.progress.update(
                self.task_id,
                total=event.total or None,
                completed=event.completed,
                description=self._truncate(description)
            )

        # The completed counter only moves on the event that finishes an item
        if event.item_update is not None and event.completed > self._last_completed:
            self.recent_items.appendleft(event.item_update)
        self._last_completed = event.completed

        if self.live is not None:
            self.live.update(self._render())

    def _truncate(self, text: str, max_length: int = 40) -> str:
        if len(text) <= max_length:
            return text
        return text[:max_length - 1] + "…"

    def _render(self) -> Group:
        counters = Text.assemble(
            ("✓ ", "green"), (f"{self.counts['success']}  ", "bold"),
            ("⏭ ", "yellow"), (f"{self.counts['skipped']}  ", "bold"),
            ("✗ ", "red"), (f"{self.counts['failed']}", "bold"),
        )

        table = Table(box=box.SIMPLE, show_edge=False, expand=False)
        table.add_column("ROM", overflow="ellipsis", max_width=40)
        table.add_column("Console")
        table.add_column("Status")
        table.add_column("Details", overflow="ellipsis", max_width=50, style="dim")
        for item in self.recent_items:
            table.add_row(
                item.rom_name,
                item.console,
                status_text(item.status),
                item.error_message or item.metadata.name or ""
            )

        return Group(self.progress, counters, Text(self.last_message, style="dim"), table)

    def print_summary(self, summary) -> None:
        """Print the final session summary table"""
        table = Table(
            title="Scraping cancelled" if summary.cancelled else "Scraping complete",
            box=box.ROUNDED
        )
        table.add_column("Total", justify="right")
        table.add_column("Success", justify="right", style="green")
        table.add_column("Skipped", justify="right", style="yellow")
        table.add_column("Failed", justify="right", style="red")
        table.add_row(str(summary.total), str(summary.success), str(summary.skip), str(summary.fail))
        self.console.print(table)


def print_recent_results(console: Console, results: list) -> None:
    """Print a table of RecentResult entries (newest first)."""
    table = Table(title="Recent results", box=box.ROUNDED)
    table.add_column("ROM")
    table.add_column("Console")
    table.add_column("Metadata")
    table.add_column("Guides")
    for result in results:
        table.add_row(
            result.rom_name,
            result.console,
            status_text(result.metadata_status),
            status_text(result.guides_status),
        )
    console.print(table)
