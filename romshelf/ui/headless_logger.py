"""
Headless logger for CI/automation environments.

Provides minimal console output without interactive UI elements.
Implements the same subscriber interface as ConsoleUI for drop-in use.
"""

import logging
from typing import Optional

from romshelf.ui.event_bus import EventBus
from romshelf.ui.events import ProgressEvent

logger = logging.getLogger(__name__)


class HeadlessLogger:
    """
    Minimal progress reporting for headless/CI environments.

    Output includes:
    - Progress milestones (every `milestone_percent` percent)
    - Final summary

    Per-item messages are already logged by the orchestrator and are not
    repeated here.
    """

    def __init__(self, config: dict, milestone_percent: int = 10):
        """
        Initialize headless logger.

        Args:
            config: Configuration dictionary (for consistency with ConsoleUI)
            milestone_percent: Progress step between milestone log lines
        """
        self.config = config
        self.milestone_percent = max(1, milestone_percent)
        self._last_milestone = 0
        self.last_event: Optional[ProgressEvent] = None

    def attach(self, event_bus: EventBus) -> None:
        event_bus.subscribe(ProgressEvent, self.handle_event)

    def start(self) -> None:
        logger.info("Running in headless mode (minimal output)")

    def stop(self) -> None:
        """Stop headless logger (no-op)."""
        pass

    def handle_event(self, event: ProgressEvent) -> None:
        self.last_event = event

        if not event.active:
            self._last_milestone = 0
            return

        if event.total <= 0:
            return

        percent = event.completed * 100 // event.total
        milestone = percent - percent % self.milestone_percent
        if milestone > self._last_milestone:
            self._last_milestone = milestone
            logger.info(
                f"Progress: {event.completed}/{event.total} ({percent}%) - "
                f"{event.success_count} ok, {event.skip_count} skipped, {event.fail_count} failed"
            )

    def print_summary(self, summary) -> None:
        """Log the final session summary."""
        status = "cancelled" if summary.cancelled else "complete"
        logger.info("=" * 60)
        logger.info(f"Scraping {status}")
        logger.info(f"  Processed: {summary.completed}/{summary.total}")
        logger.info(f"  Success:   {summary.success}")
        logger.info(f"  Skipped:   {summary.skip}")
        logger.info(f"  Failed:    {summary.fail}")
        logger.info("=" * 60)
