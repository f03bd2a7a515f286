"""Event types for progress updates.

Events are immutable dataclasses that carry session state from the workflow
orchestrator to subscribers (console view, headless logger, state recorder).
"""

from dataclasses import dataclass
from typing import Optional

from romshelf.workflow.status import ItemResult


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted whenever the session has something to report.

    Attributes:
        message: Human-readable description of what just happened
        total: Total number of ROMs in this session
        completed: ROMs fully processed so far
        success_count: ROMs finished with Success
        fail_count: ROMs finished with anything but Success or Skipped
        skip_count: ROMs finished with Skipped
        current_rom: ROM being processed (None once the session has finished)
        item_update: Snapshot of the current ROM's record, if it changed
        active: False for the final event of a session
    """
    message: str
    total: int = 0
    completed: int = 0
    success_count: int = 0
    fail_count: int = 0
    skip_count: int = 0
    current_rom: Optional[str] = None
    item_update: Optional[ItemResult] = None
    active: bool = True
