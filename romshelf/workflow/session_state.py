"""
Session state snapshot persisted from the progress event stream

The recorder subscribes to ProgressEvent on the event bus and rewrites
state.json after each event, so a separate process (or the next run's
--status) can show what the last session was doing.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from romshelf.ui.events import ProgressEvent

logger = logging.getLogger(__name__)

STATE_FILENAME = "state.json"


@dataclass
class SessionState:
    """Snapshot of the running (or last) session"""
    scraping: bool = False
    progress: int = 0
    total_games: int = 0
    success_count: int = 0
    fail_count: int = 0
    skip_count: int = 0
    current_message: str = ""

    @classmethod
    def from_event(cls, event: ProgressEvent) -> "SessionState":
        return cls(
            scraping=event.active,
            progress=event.completed,
            total_games=event.total,
            success_count=event.success_count,
            fail_count=event.fail_count,
            skip_count=event.skip_count,
            current_message=event.message,
        )


def load_state(path: Path) -> Optional[SessionState]:
    """
    Load a saved session snapshot.

    The scraping flag is always restored as False: a snapshot found on disk
    belongs to a session that is no longer running.

    Returns:
        SessionState, or None if absent or unreadable
    """
    if not path.exists():
        return None

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        state = SessionState(**{
            k: v for k, v in data.items()
            if k in SessionState.__dataclass_fields__
        })
    except (json.JSONDecodeError, OSError, TypeError, AttributeError) as e:
        logger.warning(f"Failed to load session state {path}: {e}")
        return None

    state.scraping = False
    return state


class SessionStateRecorder:
    """Writes state.json from progress events."""

    def __init__(self, data_dir: Path):
        self.state_file = Path(data_dir) / STATE_FILENAME
        self.state = SessionState()

    def handle_event(self, event: ProgressEvent) -> None:
        self.state = SessionState.from_event(event)
        self.save()

    def save(self) -> None:
        # Atomic write: write to temp file, then rename
        temp_file = self.state_file.with_suffix('.tmp')
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(asdict(self.state), f, indent=2)
            temp_file.replace(self.state_file)
        except OSError as e:
            logger.warning(f"Failed to save session state: {e}")

    def clear(self) -> None:
        try:
            self.state_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove session state: {e}")
