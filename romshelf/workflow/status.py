"""
Scrape status model and per-item result records.

Every ROM carries two independent tracks (metadata and guides). Each track
has its own ScrapeStatus; the item-level status is the merge of both.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any


class ScrapeStatus(Enum):
    """Lifecycle status of one scrape track."""
    PENDING = "pending"
    SEARCHING = "searching"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"

    def merge(self, other: "ScrapeStatus") -> "ScrapeStatus":
        """
        Combine two track statuses into one item-level status.

        Success dominates, then Failed, then Searching, then Pending.
        Skipped only survives when both sides are Skipped.

        Args:
            other: Status of the other track

        Returns:
            Merged status
        """
        for status in _MERGE_PRECEDENCE:
            if self is status or other is status:
                return status
        return ScrapeStatus.SKIPPED

    @property
    def symbol(self) -> str:
        return _STATUS_SYMBOLS[self]


_MERGE_PRECEDENCE = (
    ScrapeStatus.SUCCESS,
    ScrapeStatus.FAILED,
    ScrapeStatus.SEARCHING,
    ScrapeStatus.PENDING,
)

_STATUS_SYMBOLS = {
    ScrapeStatus.PENDING: "…",
    ScrapeStatus.SEARCHING: "🔍",
    ScrapeStatus.SUCCESS: "✓",
    ScrapeStatus.FAILED: "✗",
    ScrapeStatus.SKIPPED: "⏭",
}


@dataclass
class MetadataTrack:
    """Metadata fields and status for one ROM."""
    status: ScrapeStatus = ScrapeStatus.PENDING
    name: Optional[str] = None
    developer: Optional[str] = None
    publisher: Optional[str] = None
    genre: Optional[str] = None
    release_date: Optional[str] = None
    rating: Optional[str] = None
    image_path: Optional[str] = None
    error_message: Optional[str] = None

    def copy_fields_from(self, other: "MetadataTrack") -> None:
        """Carry stored descriptive fields forward (status and image untouched)."""
        self.name = other.name
        self.developer = other.developer
        self.publisher = other.publisher
        self.genre = other.genre
        self.release_date = other.release_date
        self.rating = other.rating


@dataclass
class GuidesTrack:
    """Guide download status for one ROM."""
    status: ScrapeStatus = ScrapeStatus.PENDING
    count: Optional[int] = None
    error_message: Optional[str] = None


@dataclass
class ItemResult:
    """
    Per-item scrape record.

    Created fresh for each run, persisted after the item completes and
    overwritten wholesale the next time the same ROM is scraped.
    """
    rom_name: str
    console: str
    metadata: MetadataTrack = field(default_factory=MetadataTrack)
    guides: GuidesTrack = field(default_factory=GuidesTrack)
    guides_attempted: bool = False

    @property
    def status(self) -> ScrapeStatus:
        """Item-level status (metadata merged with guides when attempted)."""
        if self.guides_attempted:
            return self.metadata.status.merge(self.guides.status)
        return self.metadata.status

    @property
    def error_message(self) -> Optional[str]:
        """Human-readable reason for a non-successful outcome, if any."""
        messages = [
            msg for msg in (self.metadata.error_message, self.guides.error_message)
            if msg
        ]
        return "; ".join(messages) if messages else None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary (statuses lowercase)."""
        data = asdict(self)
        data['metadata']['status'] = self.metadata.status.value
        data['guides']['status'] = self.guides.status.value
        data['status'] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItemResult":
        """
        Rebuild a record from its serialized form.

        Args:
            data: Dictionary produced by to_dict()

        Returns:
            ItemResult instance

        Raises:
            KeyError: If required keys are missing
            ValueError: If a status value is unknown
        """
        metadata = dict(data.get('metadata') or {})
        metadata['status'] = ScrapeStatus(metadata.get('status', 'pending'))
        guides = dict(data.get('guides') or {})
        guides['status'] = ScrapeStatus(guides.get('status', 'pending'))

        return cls(
            rom_name=data['rom_name'],
            console=data['console'],
            metadata=MetadataTrack(**{
                k: v for k, v in metadata.items()
                if k in MetadataTrack.__dataclass_fields__
            }),
            guides=GuidesTrack(**{
                k: v for k, v in guides.items()
                if k in GuidesTrack.__dataclass_fields__
            }),
            guides_attempted=data.get('guides_attempted', False),
        )


@dataclass
class RecentResult:
    """Entry in the bounded most-recent-first results ring."""
    rom_name: str
    console: str
    metadata_status: ScrapeStatus
    guides_status: ScrapeStatus
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rom_name': self.rom_name,
            'console': self.console,
            'metadata_status': self.metadata_status.value,
            'guides_status': self.guides_status.value,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecentResult":
        return cls(
            rom_name=data['rom_name'],
            console=data['console'],
            metadata_status=ScrapeStatus(data['metadata_status']),
            guides_status=ScrapeStatus(data['guides_status']),
            timestamp=int(data['timestamp']),
        )


@dataclass
class SessionProgress:
    """Running counters for one scrape session."""
    total: int = 0
    completed: int = 0
    success_count: int = 0
    fail_count: int = 0
    skip_count: int = 0
    current_rom: Optional[str] = None

    def record(self, status: ScrapeStatus) -> None:
        """
        Fold an item-level status into the counters.

        Success and Skipped count as themselves; anything else (including
        items left Pending or Searching) counts as a failure.
        """
        if status is ScrapeStatus.SUCCESS:
            self.success_count += 1
        elif status is ScrapeStatus.SKIPPED:
            self.skip_count += 1
        else:
            self.fail_count += 1
        self.completed += 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionProgress":
        return cls(**{
            k: v for k, v in data.items()
            if k in cls.__dataclass_fields__
        })
