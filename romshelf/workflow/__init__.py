"""Scraping workflow package."""

from .status import ScrapeStatus, ItemResult, MetadataTrack, GuidesTrack, SessionProgress, RecentResult
from .backoff import BackoffRegistry
from .completion_cache import CompletionCache, CacheCategory

__all__ = [
    "ScrapeStatus",
    "ItemResult",
    "MetadataTrack",
    "GuidesTrack",
    "SessionProgress",
    "RecentResult",
    "BackoffRegistry",
    "CompletionCache",
    "CacheCategory",
]
