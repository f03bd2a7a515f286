"""
Per-provider exponential backoff for rate-limited requests

A provider signalling "rate limited" pauses the whole session (items are
processed one at a time) for an interval that doubles on every consecutive
signal, up to a cap. There is no overall deadline: the registry never gives
up on a provider. The next successful request resets the interval.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_INTERVAL = 1.0
DEFAULT_MULTIPLIER = 2.0
DEFAULT_MAX_INTERVAL = 300.0


@dataclass
class BackoffEntry:
    """Backoff state for one provider"""
    current_interval: float
    multiplier: float
    max_interval: float

    def next_interval(self) -> float:
        """Return the interval to wait now and advance to the next one."""
        interval = self.current_interval
        self.current_interval = min(
            self.current_interval * self.multiplier,
            self.max_interval
        )
        return interval


class BackoffRegistry:
    """
    Exponential backoff state keyed by provider name

    Entries are created lazily on the first rate-limit signal and removed
    when the provider next succeeds.

    Example:
        backoff = BackoffRegistry()

        try:
            result = await provider.search(rom, console)
            backoff.reset(provider.name)
        except RateLimitedError:
            await backoff.apply_backoff(provider.name, notify=print)
    """

    def __init__(
        self,
        initial_interval: float = DEFAULT_INITIAL_INTERVAL,
        multiplier: float = DEFAULT_MULTIPLIER,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize backoff registry

        Args:
            initial_interval: First wait in seconds
            multiplier: Growth factor per consecutive rate-limit signal
            max_interval: Upper bound for a single wait in seconds
            sleep: Coroutine used to wait (injectable for tests)
        """
        self.initial_interval = initial_interval
        self.multiplier = multiplier
        self.max_interval = max_interval
        self._sleep = sleep
        self._entries: Dict[str, BackoffEntry] = {}

    @classmethod
    def from_config(cls, config: dict, **kwargs) -> "BackoffRegistry":
        """Build a registry from the 'backoff' config section."""
        section = config.get('backoff', {})
        return cls(
            initial_interval=section.get('initial_interval', DEFAULT_INITIAL_INTERVAL),
            multiplier=section.get('multiplier', DEFAULT_MULTIPLIER),
            max_interval=section.get('max_interval', DEFAULT_MAX_INTERVAL),
            **kwargs
        )

    def _get_entry(self, provider_name: str) -> BackoffEntry:
        if provider_name not in self._entries:
            self._entries[provider_name] = BackoffEntry(
                current_interval=min(self.initial_interval, self.max_interval),
                multiplier=self.multiplier,
                max_interval=self.max_interval
            )
        return self._entries[provider_name]

    async def apply_backoff(
        self,
        provider_name: str,
        notify: Optional[Callable[[str], None]] = None
    ) -> float:
        """
        Wait out the provider's current backoff interval.

        Args:
            provider_name: Provider that reported the rate limit
            notify: Optional callback receiving a human-readable pause message

        Returns:
            Seconds waited
        """
        interval = self._get_entry(provider_name).next_interval()
        message = f"Pausing for {interval:g}s (rate limited by {provider_name})"
        logger.warning(message)
        if notify:
            notify(message)

        await self._sleep(interval)
        return interval

    def reset(self, provider_name: str) -> None:
        """Clear backoff state after a successful request."""
        if self._entries.pop(provider_name, None) is not None:
            logger.debug(f"Backoff reset for {provider_name}")

    def current_interval(self, provider_name: str) -> float:
        """Interval the next apply_backoff() call would wait."""
        entry = self._entries.get(provider_name)
        if entry is None:
            return min(self.initial_interval, self.max_interval)
        return entry.current_interval

    def is_backing_off(self, provider_name: str) -> bool:
        return provider_name in self._entries
