"""Event bus for progress updates.

The EventBus provides a publish-subscribe mechanism for delivering progress
events from the scraping session to observers (console view, headless logger,
state recorder). Publishing never blocks the session: the queue is bounded
and events that do not fit are dropped.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


class EventBus:
    """Best-effort event bus.

    Subscribers are keyed by event type and may be sync or async. Events are
    delivered by process_events(), which runs as a separate task; a failing
    subscriber is logged and does not affect the others.

    Example:
        >>> bus = EventBus()
        >>> bus.subscribe(ProgressEvent, lambda e: print(e.message))
        >>> task = asyncio.create_task(bus.process_events())
        >>> bus.publish_nowait(ProgressEvent(message="Found 3 ROMs to process", total=3))
    """

    def __init__(self, max_queue_size: int = DEFAULT_QUEUE_SIZE):
        """Initialize the event bus.

        Args:
            max_queue_size: Events buffered before new ones are dropped
        """
        self._subscribers: dict[type, list[Callable]] = defaultdict(list)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._processing: bool = False
        self._event_count: int = 0
        self._error_count: int = 0
        self._dropped_count: int = 0

    def subscribe(self, event_type: type, callback: Callable) -> None:
        """Subscribe to events of a specific type.

        Args:
            event_type: The event class to subscribe to
            callback: Function to call when event is published.
                     Can be sync or async.
        """
        self._subscribers[event_type].append(callback)
        logger.debug(f"Subscribed to {event_type.__name__} (total subscribers: {len(self._subscribers[event_type])})")

    def unsubscribe(self, event_type: type, callback: Callable) -> None:
        if event_type in self._subscribers:
            try:
                self._subscribers[event_type].remove(callback)
                logger.debug(f"Unsubscribed from {event_type.__name__}")
            except ValueError:
                logger.warning(f"Callback not found for {event_type.__name__}")

    def publish_nowait(self, event: Any) -> bool:
        """Queue an event without waiting.

        Args:
            event: The event instance to publish

        Returns:
            True if queued, False if the queue was full and the event dropped
        """
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self._dropped_count += 1
            logger.debug(f"Event queue full, dropped {type(event).__name__}")
            return False

    async def publish(self, event: Any) -> bool:
        """Publish an event (async context). Never waits for queue space."""
        return self.publish_nowait(event)

    async def _dispatch(self, event: Any) -> None:
        event_type = type(event)
        callbacks = self._subscribers.get(event_type, [])
        if not callbacks:
            logger.debug(f"No subscribers for {event_type.__name__}")
            return

        for callback in list(callbacks):
            try:
                if inspect.iscoroutinefunction(callback):
                    await callback(event)
                else:
                    callback(event)
            except Exception as e:
                self._error_count += 1
                logger.error(
                    f"Error in event handler for {event_type.__name__}: {e}",
                    exc_info=True
                )

    async def process_events(self) -> None:
        """Deliver queued events to subscribers until stopped or cancelled.

        Run as a background task alongside the scraping session.
        """
        self._processing = True
        logger.debug("Event bus processing started")

        try:
            while self._processing:
                event = await self._queue.get()
                try:
                    self._event_count += 1
                    await self._dispatch(event)
                finally:
                    self._queue.task_done()
        except asyncio.CancelledError:
            logger.debug("Event bus processing cancelled")
            raise
        finally:
            self._processing = False

    async def stop(self, timeout: float = 1.0) -> None:
        """Stop processing events.

        Waits for pending events to be delivered, with a timeout; anything
        still queued after that is discarded.
        """
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
            logger.debug("Event queue drained successfully")
        except asyncio.TimeoutError:
            remaining = self._queue.qsize()
            if remaining > 0:
                logger.warning(f"Event queue timeout - {remaining} events remaining, discarding")
                while not self._queue.empty():
                    try:
                        self._queue.get_nowait()
                        self._queue.task_done()
                    except asyncio.QueueEmpty:
                        break

        self._processing = False
        logger.debug(
            f"Event bus stopped. Processed {self._event_count} events "
            f"with {self._error_count} errors, {self._dropped_count} dropped"
        )

    def get_stats(self) -> dict[str, int]:
        """Get event bus statistics.

        Returns:
            Dictionary with 'events_processed', 'errors', 'dropped', 'queue_size', 'subscriber_count'
        """
        return {
            'events_processed': self._event_count,
            'errors': self._error_count,
            'dropped': self._dropped_count,
            'queue_size': self._queue.qsize(),
            'subscriber_count': sum(len(callbacks) for callbacks in self._subscribers.values())
        }

    @property
    def is_processing(self) -> bool:
        return self._processing
