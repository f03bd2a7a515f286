"""Unit tests for EventBus."""

import asyncio

import pytest

from romshelf.ui.event_bus import EventBus
from romshelf.ui.events import ProgressEvent


class TestEventBus:
    """Test cases for EventBus."""

    @pytest.fixture
    def event_bus(self):
        """Create an EventBus instance for testing."""
        return EventBus()

    @pytest.mark.asyncio
    async def test_subscribe_and_publish(self, event_bus):
        """Test basic subscribe and publish functionality."""
        received_events = []
        event_bus.subscribe(ProgressEvent, received_events.append)

        task = asyncio.create_task(event_bus.process_events())

        test_event = ProgressEvent(message="Found 3 ROMs to process", total=3)
        assert await event_bus.publish(test_event)

        await event_bus.stop()
        task.cancel()

        assert received_events == [test_event]

    @pytest.mark.asyncio
    async def test_multiple_and_async_subscribers(self, event_bus):
        """Sync and async subscribers both receive the same event."""
        received_sync = []
        received_async = []

        async def async_handler(event):
            await asyncio.sleep(0)
            received_async.append(event)

        event_bus.subscribe(ProgressEvent, received_sync.append)
        event_bus.subscribe(ProgressEvent, async_handler)

        task = asyncio.create_task(event_bus.process_events())
        event_bus.publish_nowait(ProgressEvent(message="Trying ScreenScraper for: Zelda.sfc"))

        await event_bus.stop()
        task.cancel()

        assert len(received_sync) == 1
        assert len(received_async) == 1

    @pytest.mark.asyncio
    async def test_failing_subscriber_isolated(self, event_bus):
        """An exception in one handler does not stop the others."""
        received = []

        def broken(event):
            raise RuntimeError("handler bug")

        event_bus.subscribe(ProgressEvent, broken)
        event_bus.subscribe(ProgressEvent, received.append)

        task = asyncio.create_task(event_bus.process_events())
        event_bus.publish_nowait(ProgressEvent(message="one"))
        event_bus.publish_nowait(ProgressEvent(message="two"))

        await event_bus.stop()
        task.cancel()

        assert [e.message for e in received] == ["one", "two"]
        assert event_bus.get_stats()["errors"] == 2

    @pytest.mark.asyncio
    async def test_full_queue_drops_events(self):
        """Publishing never blocks: overflow is dropped and counted."""
        bus = EventBus(max_queue_size=2)

        results = [bus.publish_nowait(ProgressEvent(message=str(i))) for i in range(5)]

        assert results == [True, True, False, False, False]
        stats = bus.get_stats()
        assert stats["dropped"] == 3
        assert stats["queue_size"] == 2

    @pytest.mark.asyncio
    async def test_events_without_subscribers_are_consumed(self, event_bus):
        """The queue drains even when nobody listens."""
        task = asyncio.create_task(event_bus.process_events())
        event_bus.publish_nowait(ProgressEvent(message="unheard"))

        await event_bus.stop(timeout=0.5)
        task.cancel()

        stats = event_bus.get_stats()
        assert stats["queue_size"] == 0
        assert stats["events_processed"] == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self, event_bus):
        received = []
        event_bus.subscribe(ProgressEvent, received.append)
        event_bus.unsubscribe(ProgressEvent, received.append)

        task = asyncio.create_task(event_bus.process_events())
        event_bus.publish_nowait(ProgressEvent(message="ignored"))
        await event_bus.stop()
        task.cancel()

        assert received == []
        assert event_bus.get_stats()["subscriber_count"] == 0

    @pytest.mark.asyncio
    async def test_stop_discards_undelivered_events(self, event_bus):
        """Without a running processor, stop() gives up after the timeout."""
        event_bus.publish_nowait(ProgressEvent(message="stuck"))

        await event_bus.stop(timeout=0.05)

        assert event_bus.get_stats()["queue_size"] == 0
        assert not event_bus.is_processing
