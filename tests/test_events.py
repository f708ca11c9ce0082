import pytest

import chartfeed.events
from chartfeed.cache import SeriesEvent, SeriesFetchFailedEvent, SeriesKey, SeriesUpdatedEvent
from chartfeed.events import DomainEvent, EventDispatcher, event, get_dispatcher


@event
class SampleEvent(DomainEvent):
    """Event for unit tests."""

    message: str


KEY = SeriesKey.of("43114", "btc", "5m")


class TestEventDispatcher:
    """Test suite for EventDispatcher."""

    def test_init(self):
        dispatcher = EventDispatcher()
        assert dispatcher._handlers == {}
        assert dispatcher.handler_count(SampleEvent) == 0

    @pytest.mark.asyncio
    async def test_sync_and_async_handlers_in_order(self):
        dispatcher = EventDispatcher()
        calls = []

        def handler1(e: SeriesUpdatedEvent):
            calls.append(("sync", e))

        async def handler2(e: SeriesUpdatedEvent):
            calls.append(("async", e))

        dispatcher.subscribe(SeriesUpdatedEvent, handler1)
        dispatcher.subscribe(SeriesUpdatedEvent, handler2)

        updated = SeriesUpdatedEvent(key=KEY, candle_count=3, generation=7)
        await dispatcher.publish(updated)

        assert calls == [("sync", updated), ("async", updated)]
        assert updated.key.symbol == "BTC"

    @pytest.mark.asyncio
    async def test_handler_exception_doesnt_stop_dispatch(self, caplog):
        dispatcher = EventDispatcher()
        calls = []

        async def failing_handler(e):
            raise ValueError("Handler failed")

        def successful_handler(e):
            calls.append(e)

        dispatcher.subscribe(SeriesFetchFailedEvent, failing_handler)
        dispatcher.subscribe(SeriesFetchFailedEvent, successful_handler)

        failed = SeriesFetchFailedEvent(key=KEY, error="boom", has_cached_series=False)
        with caplog.at_level("ERROR"):
            await dispatcher.publish(failed)

        assert calls == [failed]
        assert "failing_handler" in caplog.text

    @pytest.mark.asyncio
    async def test_handlers_only_receive_their_event_type(self):
        dispatcher = EventDispatcher()
        updates = []
        dispatcher.subscribe(SeriesUpdatedEvent, updates.append)

        await dispatcher.publish(SampleEvent(message="ignored"))
        await dispatcher.publish(SeriesUpdatedEvent(key=KEY, candle_count=1, generation=1))

        assert len(updates) == 1

    @pytest.mark.asyncio
    async def test_handler_may_unsubscribe_during_dispatch(self):
        dispatcher = EventDispatcher()
        calls = []

        def once(e):
            calls.append("once")
            dispatcher.unsubscribe(SampleEvent, once)

        def always(e):
            calls.append("always")

        dispatcher.subscribe(SampleEvent, once)
        dispatcher.subscribe(SampleEvent, always)

        await dispatcher.publish(SampleEvent(message="a"))
        await dispatcher.publish(SampleEvent(message="b"))

        assert calls == ["once", "always", "always"]

    @pytest.mark.asyncio
    async def test_base_class_handler_receives_subclass_events(self):
        dispatcher = EventDispatcher()
        seen = []
        dispatcher.subscribe(SeriesEvent, lambda e: seen.append(("series", type(e).__name__)))
        dispatcher.subscribe(SeriesUpdatedEvent, lambda e: seen.append(("updated", type(e).__name__)))

        await dispatcher.publish(SeriesUpdatedEvent(key=KEY, candle_count=1, generation=1))
        await dispatcher.publish(SeriesFetchFailedEvent(key=KEY, error="x", has_cached_series=True))
        await dispatcher.publish(SampleEvent(message="other"))

        assert seen == [
            ("updated", "SeriesUpdatedEvent"),
            ("series", "SeriesUpdatedEvent"),
            ("series", "SeriesFetchFailedEvent"),
        ]

    def test_unsubscribe_last_handler_drops_event_type(self):
        dispatcher = EventDispatcher()
        dispatcher.subscribe(SampleEvent, print)
        assert dispatcher.handler_count(SampleEvent) == 1
        dispatcher.unsubscribe(SampleEvent, print)
        assert dispatcher._handlers == {}

    def test_unsubscribe_unknown_handler_is_noop(self):
        dispatcher = EventDispatcher()
        dispatcher.unsubscribe(SampleEvent, print)
        assert dispatcher.handler_count(SampleEvent) == 0

    @pytest.mark.asyncio
    async def test_publish_with_no_handlers(self):
        await EventDispatcher().publish(SampleEvent(message="test"))

    def test_events_are_frozen_and_timestamped(self):
        e = SampleEvent(message="x")
        assert e.timestamp.tzinfo is not None
        with pytest.raises(Exception):
            e.message = "y"


class TestGetDispatcher:
    """Test suite for get_dispatcher singleton function."""

    def test_get_dispatcher_returns_singleton(self):
        chartfeed.events._dispatcher = None

        dispatcher1 = get_dispatcher()
        dispatcher2 = get_dispatcher()
        assert isinstance(dispatcher1, EventDispatcher)
        assert dispatcher1 is dispatcher2

    @pytest.mark.asyncio
    async def test_singleton_retains_subscriptions(self):
        chartfeed.events._dispatcher = None
        calls = []

        get_dispatcher().subscribe(SampleEvent, calls.append)
        sample = SampleEvent(message="test")
        await get_dispatcher().publish(sample)

        assert calls == [sample]
        chartfeed.events._dispatcher = None
