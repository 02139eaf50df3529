"""Tests for the in-memory subscription registry."""

import threading

import pytest
from sample_events import FailingHandler, RecordingHandler, make_event

from domain_events.event_bus import MemoryAdapter, pattern_matches


class TestPatternMatching:
    @pytest.mark.parametrize(
        ("pattern", "event_type", "expected"),
        [
            ("user.created", "user.created", True),
            ("user.created", "user.updated", False),
            ("user.*", "user.created", True),
            ("user.*", "user.profile.updated", True),
            ("user.*", "users.created", False),
            ("user.*", "user", False),
            ("user.*", "order.created", False),
            ("*", "user.created", False),
        ],
    )
    def test_pattern_matches(self, pattern: str, event_type: str, expected: bool):
        assert pattern_matches(pattern, event_type) is expected


class TestSubscriptions:
    def test_subscribe_is_idempotent(self):
        """Test that the same handler instance is stored once per pattern."""
        adapter = MemoryAdapter()
        handler = RecordingHandler()

        assert adapter.subscribe("user.created", handler) is True
        assert adapter.subscribe("user.created", handler) is False

        assert adapter.handlers_for("user.created") == [handler]

    def test_equal_but_distinct_handlers_are_both_stored(self):
        adapter = MemoryAdapter()
        first, second = RecordingHandler(), RecordingHandler()

        adapter.subscribe("user.created", first)
        adapter.subscribe("user.created", second)

        assert adapter.handlers_for("user.created") == [first, second]

    def test_unsubscribe(self):
        adapter = MemoryAdapter()
        handler = RecordingHandler()
        adapter.subscribe("user.created", handler)

        assert adapter.unsubscribe("user.created", handler) is True
        assert adapter.unsubscribe("user.created", handler) is False
        assert adapter.subscriptions() == {}

    def test_unsubscribe_unknown_pattern(self):
        assert MemoryAdapter().unsubscribe("user.created", RecordingHandler()) is False

    def test_subscriptions_snapshot(self):
        adapter = MemoryAdapter()
        handler = RecordingHandler()
        adapter.subscribe("user.*", handler)

        snapshot = adapter.subscriptions()
        snapshot["user.*"].clear()

        assert adapter.handlers_for("user.*") == [handler]

    def test_clear(self):
        adapter = MemoryAdapter()
        handler = RecordingHandler()
        adapter.subscribe("user.created", handler)

        adapter.clear()
        adapter.publish(make_event())

        assert adapter.subscriptions() == {}
        assert handler.events == []


class TestDispatch:
    def test_wildcard_delivery(self):
        adapter = MemoryAdapter()
        handler = RecordingHandler()
        adapter.subscribe("user.*", handler)

        adapter.publish(make_event("user.created"))
        adapter.publish(make_event("user.updated"))
        adapter.publish(make_event("order.created"))

        assert [event.event_type for event in handler.events] == ["user.created", "user.updated"]

    def test_dispatch_order(self):
        """Test that patterns run in first-subscription order, handlers in list order."""
        adapter = MemoryAdapter()
        calls: list[str] = []
        first = RecordingHandler("first", calls)
        exact = RecordingHandler("exact", calls)
        third = RecordingHandler("third", calls)

        adapter.subscribe("user.*", first)
        adapter.subscribe("user.created", exact)
        adapter.subscribe("user.*", third)

        adapter.publish(make_event("user.created"))

        assert calls == ["first", "third", "exact"]

    def test_handler_matching_several_patterns_runs_once(self):
        adapter = MemoryAdapter()
        calls: list[str] = []
        shared = RecordingHandler("shared", calls)
        other = RecordingHandler("other", calls)

        adapter.subscribe("user.created", other)
        adapter.subscribe("user.created", shared)
        adapter.subscribe("user.*", shared)

        adapter.publish(make_event("user.created"))

        assert calls == ["other", "shared"]
        assert adapter.matching_handlers("user.created") == [other, shared]

    def test_failing_handler_does_not_stop_siblings(self, log_capture):
        """Test fan-out completeness when the first handler raises."""
        adapter = MemoryAdapter()
        failing = FailingHandler()
        recording = RecordingHandler()
        adapter.subscribe("user.created", failing)
        adapter.subscribe("user.created", recording)

        event = make_event("user.created")
        adapter.publish(event)

        assert recording.events == [event]
        assert log_capture.contains("Handler FailingHandler failed for user.created: handler exploded", level="ERROR")
        assert log_capture.contains("Event user.created: 1 successful, 1 failed handlers", level="WARNING")

    def test_no_subscribers_is_a_noop(self, log_capture):
        adapter = MemoryAdapter()
        adapter.subscribe("order.*", RecordingHandler())

        adapter.publish(make_event("user.created"))

        assert log_capture.contains("No handlers for event type: user.created", level="DEBUG")
        assert not log_capture.messages("WARNING")


class TestConcurrency:
    def test_slow_handler_does_not_block_subscribe(self):
        """Test that dispatch runs outside the registry lock."""
        adapter = MemoryAdapter()
        entered = threading.Event()
        release = threading.Event()

        class BlockingHandler(RecordingHandler):
            def handle(self, event):
                entered.set()
                release.wait(timeout=5)
                super().handle(event)

        blocking = BlockingHandler()
        adapter.subscribe("user.created", blocking)

        publisher = threading.Thread(target=adapter.publish, args=(make_event(),))
        publisher.start()
        try:
            assert entered.wait(timeout=5)
            assert adapter.subscribe("user.updated", RecordingHandler()) is True
            assert adapter.matching_handlers("user.created") == [blocking]
        finally:
            release.set()
            publisher.join(timeout=5)

        assert len(blocking.events) == 1

    def test_handler_may_subscribe_during_dispatch(self):
        adapter = MemoryAdapter()
        late = RecordingHandler("late")

        class SubscribingHandler(RecordingHandler):
            def handle(self, event):
                super().handle(event)
                adapter.subscribe("user.created", late)

        adapter.subscribe("user.created", SubscribingHandler())

        adapter.publish(make_event())
        assert late.events == []

        adapter.publish(make_event())
        assert len(late.events) == 1

    def test_concurrent_subscribe_and_publish(self):
        adapter = MemoryAdapter()
        handlers = [RecordingHandler(str(i)) for i in range(50)]
        errors: list[BaseException] = []

        def subscribe_all():
            for handler in handlers:
                adapter.subscribe("user.*", handler)

        def publish_many():
            try:
                for _ in range(50):
                    adapter.publish(make_event())
            except BaseException as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=subscribe_all), threading.Thread(target=publish_many)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert errors == []
        assert adapter.handlers_for("user.*") == handlers
