"""Tests for the handler registration helpers."""

import pytest
from sample_events import RecordingHandler, make_event

from domain_events.event_bus import EventBus
from domain_events.handlers import (
    AuditHandler,
    InMemoryMetricsSink,
    MetricsHandler,
    register_domain_handlers,
    register_standard_handlers,
)
from domain_events.services.audit_store import InMemoryAuditStore
from domain_events.settings import get_settings


class TestRegisterStandardHandlers:
    def test_registers_audit_and_metrics(self, bus: EventBus):
        registered = register_standard_handlers(bus, "user", ["created", "updated", "deleted"])

        expected = ["user.created", "user.updated", "user.deleted"]
        assert registered == {"audit": expected, "metrics": expected}

        subscriptions = bus.subscriptions()
        assert list(subscriptions) == expected
        for handlers in subscriptions.values():
            assert [type(handler) for handler in handlers] == [AuditHandler, MetricsHandler]

    def test_one_handler_instance_per_kind(self, bus: EventBus):
        register_standard_handlers(bus, "user", ["created", "updated"])

        subscriptions = bus.subscriptions()
        assert subscriptions["user.created"][0] is subscriptions["user.updated"][0]
        assert subscriptions["user.created"][1] is subscriptions["user.updated"][1]

    def test_audit_only(self, bus: EventBus):
        registered = register_standard_handlers(bus, "user", ["created"], include_metrics=False)

        assert registered == {"audit": ["user.created"], "metrics": []}
        assert [type(handler) for handler in bus.subscriptions()["user.created"]] == [AuditHandler]

    def test_nothing_included(self, bus: EventBus, log_capture):
        registered = register_standard_handlers(bus, "user", ["created"], include_audit=False, include_metrics=False)

        assert registered == {"audit": [], "metrics": []}
        assert bus.subscriptions() == {}
        assert not log_capture.contains("Standard handlers registered")

    def test_logs_summary(self, bus: EventBus, log_capture):
        register_standard_handlers(bus, "user", ["created", "updated", "deleted"])

        assert log_capture.contains("Standard handlers registered for user domain: audit, metrics (3 events)", level="INFO")
        assert log_capture.contains("Event types: user.created, user.updated, user.deleted", level="DEBUG")

    def test_published_events_reach_store_and_sink(self, bus: EventBus, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DOMAIN_EVENTS_AUDIT_TABLE_ENABLED", "true")
        get_settings.cache_clear()
        store = InMemoryAuditStore()
        sink = InMemoryMetricsSink()
        register_standard_handlers(bus, "user", ["deleted"], audit_store=store, metrics_sink=sink)

        bus.publish(make_event("user.deleted"))
        bus.publish(make_event("user.created"))

        assert [record.event_type for record in store.records] == ["user.deleted"]
        assert sink.names() == ["domain_events.user.deleted"]


class TestRegisterDomainHandlers:
    def test_subscribes_each_action(self, bus: EventBus, log_capture):
        email_handler = RecordingHandler("email")
        security_handler = RecordingHandler("security")

        register_domain_handlers(
            bus,
            "user",
            {
                email_handler: ["created", "activated"],
                security_handler: ["suspended", "deleted"],
            },
        )

        assert bus.subscriptions() == {
            "user.created": [email_handler],
            "user.activated": [email_handler],
            "user.suspended": [security_handler],
            "user.deleted": [security_handler],
        }
        assert log_capture.contains("Custom handlers registered for user domain (2 handler(s))", level="INFO")

        bus.publish(make_event("user.suspended"))
        assert len(security_handler.events) == 1
        assert email_handler.events == []
