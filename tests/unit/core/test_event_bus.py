"""
Unit tests for the in-memory event bus and event handlers.
"""
import logging

from prometheus_client import REGISTRY

from core.domain.events import EventHandler
from core.infrastructure.event_handlers import (
    LICENSE_EVENTS,
    AuditLogEventHandler,
    LicenseMetricsEventHandler,
    register_event_handlers,
)
from core.infrastructure.events import InMemoryEventBus, event_bus
from licenses.domain.events import LicenseRevoked, LicenseSuspended

KEY = "MEDI-AB12-CD34-EF56-GH78"


class RecordingHandler(EventHandler):
    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)


class FailingHandler(EventHandler):
    def handle(self, event):
        raise RuntimeError("handler failed")


def events_counted(event_type):
    value = REGISTRY.get_sample_value("license_events_total", {"event_type": event_type})
    return value or 0.0


class TestInMemoryEventBus:
    """Tests for InMemoryEventBus."""

    def test_publish_to_subscribers(self):
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(LicenseSuspended, handler)

        bus.publish(LicenseSuspended(KEY, metadata={"reason": "non-payment"}))
        bus.publish(LicenseRevoked(KEY))

        assert len(handler.events) == 1
        assert handler.events[0].aggregate_id == KEY
        assert handler.events[0].metadata == {"reason": "non-payment"}

    def test_subscribe_same_handler_type_once(self):
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(LicenseSuspended, handler)
        bus.subscribe(LicenseSuspended, RecordingHandler())

        bus.publish(LicenseSuspended(KEY))

        assert len(handler.events) == 1

    def test_failing_handler_does_not_block_others(self, caplog):
        """Test handler errors are logged and the next handler still runs."""
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(LicenseSuspended, FailingHandler())
        bus.subscribe(LicenseSuspended, handler)

        with caplog.at_level(logging.ERROR, logger="core.infrastructure.events"):
            bus.publish(LicenseSuspended(KEY))

        assert len(handler.events) == 1
        assert "handler failed" in caplog.text

    def test_clear(self):
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(LicenseSuspended, handler)
        bus.clear()

        bus.publish(LicenseSuspended(KEY))

        assert handler.events == []


class TestEventHandlers:
    """Tests for the audit and metrics handlers."""

    def test_audit_log_handler(self, caplog):
        event = LicenseSuspended(KEY, metadata={"reason": "non-payment"})

        with caplog.at_level(logging.INFO, logger="core.infrastructure.event_handlers"):
            AuditLogEventHandler().handle(event)

        record = caplog.records[-1]
        assert record.getMessage() == f"Audit log: LicenseSuspended - {KEY}"
        assert record.audit_message == "License suspended"
        assert record.event_id == str(event.event_id)

    def test_metrics_handler(self):
        before = events_counted("LicenseRevoked")

        LicenseMetricsEventHandler().handle(LicenseRevoked(KEY))

        assert events_counted("LicenseRevoked") == before + 1

    def test_register_event_handlers(self):
        """Test registration is idempotent and covers every license event."""
        register_event_handlers()
        register_event_handlers()
        before = events_counted("LicenseSuspended")

        event_bus.publish(LicenseSuspended(KEY))

        assert events_counted("LicenseSuspended") == before + 1
        assert len(LICENSE_EVENTS) == 9
