"""
Event handlers for domain events.

These handlers process domain events for side effects
like structured audit logging and metrics.
"""

import logging

from core.domain.events import DomainEvent, EventHandler
from core.metrics import license_events_total
from licenses.domain.events import (
    LicenseActivated,
    LicenseAssigned,
    LicenseCreated,
    LicenseRenewed,
    LicenseResumed,
    LicenseRevoked,
    LicenseSuspended,
    LicenseUpdated,
    MonthlyUsageReset,
)

logger = logging.getLogger(__name__)

LICENSE_EVENTS = (
    LicenseCreated,
    LicenseUpdated,
    LicenseActivated,
    LicenseAssigned,
    LicenseSuspended,
    LicenseResumed,
    LicenseRevoked,
    LicenseRenewed,
    MonthlyUsageReset,
)


class AuditLogEventHandler(EventHandler):
    """
    Event handler for audit logging.

    Emits one structured log record per domain event.
    """

    def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event for audit logging.

        Args:
            event: Domain event to log
        """
        logger.info(
            "Audit log: %s - %s",
            event.event_type,
            event.aggregate_id,
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type,
                "aggregate_id": event.aggregate_id,
                "occurred_at": event.occurred_at.isoformat(),
                "audit_message": event.message,
            },
        )


class LicenseMetricsEventHandler(EventHandler):
    """Event handler counting license lifecycle events."""

    def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event for metrics.

        Args:
            event: Domain event
        """
        license_events_total.labels(event_type=event.event_type).inc()


def register_event_handlers():
    """Register all event handlers with the event bus."""
    from core.infrastructure.events import event_bus

    audit_handler = AuditLogEventHandler()
    metrics_handler = LicenseMetricsEventHandler()

    for event_type in LICENSE_EVENTS:
        event_bus.subscribe(event_type, audit_handler)
        event_bus.subscribe(event_type, metrics_handler)

    logger.info("Event handlers registered")
