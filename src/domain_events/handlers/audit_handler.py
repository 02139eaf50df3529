"""Generic audit handler for domain events.

The handler writes one structured ``[AUDIT]`` log line per event and, when
``Settings.audit_table_enabled`` is set, appends a classified record to an
audit store. Audit failures never propagate to the publisher.

Example:
    ```python
    user_audit = AuditHandler("user")
    bus.subscribe("user.created", user_audit)
    bus.subscribe("user.updated", user_audit)
    ```
"""

import json
from typing import Any

from loguru import logger

from domain_events.event_bus.core import EventHandler
from domain_events.events import ActorMixin, DomainEvent, SecurityContextMixin
from domain_events.handlers.classification import assess_risk_level, map_event_category
from domain_events.models import AuditEvent
from domain_events.services.audit_store import AuditStore, get_audit_store
from domain_events.settings import Settings, get_settings


class AuditHandler(EventHandler[DomainEvent]):
    """Audit logging for all events of one domain (``"*"`` for every domain)."""

    def __init__(self, domain: str, store: AuditStore | None = None, settings: Settings | None = None):
        """Initialize the audit handler.

        Args:
            domain: Domain name (e.g. ``user``, ``order``) or ``*``
            store: Where audit records go. Defaults to the process-wide store,
                resolved on the first write.
            settings: Settings gating persistence. Defaults to the cached
                process settings.
        """
        self.domain = domain
        self.settings = settings or get_settings()
        self._store = store

    @property
    def store(self) -> AuditStore:
        if self._store is None:
            self._store = get_audit_store()
        return self._store

    def can_handle(self, event_type: str) -> bool:
        if self.domain == "*":
            return True
        return event_type.startswith(f"{self.domain}.")

    def handle(self, event: DomainEvent) -> None:
        """Log the event and persist an audit record if enabled."""
        try:
            action = event.event_type.rsplit(".", 1)[-1]
            logger.bind(audit=True).info(f"[AUDIT] {event.aggregate_type} {action} - {json.dumps(self.build_log_data(event), default=str)}")

            if self.settings.audit_table_enabled:
                self._write_record(event)
        except Exception as e:
            logger.opt(exception=e).warning(f"Audit logging failed: {e}")

    def build_log_data(self, event: DomainEvent) -> dict[str, Any]:
        """Identifiers first, then every other non-null attribute of the event."""
        log_data: dict[str, Any] = {
            "audit": True,
            "event_id": event.event_id,
            "event_type": event.event_type,
            "aggregate_type": event.aggregate_type,
            "aggregate_id": event.aggregate_id,
            "organization_id": event.organization_id,
            "occurred_at": event.occurred_at.isoformat(),
        }

        for key, value in event.to_map().items():
            if key in log_data or value is None:
                continue
            log_data[key] = value

        return log_data

    def build_record(self, event: DomainEvent) -> AuditEvent:
        """Build the audit record persisted for an event."""
        return AuditEvent(
            event_id=event.event_id,
            event_type=event.event_type,
            aggregate_id=event.aggregate_id,
            aggregate_type=event.aggregate_type,
            organization_id=event.organization_id,
            category=map_event_category(event.event_type),
            risk_level=assess_risk_level(event.event_type),
            event_data=event.to_map(),
            occurred_at=event.occurred_at,
            actor_id=event.actor_id if isinstance(event, ActorMixin) else None,
            ip_address=event.ip_address if isinstance(event, SecurityContextMixin) else None,
        )

    def _write_record(self, event: DomainEvent) -> None:
        try:
            self.store.append(self.build_record(event))
        except Exception as e:
            logger.warning(f"Failed to write audit record for {event.event_type} ({event.event_id}): {e}")
