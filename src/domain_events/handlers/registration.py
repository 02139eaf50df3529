"""Registration helpers for standardized handler setup.

Instead of subscribing the audit and metrics handlers to every event of a
domain by hand:

```python
register_standard_handlers(bus, "user", ["created", "updated", "deleted"])
```

Custom handlers (email, security, ...) are registered with
``register_domain_handlers`` or ``EventBus.subscribe``.
"""

from collections.abc import Iterable, Mapping

from loguru import logger

from domain_events.event_bus import EventBus, EventHandler
from domain_events.handlers.audit_handler import AuditHandler
from domain_events.handlers.metrics_handler import MetricsHandler, MetricsSink
from domain_events.services.audit_store import AuditStore


def register_standard_handlers(
    bus: EventBus,
    domain: str,
    events: Iterable[str],
    include_audit: bool = True,
    include_metrics: bool = True,
    audit_store: AuditStore | None = None,
    metrics_sink: MetricsSink | None = None,
) -> dict[str, list[str]]:
    """Subscribe one audit and one metrics handler to each event of a domain.

    Args:
        bus: Bus to subscribe on
        domain: Domain name, e.g. ``user``
        events: Event actions, e.g. ``["created", "updated"]``
        include_audit: Register an ``AuditHandler``
        include_metrics: Register a ``MetricsHandler``
        audit_store: Store for the audit handler
        metrics_sink: Sink for the metrics handler

    Returns:
        Event types registered per handler kind, ``{"audit": [...], "metrics": [...]}``
    """
    event_types = [f"{domain}.{action}" for action in events]
    registered: dict[str, list[str]] = {"audit": [], "metrics": []}

    if include_audit:
        audit_handler = AuditHandler(domain, store=audit_store)
        for event_type in event_types:
            bus.subscribe(event_type, audit_handler)
            registered["audit"].append(event_type)

    if include_metrics:
        metrics_handler = MetricsHandler(domain, sink=metrics_sink)
        for event_type in event_types:
            bus.subscribe(event_type, metrics_handler)
            registered["metrics"].append(event_type)

    kinds = [kind for kind, enabled in (("audit", include_audit), ("metrics", include_metrics)) if enabled]
    if kinds:
        logger.info(f"Standard handlers registered for {domain} domain: {', '.join(kinds)} ({len(event_types)} events)")
        logger.debug(f"Event types: {', '.join(event_types)}")

    return registered


def register_domain_handlers(bus: EventBus, domain: str, handlers: Mapping[EventHandler, Iterable[str]]) -> None:
    """Subscribe custom handlers to actions of a domain.

    Example:
        ```python
        register_domain_handlers(bus, "user", {
            email_handler: ["created", "activated"],
            security_handler: ["suspended", "deleted"],
        })
        ```
    """
    for handler, actions in handlers.items():
        for action in actions:
            bus.subscribe(f"{domain}.{action}", handler)

    logger.info(f"Custom handlers registered for {domain} domain ({len(handlers)} handler(s))")
