"""Event Bus Implementation.

This module provides the ``EventBus`` facade that validates, logs and forwards
domain events to a subscription registry (adapter). Delivery is synchronous:
``publish`` returns once every matching handler ran.

## Lifecycle

Construct a bus explicitly and pass it to the services and handlers that need
it. For applications that want one process-wide instance, ``get_event_bus``
returns a cached bus built from settings, and ``reset_event_bus`` discards it
so the next access starts with no subscriptions (test isolation).

## Usage

```python
from domain_events.event_bus import EventBus
from domain_events.handlers import AuditHandler

bus = EventBus()
bus.subscribe("user.*", AuditHandler("user"))
bus.publish(UserCreatedEvent(
    event_type="user.created",
    aggregate_id="user-123",
    aggregate_type="User",
    organization_id="org-456",
))
```

"""

from collections.abc import Callable, Iterable
from functools import lru_cache

from loguru import logger

from domain_events.event_bus.core import EventEmissionError, EventHandler, HandlerRegistrationError, handler_name
from domain_events.event_bus.memory import EventBusAdapter, MemoryAdapter
from domain_events.events import DomainEvent, EventValidationError
from domain_events.settings import Settings, get_settings

ADAPTERS: dict[str, Callable[[], EventBusAdapter]] = {
    "memory": MemoryAdapter,
}


def resolve_adapter(adapter: EventBusAdapter | str) -> EventBusAdapter:
    """Return an adapter instance for an adapter or a registered adapter name.

    Raises:
        ValueError: If the name is not a known adapter
    """
    if isinstance(adapter, EventBusAdapter):
        return adapter

    factory = ADAPTERS.get(str(adapter).lower())
    if factory is None:
        raise ValueError(f"Unknown adapter: {adapter}. Available adapters: {', '.join(sorted(ADAPTERS))}")
    return factory()


class EventBus:
    """Publish/subscribe facade for domain events.

    The bus checks that published objects are valid ``DomainEvent`` instances
    and delegates storage and dispatch to its adapter. Validation and type
    errors are the only errors ``publish`` raises; handler failures are
    isolated by the adapter.
    """

    def __init__(self, adapter: EventBusAdapter | str | None = None, settings: Settings | None = None) -> None:
        """Initialize a new EventBus.

        Args:
            adapter: Adapter instance or adapter name. Defaults to
                ``Settings.event_bus_adapter``.
            settings: Settings to read the adapter name from. Defaults to the
                cached process settings.
        """
        self.settings = settings or get_settings()
        self._adapter = resolve_adapter(adapter if adapter is not None else self.settings.event_bus_adapter)
        logger.debug(f"EventBus initialized with {type(self._adapter).__name__}")

    @property
    def adapter(self) -> EventBusAdapter:
        """The subscription registry this bus delegates to."""
        return self._adapter

    def subscribe(self, pattern: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event type or ``domain.*`` wildcard.

        Args:
            pattern: Exact event type (``user.created``) or wildcard (``user.*``)
            handler: Object with a ``handle(event)`` method

        Raises:
            HandlerRegistrationError: If the pattern or handler is invalid
        """
        if not isinstance(pattern, str) or not pattern.strip():
            raise HandlerRegistrationError(f"Subscription pattern must be a non-empty string, got: {pattern!r}")
        if not callable(getattr(handler, "handle", None)):
            raise HandlerRegistrationError(f"Handler must have a callable handle(event) method: {handler!r}")

        if self._adapter.subscribe(pattern, handler):
            logger.info(f"Event handler subscribed: {handler_name(handler)} -> {pattern}")
        else:
            logger.debug(f"Event handler already subscribed: {handler_name(handler)} -> {pattern}")

    def unsubscribe(self, pattern: str, handler: EventHandler) -> bool:
        """Remove a handler from a pattern.

        Returns:
            True if the handler was subscribed under the pattern
        """
        removed = self._adapter.unsubscribe(pattern, handler)
        if removed:
            logger.info(f"Event handler unsubscribed: {handler_name(handler)} -> {pattern}")
        return removed

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all matching handlers.

        Args:
            event: The event to publish

        Raises:
            EventEmissionError: If ``event`` is not a ``DomainEvent`` instance
            EventValidationError: If the event fails validation
        """
        self._validate_event(event)

        logger.info(f"Publishing event: {event.event_type} ({event.event_id})")
        logger.debug(f"Event details: {event.to_map()}")

        self._adapter.publish(event)

    def publish_all(self, events: Iterable[DomainEvent]) -> None:
        """Publish several events in order."""
        for event in events:
            self.publish(event)

    def subscriptions(self) -> dict[str, list[EventHandler]]:
        """Get a snapshot of all subscriptions."""
        return self._adapter.subscriptions()

    def clear(self) -> None:
        """Drop all subscriptions."""
        self._adapter.clear()
        logger.debug("Cleared all event subscriptions")

    def _validate_event(self, event: object) -> None:
        if not isinstance(event, DomainEvent):
            raise EventEmissionError(f"Event must be a DomainEvent instance, got: {type(event).__name__}")

        try:
            errors = event.validation_errors()
        except (TypeError, ValueError, AttributeError) as e:
            raise EventValidationError([f"Malformed event: {e}"], event_class=type(event).__name__) from e

        if errors:
            raise EventValidationError(errors, event_class=type(event).__name__)


@lru_cache
def get_event_bus() -> EventBus:
    """Get or create the process-wide EventBus.

    Returns:
        The EventBus instance, built against the configured adapter
    """
    return EventBus()


def reset_event_bus() -> None:
    """Discard the process-wide EventBus; the next access builds a fresh one."""
    get_event_bus.cache_clear()
