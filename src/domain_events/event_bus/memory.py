"""Subscription registry and synchronous dispatch.

The adapter stores ``pattern -> handlers`` subscriptions and delivers each
published event to every matching handler, one after another, in the calling
thread. A pattern is either an exact event type (``user.created``) or a
wildcard (``user.*``) matching every type that starts with ``user.``.

## Dispatch order

Handlers are invoked grouped by pattern, patterns in the order of their first
subscription, handlers in subscription order within a pattern. A handler
reachable through several matching patterns runs once, at its first position.

## Concurrency

``subscribe``, ``unsubscribe`` and match resolution share one lock. Dispatch
runs on a snapshot taken under the lock, after releasing it, so a slow handler
never blocks a concurrent subscription or an unrelated publish.
"""

import threading
from abc import ABC, abstractmethod

from loguru import logger

from domain_events.event_bus.core import EventHandler, handler_name
from domain_events.events import DomainEvent

WILDCARD_SUFFIX = ".*"


def pattern_matches(pattern: str, event_type: str) -> bool:
    """Check whether a subscription pattern accepts an event type.

    Args:
        pattern: Exact event type or ``prefix.*`` wildcard
        event_type: Event type of the published event

    Returns:
        True on exact equality, or if ``pattern`` is a wildcard and
        ``event_type`` starts with its prefix followed by a dot
    """
    if event_type == pattern:
        return True

    if pattern.endswith(WILDCARD_SUFFIX):
        prefix = pattern[: -len(WILDCARD_SUFFIX)]
        return event_type.startswith(f"{prefix}.")

    return False


class EventBusAdapter(ABC):
    """Interface of subscription registries used by ``EventBus``."""

    @abstractmethod
    def subscribe(self, pattern: str, handler: EventHandler) -> bool:
        """Add a handler under a pattern; returns False if already present."""

    @abstractmethod
    def unsubscribe(self, pattern: str, handler: EventHandler) -> bool:
        """Remove a handler from a pattern; returns False if it was not there."""

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Deliver an event to all matching handlers."""

    @abstractmethod
    def subscriptions(self) -> dict[str, list[EventHandler]]:
        """Snapshot of ``pattern -> handlers``."""

    @abstractmethod
    def clear(self) -> None:
        """Drop all subscriptions."""


class MemoryAdapter(EventBusAdapter):
    """In-memory registry with synchronous, fault isolated dispatch.

    Suitable for development, tests and single-process applications.

    Example:
        ```python
        adapter = MemoryAdapter()
        adapter.subscribe("user.*", audit_handler)
        adapter.publish(UserCreatedEvent(...))
        ```
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, pattern: str, handler: EventHandler) -> bool:
        """Subscribe a handler to a pattern.

        Idempotent: a handler already stored under the exact same pattern
        (compared by identity) is not added twice.

        Returns:
            True if the handler was added, False if it was already subscribed
        """
        with self._lock:
            handlers = self._handlers.setdefault(pattern, [])
            if any(existing is handler for existing in handlers):
                return False
            handlers.append(handler)
            return True

    def unsubscribe(self, pattern: str, handler: EventHandler) -> bool:
        """Remove a handler (by identity) from a pattern.

        Returns:
            True if the handler was removed, False if it was not subscribed
        """
        with self._lock:
            handlers = self._handlers.get(pattern)
            if not handlers:
                return False
            for index, existing in enumerate(handlers):
                if existing is handler:
                    del handlers[index]
                    if not handlers:
                        del self._handlers[pattern]
                    return True
            return False

    def handlers_for(self, pattern: str) -> list[EventHandler]:
        """Get the handlers stored under exactly this pattern."""
        with self._lock:
            return list(self._handlers.get(pattern, []))

    def subscriptions(self) -> dict[str, list[EventHandler]]:
        """Get a snapshot of all subscriptions."""
        with self._lock:
            return {pattern: list(handlers) for pattern, handlers in self._handlers.items()}

    def matching_handlers(self, event_type: str) -> list[EventHandler]:
        """Resolve the ordered, de-duplicated handlers for an event type."""
        with self._lock:
            matched: list[EventHandler] = []
            seen: set[int] = set()
            for pattern, handlers in self._handlers.items():
                if not pattern_matches(pattern, event_type):
                    continue
                for handler in handlers:
                    if id(handler) not in seen:
                        seen.add(id(handler))
                        matched.append(handler)
            return matched

    def publish(self, event: DomainEvent) -> None:
        """Deliver an event to every matching handler.

        Each handler runs in turn; an exception raised by one handler is
        logged and swallowed so the remaining handlers still run. Publishing
        an event nobody subscribed to is a no-op.
        """
        handlers = self.matching_handlers(event.event_type)

        if not handlers:
            logger.debug(f"No handlers for event type: {event.event_type}")
            return

        logger.debug(f"Notifying {len(handlers)} handler(s) for {event.event_type}")

        failed = 0
        for handler in handlers:
            if not self._dispatch(handler, event):
                failed += 1

        if failed:
            logger.warning(f"Event {event.event_type}: {len(handlers) - failed} successful, {failed} failed handlers")

    def _dispatch(self, handler: EventHandler, event: DomainEvent) -> bool:
        try:
            handler.handle(event)
        except Exception as e:
            logger.opt(exception=e).error(f"Handler {handler_name(handler)} failed for {event.event_type}: {e}")
            return False
        return True

    def clear(self) -> None:
        """Drop all subscriptions."""
        with self._lock:
            self._handlers.clear()
