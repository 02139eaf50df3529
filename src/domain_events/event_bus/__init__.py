"""Event Bus System for Decoupled Domain Communication.

This package provides a synchronous, in-process publish/subscribe bus for
domain events. It supports:

- **Pattern Subscriptions**: Exact event types (``user.created``) or wildcards (``user.*``)
- **Validated Publishing**: Only valid ``DomainEvent`` instances are dispatched
- **Error Isolation**: Handler failures are logged and don't affect other handlers
- **Deferred Publication**: Events queued inside a transaction publish on commit
- **Singleton Pattern**: Process-wide bus via @lru_cache, resettable for tests

## Quick Start

```python
from domain_events.event_bus import EventBus, EventHandler

class WelcomeEmailHandler(EventHandler[UserCreatedEvent]):
    def can_handle(self, event_type: str) -> bool:
        return event_type == "user.created"

    def handle(self, event: UserCreatedEvent) -> None:
        print(f"Sending welcome email to {event.email}")

bus = EventBus()
bus.subscribe("user.created", WelcomeEmailHandler())
bus.publish(UserCreatedEvent(...))
```

For the handler base class and errors, see `core.py`.
For the subscription registry and dispatch order, see `memory.py`.
For commit-deferred publication, see `deferred.py`.

"""

from .bus import ADAPTERS, EventBus, get_event_bus, reset_event_bus, resolve_adapter
from .core import (
    EventBusError,
    EventEmissionError,
    EventHandler,
    HandlerRegistrationError,
    get_handler_executor,
    shutdown_handler_executor,
)
from .deferred import DeferredEventQueue, bind_to_session
from .memory import EventBusAdapter, MemoryAdapter, pattern_matches

__all__ = [
    "ADAPTERS",
    "DeferredEventQueue",
    "EventBus",
    "EventBusAdapter",
    "EventBusError",
    "EventEmissionError",
    "EventHandler",
    "HandlerRegistrationError",
    "MemoryAdapter",
    "bind_to_session",
    "get_event_bus",
    "get_handler_executor",
    "pattern_matches",
    "reset_event_bus",
    "resolve_adapter",
    "shutdown_handler_executor",
]
