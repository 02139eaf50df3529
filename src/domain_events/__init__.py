"""In-process domain event bus with audit and metrics handlers."""

from .event_bus import DeferredEventQueue, EventBus, EventHandler, get_event_bus, reset_event_bus
from .events import DomainEvent, EventValidationError, ImmutableEventError
from .settings import Settings, get_settings

__all__ = [
    "DeferredEventQueue",
    "DomainEvent",
    "EventBus",
    "EventHandler",
    "EventValidationError",
    "ImmutableEventError",
    "Settings",
    "get_event_bus",
    "get_settings",
    "reset_event_bus",
]
