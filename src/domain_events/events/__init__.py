"""Domain event definitions.

This package provides the immutable ``DomainEvent`` base class, the reusable
attribute mixins and the errors raised while building events.
"""

from domain_events.events.base import DomainEvent, FrozenList, FrozenMap, Present
from domain_events.events.errors import EventError, EventValidationError, ImmutableEventError
from domain_events.events.mixins import (
    ActorMixin,
    AuditMixin,
    ChangeTrackingMixin,
    DurationMixin,
    ReasonMixin,
    SecurityContextMixin,
    changes_from,
)

__all__ = [
    "ActorMixin",
    "AuditMixin",
    "ChangeTrackingMixin",
    "DomainEvent",
    "DurationMixin",
    "EventError",
    "EventValidationError",
    "FrozenList",
    "FrozenMap",
    "ImmutableEventError",
    "Present",
    "ReasonMixin",
    "SecurityContextMixin",
    "changes_from",
]
