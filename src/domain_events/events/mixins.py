"""Reusable attribute sets for domain events.

Each mixin contributes a named group of fields plus their validation rules:

- WHO performed the action (``ActorMixin``)
- WHEN it occurred (``AuditMixin``)
- WHAT changed (``ChangeTrackingMixin``)
- WHERE it came from (``SecurityContextMixin``)
- WHY it was done (``ReasonMixin``)
- HOW LONG it took (``DurationMixin``)

Mixins are composed by listing them as bases before ``DomainEvent``. The
resulting event validates the union of all mixin rules; the order of the bases
only changes field order, never which rules apply.

The mixin classes double as capability types: handlers test
``isinstance(event, ActorMixin)`` instead of probing for attributes.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable

from domain_events.events.base import FieldNameList, FrozenMap, Present, utc_now


class ActorMixin(BaseModel):
    """Tracks which user triggered the event.

    Attributes:
        actor_id: Identifier of the acting user (required)
        actor_email: Email of the acting user
    """

    actor_id: Present = None
    actor_email: str | None = None


class AuditMixin(BaseModel):
    """Declares the occurrence timestamp explicitly.

    Redundant with ``DomainEvent.occurred_at``; kept so audit-relevant events
    state the field in their own definition.
    """

    occurred_at: datetime = Field(default_factory=utc_now)


class ChangeTrackingMixin(BaseModel):
    """Tracks field level changes of an update.

    Attributes:
        changed_fields: Names of the fields that changed (required, non-empty)
        old_values: Field name to previous value
        new_values: Field name to new value
    """

    changed_fields: FieldNameList = Field(default_factory=list)
    old_values: FrozenMap = Field(default_factory=dict)
    new_values: FrozenMap = Field(default_factory=dict)


class SecurityContextMixin(BaseModel):
    """Tracks where a request came from."""

    ip_address: str | None = None
    user_agent: str | None = None


class ReasonMixin(BaseModel):
    """Documents why an (administrative) action was taken."""

    reason: Present = None


class DurationMixin(BaseModel):
    """Carries the duration of the operation in milliseconds."""

    duration: float | None = None


def changes_from(source: Any) -> dict[str, Any]:
    """Build ``ChangeTrackingMixin`` attributes from a set of changes.

    Args:
        source: Either a mapping of ``field -> (old, new)`` or a SQLAlchemy
            mapped instance with pending attribute changes. Attribute history
            is reset by a flush, so extract changes from an instance before
            flushing it.

    Returns:
        Dictionary with ``changed_fields``, ``old_values`` and ``new_values``
    """
    if isinstance(source, Mapping):
        pairs = {name: tuple(change) for name, change in source.items()}
    else:
        pairs = _pending_changes(source)

    return {
        "changed_fields": list(pairs),
        "old_values": {name: old for name, (old, _new) in pairs.items()},
        "new_values": {name: new for name, (_old, new) in pairs.items()},
    }


def _pending_changes(instance: Any) -> dict[str, tuple[Any, Any]]:
    try:
        state = sa_inspect(instance)
    except NoInspectionAvailable:
        return {}

    pairs = {}
    for attr in state.attrs:
        history = attr.history
        if not history.has_changes():
            continue
        old = history.deleted[0] if history.deleted else None
        new = history.added[0] if history.added else None
        pairs[attr.key] = (old, new)
    return pairs
