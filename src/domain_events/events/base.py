"""Base class for all domain events.

A domain event is an immutable record of a business occurrence that already
happened, such as a user registration or a post being deleted. Events are
validated once at construction and frozen afterwards: assigning or deleting an
attribute raises ``ImmutableEventError``, and nested containers are stored as
read-only mappings and tuples.

Concrete events subclass ``DomainEvent`` and optionally compose attribute
mixins from ``domain_events.events.mixins``:

```python
class UserUpdatedEvent(ActorMixin, ChangeTrackingMixin, DomainEvent):
    user_id: Present = None

event = UserUpdatedEvent(
    event_type="user.updated",
    aggregate_id="user-123",
    aggregate_type="User",
    organization_id="org-456",
    actor_id="admin-1",
    changed_fields=["email"],
    user_id="user-123",
)
```
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Annotated, Any, Self
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from domain_events.events.errors import EventValidationError, ImmutableEventError


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def new_event_id() -> str:
    """Generate a globally unique event identifier."""
    return str(uuid4())


def freeze(value: Any) -> Any:
    """Recursively convert containers into read-only equivalents."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of ``freeze``: build plain dict/list copies for serialization."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [thaw(item) for item in value]
    return value


def require_present(value: str | None) -> str:
    """Reject missing and blank strings."""
    if value is None or not value.strip():
        raise ValueError("can't be blank")
    return value


def require_not_empty(value: tuple[Any, ...]) -> tuple[Any, ...]:
    if not value:
        raise ValueError("can't be blank")
    return value


# Required string: declared with a ``None`` default so a missing value is
# reported by the same "can't be blank" rule as an empty one.
Present = Annotated[str | None, AfterValidator(require_present)]

FrozenMap = Annotated[dict[str, Any], AfterValidator(freeze), PlainSerializer(thaw)]
FrozenList = Annotated[list[Any], AfterValidator(freeze), PlainSerializer(thaw)]
FieldNameList = Annotated[list[StrictStr], AfterValidator(freeze), AfterValidator(require_not_empty), PlainSerializer(thaw)]


def format_validation_errors(exc: PydanticValidationError) -> list[str]:
    """Render pydantic errors as ``"<field> <reason>"`` messages."""
    messages = []
    for error in exc.errors():
        if error["type"] == "value_error":
            reason = str(error.get("ctx", {}).get("error", error["msg"]))
        elif error["type"] == "extra_forbidden":
            reason = "is not a recognized attribute"
        else:
            reason = error["msg"]

        field = ".".join(str(part) for part in error["loc"])
        messages.append(f"{field} {reason}" if field else reason)
    return messages


class DomainEvent(BaseModel):
    """Base class for all domain events.

    Attributes:
        event_id: Unique identifier, generated when not supplied
        event_type: Dotted ``domain.action`` name, e.g. ``user.created``
        aggregate_id: Identifier of the entity the event is about
        aggregate_type: Kind of that entity, e.g. ``User``
        organization_id: Tenant the event belongs to
        occurred_at: When it happened, defaults to construction time
        version: Schema version tag of the event payload
        correlation_id: Identifier shared by all events of one request/flow
        causation_id: Identifier of the event or command that caused this one
        metadata: Free-form string keyed context
    """

    model_config = ConfigDict(
        frozen=True,  # Events are immutable
        extra="forbid",
        validate_default=True,
        coerce_numbers_to_str=True,
    )

    event_id: str = Field(default_factory=new_event_id)
    event_type: Present = None
    aggregate_id: Present = None
    aggregate_type: Present = None
    organization_id: Present = None
    occurred_at: datetime = Field(default_factory=utc_now)
    version: int = 1
    correlation_id: str | None = None
    causation_id: str | None = None
    metadata: FrozenMap = Field(default_factory=dict)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as exc:
            raise EventValidationError(format_validation_errors(exc), event_class=type(self).__name__) from exc

    # model_validate* bypass __init__, so they translate pydantic errors themselves

    @classmethod
    def model_validate(cls, obj: Any, **kwargs: Any) -> Self:
        try:
            return super().model_validate(obj, **kwargs)
        except PydanticValidationError as exc:
            raise EventValidationError(format_validation_errors(exc), event_class=cls.__name__) from exc

    @classmethod
    def model_validate_json(cls, json_data: str | bytes | bytearray, **kwargs: Any) -> Self:
        try:
            return super().model_validate_json(json_data, **kwargs)
        except PydanticValidationError as exc:
            raise EventValidationError(format_validation_errors(exc), event_class=cls.__name__) from exc

    @field_validator("event_id", mode="before")
    @classmethod
    def generate_missing_event_id(cls, v: Any) -> Any:
        """An explicit ``None`` behaves like an absent id."""
        return new_event_id() if v is None else v

    @field_validator("occurred_at", mode="before")
    @classmethod
    def default_missing_occurred_at(cls, v: Any) -> Any:
        return utc_now() if v is None else v

    def __setattr__(self, name: str, value: Any) -> None:
        raise ImmutableEventError(type(self).__name__, name)

    def __delattr__(self, name: str) -> None:
        raise ImmutableEventError(type(self).__name__, name)

    def __hash__(self) -> int:
        return hash((type(self), self.event_id))

    def __str__(self) -> str:
        return f"<{type(self).__name__}(id={self.event_id}, type={self.event_type})>"

    __repr__ = __str__

    def to_map(self) -> dict[str, Any]:
        """Return a snapshot of every attribute.

        Core, mixin and event specific attributes are included; datetimes are
        rendered as ISO-8601 strings and frozen containers as plain dicts and
        lists, so the result is safe to mutate and to serialize as JSON.
        """
        return self.model_dump(mode="json")

    def validation_errors(self) -> list[str]:
        """Re-run all validation rules against the current attribute values.

        Instances built through ``model_construct`` skip validation entirely;
        this catches them before they reach any handler.
        """
        try:
            type(self)(**self.model_dump())
        except EventValidationError as exc:
            return exc.errors
        return []

    def is_valid(self) -> bool:
        """Check whether the event passes all validation rules."""
        return not self.validation_errors()

    def ensure_valid(self) -> None:
        """Raise ``EventValidationError`` if the event is not valid."""
        errors = self.validation_errors()
        if errors:
            raise EventValidationError(errors, event_class=type(self).__name__)

