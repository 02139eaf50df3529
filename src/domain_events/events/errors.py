"""Errors raised by domain events themselves."""


class EventError(Exception):
    """Base exception for event construction and usage errors."""


class EventValidationError(EventError):
    """Raised when an event fails its validation rules.

    Every failed rule is collected, so ``errors`` holds the full list of
    human readable reasons rather than just the first one.
    """

    def __init__(self, errors: list[str], event_class: str | None = None):
        self.errors = list(errors)
        self.event_class = event_class
        super().__init__(f"Event validation failed: {', '.join(self.errors)}")


class ImmutableEventError(EventError, AttributeError):
    """Raised when code tries to modify an event after construction."""

    def __init__(self, event_class: str, attribute: str):
        self.event_class = event_class
        self.attribute = attribute
        super().__init__(f"{event_class} is immutable, cannot modify '{attribute}'")
