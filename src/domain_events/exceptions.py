"""Common domain exceptions.

Domain exceptions represent business rule violations raised by services that
construct and publish events. They are kept apart from the event bus errors in
``domain_events.event_bus.core``: a ``DomainError`` is a business outcome, an
``EventBusError`` is misuse of the bus.
"""

from typing import Any


class DomainError(Exception):
    """Base exception for all domain errors.

    Carries an optional machine-readable ``code`` and a ``details`` mapping so
    API layers can render the error without parsing the message.
    """

    code: str | None = None

    def __init__(self, message: str, code: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to a dictionary, omitting empty entries."""
        data = {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }
        return {key: value for key, value in data.items() if value is not None}


class NotFoundError(DomainError):
    """Raised when an entity doesn't exist."""

    code = "not_found"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


class AlreadyExistsError(DomainError):
    """Raised when an entity with the same unique attribute already exists."""

    code = "already_exists"

    def __init__(self, entity_type: str, attribute: str, value: Any):
        super().__init__(
            f"{entity_type} with {attribute} '{value}' already exists",
            details={"entity_type": entity_type, "attribute": attribute, "value": value},
        )


class BusinessRuleError(DomainError):
    """Raised when a business rule is violated."""

    code = "business_rule_violation"


class InvalidStateError(DomainError):
    """Raised when an invalid state transition is attempted."""

    code = "invalid_state"

    def __init__(self, entity_type: str, from_state: str, to_state: str, reason: str | None = None):
        message = f"Invalid state transition for {entity_type}: {from_state} -> {to_state}"
        if reason:
            message += f" ({reason})"
        super().__init__(
            message,
            details={"entity_type": entity_type, "from": from_state, "to": to_state, "reason": reason},
        )


class DomainValidationError(DomainError):
    """Raised when input to a domain operation fails validation.

    Not to be confused with ``EventValidationError``, which is about the
    events themselves.
    """

    code = "validation_failed"

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None):
        super().__init__(message, details={"validation_errors": errors or {}})


class UnauthorizedError(DomainError):
    """Raised when the acting user may not perform an operation."""

    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized", action: str | None = None, resource: str | None = None):
        details = {key: value for key, value in {"action": action, "resource": resource}.items() if value is not None}
        super().__init__(message, details=details)


class DependencyError(DomainError):
    """Raised when a required collaborator is not available."""

    code = "dependency_missing"

    def __init__(self, dependency_name: str, message: str | None = None):
        super().__init__(
            message or f"Required dependency not available: {dependency_name}",
            details={"dependency": dependency_name},
        )
