"""Core Event Bus Components.

This module contains the fundamental abstractions for the event bus system.

## Key Components

- **EventHandler**: Base class for units of work invoked per matching event
- **EventBusError**: Base exception for all event bus related errors
- **HandlerRegistrationError**: Raised when a subscription is rejected
- **EventEmissionError**: Raised when something other than an event is published

## Usage Example

```python
from domain_events.event_bus.core import EventHandler

class WelcomeEmailHandler(EventHandler[UserCreatedEvent]):
    def __init__(self, mailer: Mailer):
        self.mailer = mailer

    def can_handle(self, event_type: str) -> bool:
        return event_type == "user.created"

    def handle(self, event: UserCreatedEvent) -> None:
        self.mailer.send_welcome(event.email)
```

"""

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any

from loguru import logger

from domain_events.events import DomainEvent
from domain_events.settings import get_settings


class EventBusError(Exception):
    """Base exception for all event bus related errors.

    Use this for catching any event bus related error:
        ```python
        try:
            bus.subscribe("user.*", handler)
        except EventBusError as e:
            logger.error(f"Event bus error: {e}")
        ```
    """


class HandlerRegistrationError(EventBusError):
    """Raised when handler registration fails.

    This occurs when:
    - The subscription pattern is empty or not a string
    - The handler has no callable ``handle`` method
    """


class EventEmissionError(EventBusError, TypeError):
    """Raised when a publish receives something that is not a ``DomainEvent``."""


def handler_name(handler: Any) -> str:
    """Human readable handler identity for log lines."""
    return type(handler).__name__


class EventHandler[T_Event: DomainEvent]:
    """Base class for event handlers.

    Handlers process domain events and trigger side effects like sending
    emails, updating read models or writing audit records. Subclasses must
    override both ``can_handle`` and ``handle``; the defaults raise
    ``NotImplementedError`` to flag the programming error early.

    ``handle`` may raise: the adapter isolates each handler, so a failure is
    logged and sibling handlers still run.
    """

    def can_handle(self, event_type: str) -> bool:
        """Check whether this handler accepts events of ``event_type``.

        Must be free of side effects and safe to call before ``handle``.
        """
        raise NotImplementedError(f"{type(self).__name__} must implement can_handle(event_type)")

    def handle(self, event: T_Event) -> None:
        """Process the event."""
        raise NotImplementedError(f"{type(self).__name__} must implement handle(event)")

    def handle_async(self, event: T_Event, executor: Executor | None = None) -> Future:
        """Validate the event, then run ``handle`` on a background executor.

        This is a separate entry point from synchronous dispatch, so the event
        is validated again here.

        Args:
            event: The event to handle
            executor: Executor to submit to; defaults to the shared handler pool

        Returns:
            Future resolving to the result of ``handle``

        Raises:
            EventEmissionError: If ``event`` is not a ``DomainEvent``
            EventValidationError: If the event is invalid
        """
        if not isinstance(event, DomainEvent):
            raise EventEmissionError(f"Event must be a DomainEvent instance, got: {type(event).__name__}")
        event.ensure_valid()

        pool = executor or get_handler_executor()
        logger.debug(f"Submitting {event.event_type} ({event.event_id}) to {handler_name(self)} in background")
        future = pool.submit(self.handle, event)
        future.add_done_callback(lambda done: self._log_async_outcome(done, event))
        return future

    def _log_async_outcome(self, future: Future, event: T_Event) -> None:
        if future.cancelled():
            logger.warning(f"Async handler {handler_name(self)} cancelled for {event.event_type}")
            return
        error = future.exception()
        if error is not None:
            logger.opt(exception=error).error(f"Async handler {handler_name(self)} failed: {error}")

    def __call__(self, event: T_Event) -> None:
        """Make the handler callable."""
        return self.handle(event)


_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def get_handler_executor() -> ThreadPoolExecutor:
    """Return the shared thread pool for asynchronous handler submission.

    Created lazily, sized by ``Settings.handler_workers``.
    """
    global _executor
    with _executor_lock:
        if _executor is None:
            workers = get_settings().handler_workers
            _executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="event-handler")
            logger.debug(f"Created handler executor with {workers} workers")
        return _executor


def shutdown_handler_executor(wait: bool = True) -> None:
    """Shut down the shared handler pool, if it was created."""
    global _executor
    with _executor_lock:
        if _executor is not None:
            logger.debug("Shutting down handler executor")
            _executor.shutdown(wait=wait)
            _executor = None
