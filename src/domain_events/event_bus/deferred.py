"""Commit-deferred event publication.

Events raised inside a database transaction must only reach handlers once the
data they describe is durable. ``DeferredEventQueue`` buffers events for one
unit of work and is told the outcome by the transaction owner:

- ``flush_on_commit()`` publishes the buffered events, in insertion order
- ``discard_on_rollback()`` drops them without publishing anything

The queue does not know about nesting. Whoever drives it must call exactly one
of the two hooks, once, when the *outermost* transaction ends.
``bind_to_session`` does that for a SQLAlchemy ``Session``.

Example:
    ```python
    queue = DeferredEventQueue(bus)
    unbind = bind_to_session(queue, session)
    with session.begin():
        session.add(user)
        queue.add(UserCreatedEvent(...))
    # published here, after COMMIT
    unbind()
    ```
"""

from collections.abc import Callable, Iterable

from loguru import logger
from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session, SessionTransaction

from domain_events.event_bus.bus import EventBus, get_event_bus
from domain_events.events import DomainEvent


class DeferredEventQueue:
    """Per-operation buffer of events awaiting the transaction outcome.

    Not shared between threads: each request, service call or aggregate owns
    its own queue.
    """

    def __init__(self, bus: EventBus | None = None) -> None:
        """Initialize an empty queue.

        Args:
            bus: Bus to publish to on commit. Defaults to the process-wide bus,
                resolved at flush time.
        """
        self._bus = bus
        self._pending: list[DomainEvent] = []

    @property
    def bus(self) -> EventBus:
        return self._bus or get_event_bus()

    @property
    def pending(self) -> list[DomainEvent]:
        """Snapshot of the queued events."""
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def add(self, event: DomainEvent) -> None:
        """Queue an event; nothing is published yet."""
        self._pending.append(event)

    def add_all(self, events: Iterable[DomainEvent]) -> None:
        """Queue several events in order."""
        for event in events:
            self.add(event)

    def flush_on_commit(self) -> int:
        """Publish every queued event after a successful commit.

        A failing publish is logged and does not stop the remaining events.
        The queue is empty afterwards regardless of failures.

        Returns:
            Number of events published successfully
        """
        events, self._pending = self._pending, []
        if not events:
            return 0

        logger.debug(f"Transaction committed, publishing {len(events)} deferred event(s)")

        bus = self.bus
        published = 0
        for event in events:
            try:
                bus.publish(event)
                published += 1
            except Exception as e:
                logger.opt(exception=e).error(f"Failed to publish deferred event {event}: {e}")

        return published

    def discard_on_rollback(self) -> int:
        """Drop every queued event after a rollback.

        Returns:
            Number of events discarded
        """
        discarded = len(self._pending)
        self._pending.clear()
        if discarded:
            logger.debug(f"Transaction rolled back, discarded {discarded} deferred event(s)")
        return discarded


def bind_to_session(queue: DeferredEventQueue, session: Session) -> Callable[[], None]:
    """Drive a queue from the transaction lifecycle of a SQLAlchemy session.

    The queue is flushed when the outermost transaction commits and discarded
    when the outermost transaction ends any other way (rollback, close).
    Savepoints (``begin_nested``) never trigger either hook.

    Args:
        queue: Queue to drive
        session: Session whose transactions guard the queued events

    Returns:
        Callable removing the listeners again
    """
    committed = False

    def after_commit(sess: Session) -> None:
        nonlocal committed
        if sess.in_nested_transaction():
            return
        committed = True
        queue.flush_on_commit()

    def after_transaction_end(sess: Session, transaction: SessionTransaction) -> None:
        nonlocal committed
        if transaction.parent is not None:
            return
        if committed:
            committed = False
            return
        queue.discard_on_rollback()

    sa_event.listen(session, "after_commit", after_commit)
    sa_event.listen(session, "after_transaction_end", after_transaction_end)

    def unbind() -> None:
        sa_event.remove(session, "after_commit", after_commit)
        sa_event.remove(session, "after_transaction_end", after_transaction_end)

    return unbind
