"""Base class for services that change state and publish domain events.

A domain service runs business logic inside a database transaction and
publishes the resulting events only after that transaction committed:

```python
class UserService(DomainService):
    def create_user(self, email: str) -> User:
        with self.with_transaction() as session:
            user = User(email=email)
            session.add(user)
            session.flush()
            self.publish_after_commit(
                self.build_event(
                    UserCreatedEvent,
                    event_type="user.created",
                    aggregate_id=str(user.id),
                    aggregate_type="User",
                    email=email,
                )
            )
        return user


service = UserService(ServiceContext(user_id="u-1", organization_id="org-1"), bus, session)
```

The acting user and tenant travel in an explicit ``ServiceContext``.
"""

import json
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from typing import Any, Self

from loguru import logger
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from domain_events.event_bus import DeferredEventQueue, EventBus, bind_to_session, get_event_bus
from domain_events.events import ActorMixin, DomainEvent, changes_from


class ServiceContext(BaseModel):
    """Who is acting, on behalf of which organization."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    user_email: str | None = None
    organization_id: str | None = None


class DomainService:
    """Base class for domain services.

    Stateless apart from the injected context, bus and session. When a session
    is given, events passed to ``publish_after_commit`` while a transaction is
    open are held back until the outermost transaction commits and dropped if
    it rolls back.

    A service bound to a session keeps commit and rollback listeners on that
    session until ``close()`` is called. Services sharing a long-lived session
    should be used as context managers so the listeners do not accumulate:

    ```python
    with UserService(context, bus, session) as service:
        service.create_user("jane@example.com")
    ```
    """

    def __init__(
        self,
        context: ServiceContext | None = None,
        bus: EventBus | None = None,
        session: Session | None = None,
    ):
        """Initialize the service.

        Args:
            context: Acting user and organization
            bus: Bus to publish to. Defaults to the process-wide bus.
            session: Database session whose transactions guard publication
        """
        self.context = context or ServiceContext()
        self.bus = bus or get_event_bus()
        self.session = session
        self._queue = DeferredEventQueue(self.bus)
        self._unbind = bind_to_session(self._queue, session) if session is not None else None

    @property
    def pending_events(self) -> list[DomainEvent]:
        """Events waiting for the current transaction to commit."""
        return self._queue.pending

    def build_event[E: DomainEvent](self, event_class: type[E], **attributes: Any) -> E:
        """Instantiate an event, filling context fields the caller left out.

        ``organization_id`` comes from the context. For events carrying an
        actor, ``actor_id`` and ``actor_email`` do too.
        """
        if attributes.get("organization_id") is None:
            attributes["organization_id"] = self.context.organization_id

        if issubclass(event_class, ActorMixin):
            if attributes.get("actor_id") is None:
                attributes["actor_id"] = self.context.user_id
            if attributes.get("actor_email") is None:
                attributes["actor_email"] = self.context.user_email

        return event_class(**attributes)

    def publish_after_commit(self, event: DomainEvent) -> None:
        """Publish once the current transaction commits.

        Without a session, or outside a transaction, the event is published
        immediately.
        """
        if self.session is not None and self.session.in_transaction():
            self._queue.add(event)
            logger.debug(f"Deferred {event.event_type} ({event.event_id}) until commit")
            return

        self._publish(event)

    def publish_all_after_commit(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            self.publish_after_commit(event)

    @contextmanager
    def with_transaction(self) -> Generator[Session | None]:
        """Run a block in a transaction of the service's session.

        Commits when the block succeeds and rolls back when it raises. Inside
        an already open transaction a savepoint is used instead, so deferred
        events still wait for the outermost commit. Without a session the
        block simply runs.
        """
        if self.session is None:
            yield None
            return

        begin = self.session.begin_nested if self.session.in_transaction() else self.session.begin
        with begin():
            yield self.session

    def extract_changes(self, source: Any) -> dict[str, Any]:
        """Build change tracking attributes from a record or ``field -> (old, new)`` mapping."""
        return changes_from(source)

    def log(self, level: str, message: str, **data: Any) -> None:
        """Log a message with the service context attached."""
        context = {
            "service": type(self).__name__,
            "organization_id": self.context.organization_id,
            "user_id": self.context.user_id,
            **data,
        }
        logger.log(level.upper(), f"[{type(self).__name__}] {message} - {json.dumps(context, default=str)}")

    def close(self) -> None:
        """Detach from the session; queued events are dropped."""
        if self._unbind is not None:
            self._unbind()
            self._unbind = None
        self._queue.discard_on_rollback()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _publish(self, event: DomainEvent) -> None:
        try:
            self.bus.publish(event)
        except Exception as e:
            logger.error(f"[{type(self).__name__}] Failed to publish event: {e}")
            raise
