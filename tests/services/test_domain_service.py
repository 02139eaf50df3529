"""Tests for the DomainService base class."""

import json

import pytest
from sample_events import CORE_ATTRIBUTES, RecordingHandler, UserCreatedEvent, UserUpdatedEvent
from sqlmodel import Session

from domain_events.event_bus import EventBus
from domain_events.events import DomainEvent, EventValidationError
from domain_events.services import DomainService, ServiceContext

CONTEXT = ServiceContext(user_id="admin-1", user_email="admin@example.com", organization_id="org-456")


class UserService(DomainService):
    """Minimal service publishing one event per call."""

    def create_user(self, user_id: str, fail: bool = False) -> None:
        with self.with_transaction():
            self.publish_after_commit(
                self.build_event(
                    UserCreatedEvent,
                    event_type="user.created",
                    aggregate_id=user_id,
                    aggregate_type="User",
                    user_id=user_id,
                    email=f"{user_id}@example.com",
                )
            )
            if fail:
                raise RuntimeError("insert failed")


@pytest.fixture
def handler(bus: EventBus) -> RecordingHandler:
    recording = RecordingHandler()
    bus.subscribe("user.*", recording)
    return recording


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


class TestBuildEvent:
    def test_fills_organization(self, bus: EventBus):
        service = DomainService(CONTEXT, bus)

        event = service.build_event(
            UserCreatedEvent,
            event_type="user.created",
            aggregate_id="user-1",
            aggregate_type="User",
            user_id="user-1",
            email="user@example.com",
        )

        assert event.organization_id == "org-456"

    def test_explicit_values_win(self, bus: EventBus):
        service = DomainService(CONTEXT, bus)

        event = service.build_event(DomainEvent, event_type="user.viewed", **(CORE_ATTRIBUTES | {"organization_id": "org-other"}))

        assert event.organization_id == "org-other"

    def test_fills_actor_for_actor_events(self, bus: EventBus):
        service = DomainService(CONTEXT, bus)

        event = service.build_event(
            UserUpdatedEvent,
            event_type="user.updated",
            aggregate_id="user-1",
            aggregate_type="User",
            user_id="user-1",
            **service.extract_changes({"email": ("old@example.com", "new@example.com")}),
        )

        assert event.actor_id == "admin-1"
        assert event.actor_email == "admin@example.com"
        assert event.changed_fields == ("email",)

    def test_missing_context_surfaces_as_validation_error(self, bus: EventBus):
        service = DomainService(ServiceContext(), bus)

        with pytest.raises(EventValidationError) as exc_info:
            service.build_event(DomainEvent, event_type="user.viewed", aggregate_id="user-1", aggregate_type="User")

        assert exc_info.value.errors == ["organization_id can't be blank"]


class TestPublishAfterCommit:
    def test_without_session_publishes_immediately(self, bus: EventBus, handler: RecordingHandler):
        UserService(CONTEXT, bus).create_user("user-1")
        assert len(handler.events) == 1

    def test_commit_publishes(self, bus: EventBus, handler: RecordingHandler, session: Session):
        service = UserService(CONTEXT, bus, session)

        service.create_user("user-1")

        assert [event.aggregate_id for event in handler.events] == ["user-1"]
        assert service.pending_events == []

    def test_rollback_discards(self, bus: EventBus, handler: RecordingHandler, session: Session):
        service = UserService(CONTEXT, bus, session)

        with pytest.raises(RuntimeError, match="insert failed"):
            service.create_user("user-1", fail=True)

        assert handler.events == []
        assert service.pending_events == []

    def test_nested_operations_wait_for_outer_commit(self, bus: EventBus, handler: RecordingHandler, session: Session):
        service = UserService(CONTEXT, bus, session)

        with service.with_transaction():
            service.create_user("user-1")
            service.create_user("user-2")
            assert handler.events == []
            assert len(service.pending_events) == 2

        assert [event.aggregate_id for event in handler.events] == ["user-1", "user-2"]

    def test_publish_all_after_commit(self, bus: EventBus, handler: RecordingHandler, session: Session):
        service = DomainService(CONTEXT, bus, session)
        events = [
            DomainEvent(event_type="user.created", **CORE_ATTRIBUTES),
            DomainEvent(event_type="user.updated", **CORE_ATTRIBUTES),
        ]

        with service.with_transaction():
            service.publish_all_after_commit(events)
            assert handler.events == []

        assert handler.events == events

    def test_publish_failure_is_raised(self, bus: EventBus, log_capture):
        service = DomainService(CONTEXT, bus)
        invalid = UserCreatedEvent.model_construct(event_type="user.created")

        with pytest.raises(EventValidationError):
            service.publish_after_commit(invalid)

        assert log_capture.contains("[DomainService] Failed to publish event", level="ERROR")

    def test_close_detaches_from_session(self, bus: EventBus, handler: RecordingHandler, session: Session):
        service = DomainService(CONTEXT, bus, session)
        service.close()

        with session.begin():
            service.publish_after_commit(DomainEvent(event_type="user.created", **CORE_ATTRIBUTES))

        assert handler.events == []
        assert len(service.pending_events) == 1

    def test_context_manager_detaches_from_session(self, bus: EventBus, handler: RecordingHandler, session: Session):
        """Test that leaving the with block stops deferred publication."""
        with UserService(CONTEXT, bus, session) as service:
            service.create_user("user-1")

        with session.begin():
            service.publish_after_commit(DomainEvent(event_type="user.created", **CORE_ATTRIBUTES))

        assert [event.aggregate_id for event in handler.events] == ["user-1"]
        assert len(service.pending_events) == 1

    def test_listeners_do_not_accumulate(self, bus: EventBus, session: Session):
        """Test that services used as context managers leave no session listeners behind."""
        before = (len(session.dispatch.after_commit), len(session.dispatch.after_transaction_end))

        for user_id in ("user-1", "user-2", "user-3"):
            with UserService(CONTEXT, bus, session) as service:
                service.create_user(user_id)

        assert (len(session.dispatch.after_commit), len(session.dispatch.after_transaction_end)) == before


class TestHelpers:
    def test_with_transaction_without_session(self, bus: EventBus):
        with DomainService(CONTEXT, bus).with_transaction() as session:
            assert session is None

    def test_with_transaction_yields_session(self, bus: EventBus, session: Session):
        with DomainService(CONTEXT, bus, session).with_transaction() as active:
            assert active is session
            assert session.in_transaction()

        assert not session.in_transaction()

    def test_log_includes_context(self, bus: EventBus, log_capture):
        UserService(CONTEXT, bus).log("info", "Creating user", email="user@example.com")

        [message] = [message for message in log_capture.messages("INFO") if message.startswith("[UserService]")]
        prefix, payload = message.split(" - ", 1)
        assert prefix == "[UserService] Creating user"
        assert json.loads(payload) == {
            "service": "UserService",
            "organization_id": "org-456",
            "user_id": "admin-1",
            "email": "user@example.com",
        }

    def test_context_is_immutable(self):
        with pytest.raises(ValueError):
            CONTEXT.user_id = "someone-else"
