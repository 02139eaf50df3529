"""Shared fixtures: log capture, fresh bus and isolation of cached singletons."""

import pytest
from loguru import logger
from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from domain_events.database import create_tables, dispose_db
from domain_events.event_bus import EventBus, MemoryAdapter, reset_event_bus, shutdown_handler_executor
from domain_events.services.audit_store import get_audit_store
from domain_events.settings import Settings, get_settings


class LogCapture:
    """Collects loguru records emitted while a test runs."""

    def __init__(self):
        self.records = []

    def sink(self, message) -> None:
        self.records.append(message.record)

    def messages(self, level: str | None = None) -> list[str]:
        return [record["message"] for record in self.records if level is None or record["level"].name == level]

    def contains(self, text: str, level: str | None = None) -> bool:
        return any(text in message for message in self.messages(level))


@pytest.fixture
def log_capture():
    capture = LogCapture()
    handler_id = logger.add(capture.sink, level="TRACE", format="{message}")
    yield capture
    logger.remove(handler_id)


@pytest.fixture(autouse=True)
def isolate_process_state(monkeypatch: pytest.MonkeyPatch):
    """Every test starts without cached settings, bus or audit store."""
    for var in (
        "DOMAIN_EVENTS_AUDIT_LOG_PATH",
        "DOMAIN_EVENTS_AUDIT_TABLE_ENABLED",
        "DOMAIN_EVENTS_DATABASE_URL",
        "DOMAIN_EVENTS_EVENT_BUS_ADAPTER",
        "DOMAIN_EVENTS_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    reset_event_bus()
    get_audit_store.cache_clear()
    yield
    reset_event_bus()
    get_audit_store.cache_clear()
    get_settings.cache_clear()
    dispose_db()


@pytest.fixture(scope="session", autouse=True)
def handler_executor_lifecycle():
    yield
    shutdown_handler_executor()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def bus(settings: Settings) -> EventBus:
    return EventBus(adapter=MemoryAdapter(), settings=settings)


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite engine shared by all sessions of one test."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_tables(engine)
    yield engine
    engine.dispose()
