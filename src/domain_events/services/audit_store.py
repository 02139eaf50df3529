"""Append-only stores for audit records."""

import threading
from functools import lru_cache
from typing import Protocol, runtime_checkable

from loguru import logger
from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from domain_events.database import borrow_db_session
from domain_events.exceptions import AlreadyExistsError
from domain_events.models import AuditEvent
from domain_events.settings import get_settings


@runtime_checkable
class AuditStore(Protocol):
    """Append-only sink of audit records. ``event_id`` is unique."""

    def append(self, record: AuditEvent) -> None: ...


class InMemoryAuditStore:
    """Audit store keeping records in process memory."""

    def __init__(self):
        self._records: list[AuditEvent] = []
        self._lock = threading.Lock()

    def append(self, record: AuditEvent) -> None:
        """Store a record.

        Raises:
            AlreadyExistsError: If a record with the same event id exists
        """
        with self._lock:
            if any(existing.event_id == record.event_id for existing in self._records):
                raise AlreadyExistsError("AuditEvent", "event_id", record.event_id)
            self._records.append(record)

    @property
    def records(self) -> list[AuditEvent]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


class SqlAuditStore:
    """Audit store writing to the ``audit_events`` table.

    Each record is written in its own session and committed immediately, so
    audit writes never join the caller's transaction.
    """

    def __init__(self, engine: Engine | None = None):
        """Initialize the store.

        Args:
            engine: Engine to write through. Defaults to the shared engine
                built from ``Settings.database_url``.
        """
        self._engine = engine

    def append(self, record: AuditEvent) -> None:
        """Insert a record.

        Raises:
            AlreadyExistsError: If a record with the same event id exists
        """
        event_id, event_type = record.event_id, record.event_type
        with borrow_db_session(self._engine) as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise AlreadyExistsError("AuditEvent", "event_id", event_id) from e
            logger.trace(f"Audit record stored: {event_type} ({event_id})")

    def list_records(self, event_type: str | None = None, limit: int = 100) -> list[AuditEvent]:
        """Read back stored records, oldest first."""
        with borrow_db_session(self._engine) as session:
            stmt = select(AuditEvent).order_by(AuditEvent.id).limit(limit)
            if event_type is not None:
                stmt = stmt.where(AuditEvent.event_type == event_type)
            return list(session.exec(stmt).all())


@lru_cache
def get_audit_store() -> AuditStore:
    """Get the process-wide audit store.

    Writes to the database when ``database_url`` is configured, otherwise
    keeps records in memory.
    """
    if get_settings().database_url:
        return SqlAuditStore()

    logger.warning("No database configured, audit records are kept in memory only")
    return InMemoryAuditStore()
