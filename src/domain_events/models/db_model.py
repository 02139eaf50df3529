from datetime import datetime

from sqlmodel import Field

from domain_events.events.base import utc_now
from domain_events.models.base_model import AuditEventBase


class AuditEvent(AuditEventBase, table=True):
    """Append-only audit record, one per handled event."""

    __tablename__ = "audit_events"

    id: int | None = Field(default=None, primary_key=True)
    event_id: str = Field(unique=True, index=True)
    event_type: str = Field(index=True)
    organization_id: str | None = Field(default=None, index=True)
    recorded_at: datetime = Field(default_factory=utc_now)
