from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON
from sqlmodel import Field, SQLModel


class AuditCategory(StrEnum):
    """Coarse classification of an audited event."""

    AUTHENTICATION = "authentication"
    DATA_ACCESS = "data_access"
    ADMIN_ACTION = "admin_action"
    SYSTEM_EVENT = "system_event"


class RiskLevel(StrEnum):
    """Risk assessment of an audited event."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AuditEventBase(SQLModel):
    """Base model for an audit record."""

    event_id: str
    event_type: str
    aggregate_id: str | None = None
    aggregate_type: str | None = None
    organization_id: str | None = None
    category: str = AuditCategory.SYSTEM_EVENT
    risk_level: str = RiskLevel.LOW
    event_data: dict[str, Any] = Field(sa_type=JSON, default_factory=dict)
    occurred_at: datetime
    actor_id: str | None = None
    ip_address: str | None = None
