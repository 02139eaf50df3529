"""Persistence models of the audit trail."""

from domain_events.models.base_model import AuditCategory, AuditEventBase, RiskLevel
from domain_events.models.db_model import AuditEvent

__all__ = ["AuditCategory", "AuditEvent", "AuditEventBase", "RiskLevel"]
