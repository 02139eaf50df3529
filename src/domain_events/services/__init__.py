"""Services built on top of the event bus."""

from domain_events.services.audit_store import AuditStore, InMemoryAuditStore, SqlAuditStore, get_audit_store
from domain_events.services.domain_service import DomainService, ServiceContext

__all__ = [
    "AuditStore",
    "DomainService",
    "InMemoryAuditStore",
    "ServiceContext",
    "SqlAuditStore",
    "get_audit_store",
]
