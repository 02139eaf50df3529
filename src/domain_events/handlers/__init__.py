"""Generic event handlers and registration helpers."""

from domain_events.handlers.audit_handler import AuditHandler
from domain_events.handlers.classification import assess_risk_level, map_event_category
from domain_events.handlers.metrics_handler import InMemoryMetricsSink, LoggingMetricsSink, MetricsHandler, MetricsSink
from domain_events.handlers.registration import register_domain_handlers, register_standard_handlers

__all__ = [
    "AuditHandler",
    "InMemoryMetricsSink",
    "LoggingMetricsSink",
    "MetricsHandler",
    "MetricsSink",
    "assess_risk_level",
    "map_event_category",
    "register_domain_handlers",
    "register_standard_handlers",
]
