"""Audit classification of event types.

Both rules match substrings of the full event type, first rule wins.
"""

import re

from domain_events.models import AuditCategory, RiskLevel

CATEGORY_RULES: list[tuple[re.Pattern[str], AuditCategory]] = [
    (re.compile(r"^auth\.|logged_in|logged_out|login|logout|authenticated|password"), AuditCategory.AUTHENTICATION),
    (re.compile(r"accessed|viewed"), AuditCategory.DATA_ACCESS),
    (re.compile(r"created|updated|deleted|assigned|removed"), AuditCategory.ADMIN_ACTION),
]

RISK_RULES: list[tuple[re.Pattern[str], RiskLevel]] = [
    (re.compile(r"suspended|deleted|revoked|failed|rejected"), RiskLevel.HIGH),
    (re.compile(r"updated|changed|assigned"), RiskLevel.MEDIUM),
]


def map_event_category(event_type: str) -> AuditCategory:
    """Map an event type to its audit category."""
    for pattern, category in CATEGORY_RULES:
        if pattern.search(event_type):
            return category
    return AuditCategory.SYSTEM_EVENT


def assess_risk_level(event_type: str) -> RiskLevel:
    """Assess the risk level of an event type."""
    for pattern, level in RISK_RULES:
        if pattern.search(event_type):
            return level
    return RiskLevel.LOW
