"""
Support ticket workflow rules: status transitions, first-response SLA targets
and canned-response rendering.
"""

import re
from datetime import datetime, timedelta
from typing import Iterable, Optional

NEW = "NEW"
OPEN = "OPEN"
IN_PROGRESS = "IN_PROGRESS"
WAITING_ON_PROVIDER = "WAITING_ON_PROVIDER"
RESOLVED = "RESOLVED"
CLOSED = "CLOSED"
TICKET_STATUSES = (NEW, OPEN, IN_PROGRESS, WAITING_ON_PROVIDER, RESOLVED, CLOSED)

TICKET_TRANSITIONS = {
    NEW: (OPEN, IN_PROGRESS, CLOSED),
    OPEN: (IN_PROGRESS, WAITING_ON_PROVIDER, RESOLVED, CLOSED),
    IN_PROGRESS: (WAITING_ON_PROVIDER, RESOLVED, CLOSED),
    WAITING_ON_PROVIDER: (IN_PROGRESS, RESOLVED, CLOSED),
    RESOLVED: (CLOSED, OPEN),
}

# Statuses counted as open work for queues and dashboards
ACTIVE_TICKET_STATUSES = (NEW, OPEN, IN_PROGRESS, WAITING_ON_PROVIDER)

CATEGORIES = (
    "BOOKING_ISSUE",
    "PAYMENT_ISSUE",
    "ACCOUNT_ISSUE",
    "LISTING_ISSUE",
    "TECHNICAL_ISSUE",
    "GENERAL_INQUIRY",
)

LOW = "LOW"
NORMAL = "NORMAL"
HIGH = "HIGH"
URGENT = "URGENT"
PRIORITIES = (LOW, NORMAL, HIGH, URGENT)

TEXT = "TEXT"
SYSTEM = "SYSTEM"
TEMPLATE = "TEMPLATE"
INTERNAL_NOTE = "INTERNAL_NOTE"
MESSAGE_TYPES = (TEXT, SYSTEM, TEMPLATE, INTERNAL_NOTE)

FIRST_RESPONSE_TARGET_HOURS = {URGENT: 1, HIGH: 4, NORMAL: 24, LOW: 48}

TEMPLATE_PLACEHOLDERS = ("provider_name", "ticket_number", "ticket_title", "admin_name")
_PLACEHOLDER_RE = re.compile(r"\{(" + "|".join(TEMPLATE_PLACEHOLDERS) + r")\}")


class InvalidTransition(ValueError):
    pass


def allowed_transitions(current: str) -> tuple:
    return TICKET_TRANSITIONS.get(current, ())


def ensure_transition(current: str, new: str) -> None:
    if new not in TICKET_STATUSES:
        raise InvalidTransition(f"Unknown ticket status: {new}")
    if new not in allowed_transitions(current):
        raise InvalidTransition(f"Cannot change ticket status from {current} to {new}")


def first_response_due(created_at: datetime, priority: str) -> datetime:
    hours = FIRST_RESPONSE_TARGET_HOURS.get(priority, FIRST_RESPONSE_TARGET_HOURS[NORMAL])
    return created_at + timedelta(hours=hours)


def breaches_first_response(ticket, now: datetime) -> bool:
    """Open ticket still waiting for its first admin reply past the target"""
    if ticket.first_response_at is not None or ticket.status not in ACTIVE_TICKET_STATUSES:
        return False
    return now > first_response_due(ticket.created_at, ticket.priority)


def render_template(content: str, values: dict) -> str:
    """Fill {provider_name}, {ticket_number}, {ticket_title} and {admin_name}; other braces stay"""
    return _PLACEHOLDER_RE.sub(lambda m: str(values.get(m.group(1), "")), content)


def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 60


def average(values: Iterable[Optional[float]], digits: int = 1) -> float:
    values = [v for v in values if v is not None]
    if not values:
        return 0.0
    return round(sum(values) / len(values), digits)
