"""
Booking lifecycle rules: status transitions, the cancellation refund policy,
commission arithmetic and voucher payloads.
"""

from datetime import datetime

from ...shared.constants import (
    BOOKING_CANCELLED,
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    BOOKING_NO_SHOW,
    BOOKING_PENDING,
    BOOKING_REFUNDED,
)
from ..pricing.engine import round_money

BOOKING_STATUSES = (
    BOOKING_PENDING,
    BOOKING_CONFIRMED,
    BOOKING_COMPLETED,
    BOOKING_CANCELLED,
    BOOKING_REFUNDED,
    BOOKING_NO_SHOW,
)

# Statuses missing from the map are terminal
BOOKING_TRANSITIONS = {
    BOOKING_PENDING: (BOOKING_CONFIRMED, BOOKING_CANCELLED),
    BOOKING_CONFIRMED: (BOOKING_COMPLETED, BOOKING_CANCELLED, BOOKING_NO_SHOW),
    BOOKING_CANCELLED: (BOOKING_REFUNDED,),
}

# (hours before start, refund percent), checked in order
REFUND_POLICY = ((48, 100), (24, 50))


class InvalidTransition(ValueError):
    pass


def allowed_transitions(current: str) -> tuple:
    return BOOKING_TRANSITIONS.get(current, ())


def ensure_transition(current: str, new: str) -> None:
    if new not in BOOKING_STATUSES:
        raise InvalidTransition(f"Unknown booking status: {new}")
    if new not in allowed_transitions(current):
        raise InvalidTransition(f"Cannot change booking status from {current} to {new}")


def hours_until(start: datetime, now: datetime) -> float:
    return (start - now).total_seconds() / 3600


def refund_percentage(start: datetime, now: datetime) -> int:
    """More than 48h ahead: full refund. More than 24h: half. Otherwise nothing."""
    hours = hours_until(start, now)
    for min_hours, percent in REFUND_POLICY:
        if hours > min_hours:
            return percent
    return 0


def refund_amount(total: float, percentage: float) -> float:
    return round_money(total * percentage / 100)


def commission_amount(total: float, rate: float) -> float:
    return round_money(total * rate)


def voucher_qr_payload(booking_number: str, service_name: str, total: float) -> str:
    return f"BOOKING:{booking_number}|SERVICE:{service_name}|AMOUNT:{total}"
