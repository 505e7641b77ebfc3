"""Naive-UTC time helpers used across the booking engine"""

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (matches how columns are stored)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_time_slot(slot: str) -> time:
    """Parse an "HH:MM" slot label into a time"""
    hours, minutes = slot.strip().split(":")
    return time(int(hours), int(minutes))


def to_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting aware datetimes to UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
