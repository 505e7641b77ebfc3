"""
Pure availability rules shared by every booking vertical.

Two overlap notions are used:
- bookings occupy half-open ranges [start, end): a stay checking out on the
  5th does not collide with one checking in on the 5th
- owner blocks (UnavailableDate) cover whole calendar days, both ends included
"""

from datetime import date, timedelta
from typing import Iterable, Iterator, Optional

from ...shared.timeutils import as_date


def ranges_overlap(a_start, a_end, b_start, b_end) -> bool:
    """Half-open [start, end) overlap"""
    return a_start < b_end and b_start < a_end


def days_overlap(a_start, a_end, b_start, b_end) -> bool:
    """Inclusive calendar-day overlap"""
    return as_date(a_start) <= as_date(b_end) and as_date(b_start) <= as_date(a_end)


def date_range(start: date, end: date) -> Iterator[date]:
    """Every date in [start, end)"""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def booked_units_on(day: date, bookings: Iterable) -> int:
    """Rooms held on a night by property bookings (check_in <= day < check_out)"""
    return sum(b.number_of_rooms or 1 for b in bookings if b.check_in <= day < b.check_out)


def find_block(day: date, blocks: Iterable):
    for block in blocks:
        if block.start_date <= day <= block.end_date:
            return block
    return None


def evaluate_night(
    day: date,
    total_units: int,
    override,
    bookings: Iterable,
    blocks: Iterable,
    rooms_requested: int,
) -> dict:
    """
    Availability of one night for a room type.

    Args:
        override: RoomAvailability row for the day, or None
        bookings: active bookings overlapping the stay
        blocks: UnavailableDate rows for the property
    """
    if override is not None and not override.is_available:
        return {
            "date": day,
            "is_available": False,
            "available_units": 0,
            "reason": override.reason or "Date is blocked",
        }

    block = find_block(day, blocks)
    if block is not None:
        return {
            "date": day,
            "is_available": False,
            "available_units": 0,
            "reason": block.reason or "Date is blocked",
        }

    capacity = total_units
    if override is not None and override.available_units is not None:
        capacity = override.available_units

    remaining = capacity - booked_units_on(day, bookings)
    if remaining < rooms_requested:
        return {
            "date": day,
            "is_available": False,
            "available_units": max(0, remaining),
            "reason": f"Only {max(0, remaining)} room(s) available, need {rooms_requested}",
        }

    return {"date": day, "is_available": True, "available_units": remaining, "reason": None}


def resolve_stay_limits(override, seasonal_rule, event_rule) -> tuple[Optional[int], Optional[int]]:
    """
    Minimum and maximum stay for a check-in date.
    Per-date override wins, then the seasonal rule, then (minimum only) the event.
    """
    min_stay = None
    max_stay = None

    if override is not None:
        min_stay = override.min_stay or None
        max_stay = override.max_stay or None

    if seasonal_rule is not None:
        min_stay = min_stay or seasonal_rule.min_stay or None
        max_stay = max_stay or seasonal_rule.max_stay or None

    if event_rule is not None:
        min_stay = min_stay or event_rule.min_stay or None

    return min_stay, max_stay


def stay_limit_violation(
    nights: int, min_stay: Optional[int], max_stay: Optional[int]
) -> Optional[str]:
    if min_stay and nights < min_stay:
        return f"Minimum {min_stay} night(s) required for these dates"
    if max_stay and nights > max_stay:
        return f"Maximum {max_stay} night(s) allowed for these dates"
    return None


def shifted_windows(start, end, max_shift_days: int, earliest: Optional[date] = None) -> Iterator[tuple]:
    """
    Windows of the same length as [start, end), shifted by 1..max_shift_days
    days, nearest first (later before earlier at equal distance).
    Windows starting before ``earliest`` are skipped.
    """
    for offset in range(1, max_shift_days + 1):
        for direction in (1, -1):
            delta = timedelta(days=offset * direction)
            new_start, new_end = start + delta, end + delta
            if earliest is not None and as_date(new_start) < earliest:
                continue
            yield new_start, new_end


def summarize_days(days: list[dict]) -> dict:
    """Counts over per-day availability entries"""
    units = [d["available_units"] for d in days]
    return {
        "total_dates": len(days),
        "available_dates": sum(1 for d in days if d["is_available"] and not d["is_blocked"]),
        "blocked_dates": sum(1 for d in days if d["is_blocked"]),
        "fully_booked_dates": sum(
            1 for d in days if not d["is_blocked"] and d["available_units"] == 0
        ),
        "min_available_units": min(units) if units else 0,
        "max_available_units": max(units) if units else 0,
    }
