"""Availability service - booking-availability validation for rooms, vehicles and tours"""

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...shared.constants import APPROVAL_APPROVED, PROPERTY, TOUR, VEHICLE
from ...shared.timeutils import to_naive_utc, utcnow
from ...shared.validators import validate_time_slot
from . import engine
from .repository import AvailabilityRepository

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Single entry point for every availability decision in the marketplace"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def check_room_availability(
        self,
        room_type_id: int,
        check_in: date,
        check_out: date,
        rooms: int = 1,
        exclude_booking_id: Optional[int] = None,
    ) -> dict:
        """
        Check whether ``rooms`` units of a room type are free for every night
        of [check_in, check_out), then apply minimum / maximum stay rules.
        """
        if check_out <= check_in:
            raise HTTPException(status_code=400, detail="Check-out must be after check-in")
        if rooms < 1:
            raise HTTPException(status_code=400, detail="At least one room is required")

        room_type = self.repo.get_room_type(self.db, room_type_id)
        if not room_type:
            return {"available": False, "reason": "Room type not found"}
        if not room_type.available:
            return {"available": False, "reason": "Room type is not available for booking"}

        overrides = self.repo.get_overrides(self.db, room_type.id, check_in, check_out)
        bookings = self.repo.get_active_room_bookings(
            self.db, room_type.id, check_in, check_out, exclude_booking_id
        )
        blocks = self.repo.get_blocks(
            self.db, PROPERTY, room_type.property_id, check_in, check_out - timedelta(days=1)
        )

        nights = [
            engine.evaluate_night(
                day, room_type.total_units, overrides.get(day), bookings, blocks, rooms
            )
            for day in engine.date_range(check_in, check_out)
        ]
        unavailable = [n["date"] for n in nights if not n["is_available"]]
        requested_nights = len(nights)

        if unavailable:
            logger.debug(
                f"Room type {room_type_id} unavailable on {len(unavailable)} night(s) "
                f"between {check_in} and {check_out}"
            )
            return {
                "available": False,
                "reason": f"Room not available for {len(unavailable)} date(s)",
                "unavailable_dates": unavailable,
                "nights": nights,
                "requested_nights": requested_nights,
            }

        min_stay, max_stay = engine.resolve_stay_limits(
            overrides.get(check_in),
            self.repo.get_seasonal_rule(self.db, room_type, check_in),
            self.repo.get_event_rule(self.db, room_type, check_in),
        )
        violation = engine.stay_limit_violation(requested_nights, min_stay, max_stay)
        if violation:
            return {
                "available": False,
                "reason": violation,
                "min_stay": min_stay,
                "max_stay": max_stay,
                "requested_nights": requested_nights,
            }

        return {
            "available": True,
            "reason": None,
            "available_units": min(n["available_units"] for n in nights),
            "nights": nights,
            "requested_nights": requested_nights,
            "min_stay": min_stay,
            "max_stay": max_stay,
        }

    def room_availability_summary(self, room_type_id: int, start: date, end: date) -> dict:
        """Per-date inventory for [start, end) with aggregate counts"""
        if end <= start:
            raise HTTPException(status_code=400, detail="End date must be after start date")
        if (end - start).days > 366:
            raise HTTPException(status_code=400, detail="Date range cannot exceed one year")

        room_type = self.repo.get_room_type(self.db, room_type_id)
        if not room_type:
            raise HTTPException(status_code=404, detail="Room type not found")

        overrides = self.repo.get_overrides(self.db, room_type.id, start, end)
        bookings = self.repo.get_active_room_bookings(self.db, room_type.id, start, end)
        blocks = self.repo.get_blocks(
            self.db, PROPERTY, room_type.property_id, start, end - timedelta(days=1)
        )

        days = []
        for day in engine.date_range(start, end):
            override = overrides.get(day)
            booked = engine.booked_units_on(day, bookings)
            capacity = room_type.total_units
            if override is not None and override.available_units is not None:
                capacity = override.available_units

            reason = None
            is_blocked = False
            if override is not None and not override.is_available:
                is_blocked, reason = True, override.reason or "Blocked"
            else:
                block = engine.find_block(day, blocks)
                if block is not None:
                    is_blocked, reason = True, block.reason or "Blocked"

            available_units = 0 if is_blocked else max(0, capacity - booked)
            days.append(
                {
                    "date": day,
                    "is_available": not is_blocked and available_units > 0,
                    "available_units": available_units,
                    "total_units": room_type.total_units,
                    "booked_units": booked,
                    "is_blocked": is_blocked,
                    "reason": reason,
                    "custom_price": override.custom_price if override is not None else None,
                }
            )

        return {
            "room_type_id": room_type.id,
            "start_date": start,
            "end_date": end,
            "dates": days,
            **engine.summarize_days(days),
        }

    def monthly_calendar(self, room_type_id: int, year: int, month: int) -> dict:
        if month < 1 or month > 12:
            raise HTTPException(status_code=400, detail="Month must be between 1 and 12")

        days_in_month = calendar.monthrange(year, month)[1]
        start = date(year, month, 1)
        end = start + timedelta(days=days_in_month)
        summary = self.room_availability_summary(room_type_id, start, end)
        summary["year"] = year
        summary["month"] = month
        return summary

    def alternative_room_dates(
        self,
        room_type_id: int,
        check_in: date,
        check_out: date,
        rooms: int = 1,
        max_shift_days: int = 7,
        limit: int = 5,
    ) -> list[dict]:
        """Nearby windows of the same length that are bookable, nearest first"""
        alternatives = []
        for new_in, new_out in engine.shifted_windows(
            check_in, check_out, max_shift_days, earliest=utcnow().date()
        ):
            result = self.check_room_availability(room_type_id, new_in, new_out, rooms)
            if result["available"]:
                alternatives.append(
                    {
                        "check_in": new_in,
                        "check_out": new_out,
                        "available_units": result["available_units"],
                        "shift_days": (new_in - check_in).days,
                    }
                )
                if len(alternatives) >= limit:
                    break
        return alternatives

    # ------------------------------------------------------------------
    # Vehicles
    # ------------------------------------------------------------------

    def check_vehicle_availability(
        self,
        vehicle_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> dict:
        start, end = to_naive_utc(start), to_naive_utc(end)
        if end <= start:
            raise HTTPException(status_code=400, detail="End date must be after start date")

        vehicle = self.repo.get_vehicle(self.db, vehicle_id)
        if not vehicle:
            return {"available": False, "reason": "Vehicle not found"}
        if not vehicle.is_active or vehicle.approval_status != APPROVAL_APPROVED:
            return {"available": False, "reason": "Vehicle is not available for booking"}

        conflicts = self.repo.get_active_vehicle_bookings(
            self.db, vehicle.id, start, end, exclude_booking_id
        )
        # a rental ending exactly at midnight does not occupy that day
        last_day = (end - timedelta(microseconds=1)).date()
        blocks = self.repo.get_blocks(self.db, VEHICLE, vehicle.id, start.date(), last_day)

        if conflicts:
            return {
                "available": False,
                "reason": "Vehicle is already booked for the selected dates",
                "conflicts": [{"start": b.start_date, "end": b.end_date} for b in conflicts],
            }
        if blocks:
            return {
                "available": False,
                "reason": "Vehicle is not available on the selected dates",
                "blocked_dates": [
                    {"start_date": b.start_date, "end_date": b.end_date, "reason": b.reason}
                    for b in blocks
                ],
            }

        return {"available": True, "reason": None}

    def alternative_vehicle_dates(
        self,
        vehicle_id: int,
        start: datetime,
        end: datetime,
        max_shift_days: int = 7,
        limit: int = 5,
    ) -> list[dict]:
        start, end = to_naive_utc(start), to_naive_utc(end)
        alternatives = []
        for new_start, new_end in engine.shifted_windows(
            start, end, max_shift_days, earliest=utcnow().date()
        ):
            if self.check_vehicle_availability(vehicle_id, new_start, new_end)["available"]:
                alternatives.append(
                    {
                        "start": new_start,
                        "end": new_end,
                        "shift_days": (new_start - start).days,
                    }
                )
                if len(alternatives) >= limit:
                    break
        return alternatives

    # ------------------------------------------------------------------
    # Tours
    # ------------------------------------------------------------------

    def check_tour_availability(
        self, tour_id: int, tour_date: date, time_slot: str, participants: int = 1
    ) -> dict:
        """Group capacity for one departure (date + time slot)"""
        if participants < 1:
            raise HTTPException(status_code=400, detail="At least one participant is required")

        try:
            time_slot = validate_time_slot(time_slot)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        tour = self.repo.get_tour(self.db, tour_id)
        if not tour:
            return {"available": False, "reason": "Tour not found"}
        if not tour.is_active or tour.approval_status != APPROVAL_APPROVED:
            return {"available": False, "reason": "Tour is not available for booking"}
        if time_slot not in (tour.time_slots or []):
            raise HTTPException(
                status_code=400,
                detail=f"Invalid time slot. Available slots: {', '.join(tour.time_slots or [])}",
            )

        if self.repo.get_blocks(self.db, TOUR, tour.id, tour_date, tour_date):
            return {"available": False, "reason": "Tour is not running on this date"}

        booked = self.repo.get_tour_booked_participants(self.db, tour.id, tour_date, time_slot)
        remaining = tour.max_group_size - booked
        if remaining < participants:
            return {
                "available": False,
                "reason": f"Only {max(0, remaining)} spot(s) left for this departure",
                "remaining_spots": max(0, remaining),
                "booked": booked,
            }

        return {
            "available": True,
            "reason": None,
            "remaining_spots": remaining,
            "booked": booked,
            "max_group_size": tour.max_group_size,
        }
