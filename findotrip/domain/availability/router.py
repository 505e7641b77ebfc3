"""Availability router - public availability and calendar endpoints"""

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


@router.get("/rooms/{room_type_id}")
async def check_room_availability(
    room_type_id: int,
    check_in: date = Query(...),
    check_out: date = Query(...),
    rooms: int = Query(1, ge=1),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Check if a room type can be booked for the given stay"""
    return service.check_room_availability(room_type_id, check_in, check_out, rooms)


@router.get("/rooms/{room_type_id}/summary")
async def room_availability_summary(
    room_type_id: int,
    start: date = Query(...),
    end: date = Query(...),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.room_availability_summary(room_type_id, start, end)


@router.get("/rooms/{room_type_id}/calendar")
async def room_calendar(
    room_type_id: int,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Monthly inventory calendar for a room type"""
    return service.monthly_calendar(room_type_id, year, month)


@router.get("/rooms/{room_type_id}/alternatives")
async def room_alternatives(
    room_type_id: int,
    check_in: date = Query(...),
    check_out: date = Query(...),
    rooms: int = Query(1, ge=1),
    max_shift_days: int = Query(7, ge=1, le=30),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Suggest nearby stays of the same length when the requested one is full"""
    return {
        "alternatives": service.alternative_room_dates(
            room_type_id, check_in, check_out, rooms, max_shift_days
        )
    }


@router.get("/vehicles/{vehicle_id}")
async def check_vehicle_availability(
    vehicle_id: int,
    start: datetime = Query(...),
    end: datetime = Query(...),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.check_vehicle_availability(vehicle_id, start, end)


@router.get("/vehicles/{vehicle_id}/alternatives")
async def vehicle_alternatives(
    vehicle_id: int,
    start: datetime = Query(...),
    end: datetime = Query(...),
    max_shift_days: int = Query(7, ge=1, le=30),
    service: AvailabilityService = Depends(get_availability_service),
):
    return {
        "alternatives": service.alternative_vehicle_dates(vehicle_id, start, end, max_shift_days)
    }


@router.get("/tours/{tour_id}")
async def check_tour_availability(
    tour_id: int,
    tour_date: date = Query(..., alias="date"),
    time_slot: str = Query(...),
    participants: int = Query(1, ge=1),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Remaining group capacity for a tour departure"""
    return service.check_tour_availability(tour_id, tour_date, time_slot, participants)
