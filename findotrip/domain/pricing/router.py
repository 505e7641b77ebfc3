"""Pricing router - public price quotes"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .service import PricingService

router = APIRouter(prefix="/pricing", tags=["Pricing"])


def get_pricing_service(db: Session = Depends(get_db)) -> PricingService:
    """Dependency injection for PricingService"""
    return PricingService(db)


@router.get("/rooms/{room_type_id}/night")
async def room_night_price(
    room_type_id: int,
    day: date = Query(..., alias="date"),
    nights: Optional[int] = Query(None, ge=1),
    booked_on: Optional[date] = Query(None),
    service: PricingService = Depends(get_pricing_service),
):
    return service.room_night_price(room_type_id, day, nights, booked_on)


@router.get("/rooms/{room_type_id}/quote")
async def stay_quote(
    room_type_id: int,
    check_in: date = Query(...),
    check_out: date = Query(...),
    rooms: int = Query(1, ge=1),
    service: PricingService = Depends(get_pricing_service),
):
    """Full price breakdown for a stay (nightly prices, fees and tax)"""
    return service.stay_price(room_type_id, check_in, check_out, rooms)


@router.get("/vehicles/{vehicle_id}/quote")
async def vehicle_quote(
    vehicle_id: int,
    start: datetime = Query(...),
    end: datetime = Query(...),
    insurance: bool = Query(False),
    driver: bool = Query(False),
    service: PricingService = Depends(get_pricing_service),
):
    return service.vehicle_quote(vehicle_id, start, end, insurance, driver)


@router.get("/tours/{tour_id}/quote")
async def tour_quote(
    tour_id: int,
    adults: int = Query(1, ge=1),
    children: int = Query(0, ge=0),
    service: PricingService = Depends(get_pricing_service),
):
    return service.tour_quote(tour_id, adults, children)
