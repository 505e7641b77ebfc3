"""Pricing service - quotes for stays, vehicle rentals and tours"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import DEFAULT_SERVICE_FEE_RATE, DEFAULT_TAX_RATE_PERCENT
from ...models_listing import RoomType
from ...shared.timeutils import to_naive_utc, utcnow
from ..availability.engine import date_range
from ..availability.repository import AvailabilityRepository
from . import engine
from .repository import PricingRepository

logger = logging.getLogger(__name__)


class PricingService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = PricingRepository()
        self.inventory = AvailabilityRepository()

    def _get_room_type(self, room_type_id: int) -> RoomType:
        room_type = self.inventory.get_room_type(self.db, room_type_id)
        if not room_type:
            raise HTTPException(status_code=404, detail="Room type not found")
        return room_type

    def _nightly_prices(
        self,
        room_type: RoomType,
        start: date,
        end: date,
        nights: Optional[int],
        booked_on: Optional[date],
    ) -> list[dict]:
        last_night = end - timedelta(days=1)
        overrides = self.inventory.get_overrides(self.db, room_type.id, start, end)
        events = self.repo.get_event_rules(self.db, room_type, start, last_night)
        seasons = self.repo.get_seasonal_rules(self.db, room_type, start, last_night)
        discounts = self.repo.get_discount_rules(self.db, room_type) if nights and booked_on else []

        prices = []
        for day in date_range(start, end):
            event = next((e for e in events if e.start_date <= day <= e.end_date), None)
            season = next((s for s in seasons if engine.seasonal_rule_matches_day(s, day)), None)
            price = engine.night_price(
                room_type.base_price,
                day,
                override=overrides.get(day),
                event_rule=event,
                seasonal_rule=season,
                discounts=discounts,
                nights=nights,
                booked_on=booked_on,
            )
            price["currency"] = room_type.currency
            prices.append(price)
        return prices

    def room_night_price(
        self,
        room_type_id: int,
        day: date,
        nights: Optional[int] = None,
        booked_on: Optional[date] = None,
    ) -> dict:
        """Price of a single night, optionally with stay-length / lead-time discounts"""
        room_type = self._get_room_type(room_type_id)
        return self._nightly_prices(room_type, day, day + timedelta(days=1), nights, booked_on)[0]

    def stay_price(
        self,
        room_type_id: int,
        check_in: date,
        check_out: date,
        rooms: int = 1,
        booked_on: Optional[date] = None,
    ) -> dict:
        if check_out <= check_in:
            raise HTTPException(status_code=400, detail="Check-out must be after check-in")
        if rooms < 1:
            raise HTTPException(status_code=400, detail="At least one room is required")

        room_type = self._get_room_type(room_type_id)
        accommodation = room_type.property
        booked_on = booked_on or utcnow().date()
        number_of_nights = (check_out - check_in).days

        night_prices = self._nightly_prices(
            room_type, check_in, check_out, number_of_nights, booked_on
        )
        tax_rate = (
            accommodation.tax_rate if accommodation.tax_rate is not None else DEFAULT_TAX_RATE_PERCENT
        )

        quote = engine.stay_totals(
            night_prices,
            rooms=rooms,
            cleaning_fee=accommodation.cleaning_fee or 0.0,
            fixed_service_fee=accommodation.service_fee or 0.0,
            tax_rate_percent=tax_rate,
            default_service_fee_rate=DEFAULT_SERVICE_FEE_RATE,
            currency=room_type.currency or accommodation.currency,
        )
        logger.debug(
            f"Stay quote for room type {room_type_id} {check_in}..{check_out} x{rooms}: {quote['total']}"
        )
        return quote

    def vehicle_quote(
        self,
        vehicle_id: int,
        start: datetime,
        end: datetime,
        include_insurance: bool = False,
        include_driver: bool = False,
    ) -> dict:
        start, end = to_naive_utc(start), to_naive_utc(end)
        if end <= start:
            raise HTTPException(status_code=400, detail="End date must be after start date")

        vehicle = self.inventory.get_vehicle(self.db, vehicle_id)
        if not vehicle:
            raise HTTPException(status_code=404, detail="Vehicle not found")
        if include_driver and not vehicle.driver_available:
            raise HTTPException(status_code=400, detail="This vehicle is not offered with a driver")

        return engine.vehicle_price(
            vehicle.daily_rate,
            start,
            end,
            insurance_fee=vehicle.insurance_fee or 0.0,
            driver_fee=vehicle.driver_fee or 0.0,
            security_deposit=vehicle.security_deposit or 0.0,
            include_insurance=include_insurance,
            include_driver=include_driver,
            currency=vehicle.currency,
        )

    def tour_quote(self, tour_id: int, adults: int, children: int = 0) -> dict:
        if adults < 1:
            raise HTTPException(status_code=400, detail="At least one adult is required")
        if children < 0:
            raise HTTPException(status_code=400, detail="Children cannot be negative")

        tour = self.inventory.get_tour(self.db, tour_id)
        if not tour:
            raise HTTPException(status_code=404, detail="Tour not found")

        return engine.tour_price(tour.price_per_person, adults, children, currency=tour.currency)
