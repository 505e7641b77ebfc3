"""Availability repository - inventory and calendar queries"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models_booking import PropertyBooking, TourBooking, VehicleBooking
from ...models_listing import (
    RoomAvailability,
    RoomType,
    SeasonalPricing,
    SpecialEventPricing,
    Tour,
    UnavailableDate,
    Vehicle,
)
from ...shared.constants import ACTIVE_BOOKING_STATUSES


class AvailabilityRepository:
    """Repository for availability lookups"""

    @staticmethod
    def get_room_type(db: Session, room_type_id: int) -> Optional[RoomType]:
        return (
            db.query(RoomType)
            .options(joinedload(RoomType.property))
            .filter(RoomType.id == room_type_id)
            .first()
        )

    @staticmethod
    def get_overrides(
        db: Session, room_type_id: int, start: date, end: date
    ) -> dict[date, RoomAvailability]:
        """Per-date overrides for [start, end) keyed by date"""
        rows = (
            db.query(RoomAvailability)
            .filter(
                RoomAvailability.room_type_id == room_type_id,
                RoomAvailability.date >= start,
                RoomAvailability.date < end,
            )
            .all()
        )
        return {row.date: row for row in rows}

    @staticmethod
    def get_active_room_bookings(
        db: Session,
        room_type_id: int,
        start: date,
        end: date,
        exclude_booking_id: Optional[int] = None,
    ) -> list[PropertyBooking]:
        """Capacity-holding bookings whose stay overlaps [start, end)"""
        query = db.query(PropertyBooking).filter(
            PropertyBooking.room_type_id == room_type_id,
            PropertyBooking.status.in_(ACTIVE_BOOKING_STATUSES),
            PropertyBooking.check_in < end,
            PropertyBooking.check_out > start,
        )
        if exclude_booking_id:
            query = query.filter(PropertyBooking.id != exclude_booking_id)
        return query.all()

    @staticmethod
    def get_blocks(
        db: Session, service_type: str, service_id: int, start: date, end: date
    ) -> list[UnavailableDate]:
        """Owner blocks touching the inclusive day range [start, end]"""
        return (
            db.query(UnavailableDate)
            .filter(
                UnavailableDate.service_type == service_type,
                UnavailableDate.service_id == service_id,
                UnavailableDate.start_date <= end,
                UnavailableDate.end_date >= start,
            )
            .order_by(UnavailableDate.start_date.asc())
            .all()
        )

    @staticmethod
    def get_seasonal_rule(db: Session, room_type: RoomType, day: date) -> Optional[SeasonalPricing]:
        """Highest-priority active seasonal rule covering the day"""
        return (
            db.query(SeasonalPricing)
            .filter(
                SeasonalPricing.property_id == room_type.property_id,
                or_(
                    SeasonalPricing.room_type_id == room_type.id,
                    SeasonalPricing.room_type_id.is_(None),
                ),
                SeasonalPricing.is_active.is_(True),
                SeasonalPricing.start_date <= day,
                SeasonalPricing.end_date >= day,
            )
            .order_by(SeasonalPricing.priority.desc(), SeasonalPricing.id.asc())
            .first()
        )

    @staticmethod
    def get_event_rule(db: Session, room_type: RoomType, day: date) -> Optional[SpecialEventPricing]:
        return (
            db.query(SpecialEventPricing)
            .filter(
                SpecialEventPricing.property_id == room_type.property_id,
                or_(
                    SpecialEventPricing.room_type_id == room_type.id,
                    SpecialEventPricing.room_type_id.is_(None),
                ),
                SpecialEventPricing.is_active.is_(True),
                SpecialEventPricing.start_date <= day,
                SpecialEventPricing.end_date >= day,
            )
            .order_by(SpecialEventPricing.price_multiplier.desc())
            .first()
        )

    @staticmethod
    def get_vehicle(db: Session, vehicle_id: int) -> Optional[Vehicle]:
        return db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()

    @staticmethod
    def get_active_vehicle_bookings(
        db: Session,
        vehicle_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> list[VehicleBooking]:
        query = db.query(VehicleBooking).filter(
            VehicleBooking.vehicle_id == vehicle_id,
            VehicleBooking.status.in_(ACTIVE_BOOKING_STATUSES),
            VehicleBooking.start_date < end,
            VehicleBooking.end_date > start,
        )
        if exclude_booking_id:
            query = query.filter(VehicleBooking.id != exclude_booking_id)
        return query.order_by(VehicleBooking.start_date.asc()).all()

    @staticmethod
    def get_tour(db: Session, tour_id: int) -> Optional[Tour]:
        return db.query(Tour).filter(Tour.id == tour_id).first()

    @staticmethod
    def get_tour_booked_participants(
        db: Session, tour_id: int, tour_date: date, time_slot: str
    ) -> int:
        booked = (
            db.query(func.coalesce(func.sum(TourBooking.participants), 0))
            .filter(
                TourBooking.tour_id == tour_id,
                TourBooking.tour_date == tour_date,
                TourBooking.time_slot == time_slot,
                TourBooking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
            .scalar()
        )
        return int(booked or 0)
