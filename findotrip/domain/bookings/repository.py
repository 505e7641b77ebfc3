"""Booking repository - Database operations for all three booking kinds"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Commission
from ...models_booking import (
    BOOKING_MODELS,
    BOOKING_NUMBER_PREFIXES,
    PropertyBooking,
    TourBooking,
    VehicleBooking,
)
from ...models_review import ReviewRequest
from ...shared.constants import BOOKING_CONFIRMED, COMMISSION_PENDING


def _newest_first(bookings: list) -> list:
    return sorted(
        bookings,
        key=lambda b: (b.created_at or datetime.min, b.id),
        reverse=True,
    )


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_type: str, booking_id: int):
        model = BOOKING_MODELS.get(booking_type)
        if model is None:
            return None
        return db.query(model).filter(model.id == booking_id).first()

    @staticmethod
    def get_by_number(db: Session, booking_number: str):
        for booking_type, prefix in BOOKING_NUMBER_PREFIXES.items():
            if booking_number.startswith(prefix):
                model = BOOKING_MODELS[booking_type]
                return db.query(model).filter(model.booking_number == booking_number).first()
        return None

    @staticmethod
    def number_exists(db: Session, booking_type: str, booking_number: str) -> bool:
        model = BOOKING_MODELS[booking_type]
        return (
            db.query(model.id).filter(model.booking_number == booking_number).first() is not None
        )

    @staticmethod
    def create(db: Session, booking):
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def _collect(db: Session, column: str, user_id: int, status: Optional[str]) -> list:
        bookings = []
        for model in BOOKING_MODELS.values():
            query = db.query(model).filter(getattr(model, column) == user_id)
            if status:
                query = query.filter(model.status == status)
            bookings.extend(query.all())
        return _newest_first(bookings)

    @classmethod
    def get_customer_bookings(cls, db: Session, user_id: int, status: Optional[str] = None) -> list:
        return cls._collect(db, "user_id", user_id, status)

    @classmethod
    def get_provider_bookings(
        cls, db: Session, provider_id: int, status: Optional[str] = None
    ) -> list:
        return cls._collect(db, "provider_id", provider_id, status)

    @staticmethod
    def get_pending_commissions(db: Session, booking_type: str, booking_id: int) -> list[Commission]:
        return (
            db.query(Commission)
            .filter(
                Commission.booking_type == booking_type,
                Commission.booking_id == booking_id,
                Commission.status == COMMISSION_PENDING,
            )
            .all()
        )

    @staticmethod
    def has_commission(db: Session, booking_type: str, booking_id: int) -> bool:
        return (
            db.query(Commission.id)
            .filter(Commission.booking_type == booking_type, Commission.booking_id == booking_id)
            .first()
            is not None
        )

    @staticmethod
    def get_review_request(db: Session, booking_type: str, booking_id: int) -> Optional[ReviewRequest]:
        return (
            db.query(ReviewRequest)
            .filter(
                ReviewRequest.booking_type == booking_type,
                ReviewRequest.booking_id == booking_id,
            )
            .first()
        )

    @staticmethod
    def get_finished_confirmed(db: Session, now: datetime) -> list:
        """CONFIRMED bookings whose end has passed"""
        candidates = (
            db.query(PropertyBooking)
            .filter(
                PropertyBooking.status == BOOKING_CONFIRMED,
                PropertyBooking.check_out <= now.date(),
            )
            .all()
        )
        candidates += (
            db.query(VehicleBooking)
            .filter(VehicleBooking.status == BOOKING_CONFIRMED, VehicleBooking.end_date <= now)
            .all()
        )
        candidates += (
            db.query(TourBooking)
            .filter(TourBooking.status == BOOKING_CONFIRMED, TourBooking.tour_date <= now.date())
            .all()
        )
        # Tours end part-way through the day
        return [b for b in candidates if b.end_at <= now]
