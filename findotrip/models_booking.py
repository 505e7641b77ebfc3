"""
Booking models - one table per marketplace vertical.

Status workflow: PENDING -> CONFIRMED -> COMPLETED
                 PENDING/CONFIRMED -> CANCELLED -> REFUNDED
                 CONFIRMED -> NO_SHOW
"""

from datetime import datetime, time, timedelta

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declared_attr, relationship
from sqlalchemy.sql import func

from .database import Base
from .shared.timeutils import parse_time_slot


class BookingMixin:
    """Columns shared by every booking kind"""

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(40), unique=True, nullable=False, index=True)
    status = Column(String(20), default="PENDING", nullable=False, index=True)
    payment_status = Column(String(30), default="PENDING", nullable=False)
    total_price = Column(Float, nullable=False)
    currency = Column(String(10), default="PKR", nullable=False)
    price_breakdown = Column(JSON, nullable=True)
    special_requests = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    refund_amount = Column(Float, nullable=True)
    refund_percentage = Column(Float, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @declared_attr
    def user_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    @declared_attr
    def provider_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    @declared_attr
    def user(cls):
        return relationship("User", foreign_keys=f"{cls.__name__}.user_id")

    @declared_attr
    def provider(cls):
        return relationship("User", foreign_keys=f"{cls.__name__}.provider_id")

    @property
    def service_name(self) -> str:
        service = self.service
        return service.display_name if service else ""


class PropertyBooking(BookingMixin, Base):
    __tablename__ = "property_bookings"

    kind = "property"

    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id"), nullable=False, index=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    guests = Column(Integer, default=1, nullable=False)
    number_of_rooms = Column(Integer, default=1, nullable=False)
    guest_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(50), nullable=True)

    accommodation = relationship("Property")
    room_type = relationship("RoomType")

    @property
    def service(self):
        return self.accommodation

    @property
    def service_id(self) -> int:
        return self.property_id

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.check_in, time.min)

    @property
    def end_at(self) -> datetime:
        return datetime.combine(self.check_out, time.min)

    @property
    def nights(self) -> int:
        return max(1, (self.check_out - self.check_in).days)


class VehicleBooking(BookingMixin, Base):
    __tablename__ = "vehicle_bookings"

    kind = "vehicle"

    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    pickup_location = Column(String(500), nullable=True)
    dropoff_location = Column(String(500), nullable=True)
    insurance_selected = Column(Boolean, default=False, nullable=False)
    driver_required = Column(Boolean, default=False, nullable=False)
    driver_name = Column(String(255), nullable=True)
    driver_phone = Column(String(50), nullable=True)

    vehicle = relationship("Vehicle")

    @property
    def service(self):
        return self.vehicle

    @property
    def service_id(self) -> int:
        return self.vehicle_id

    @property
    def start_at(self) -> datetime:
        return self.start_date

    @property
    def end_at(self) -> datetime:
        return self.end_date


class TourBooking(BookingMixin, Base):
    __tablename__ = "tour_bookings"

    kind = "tour"

    tour_id = Column(Integer, ForeignKey("tours.id"), nullable=False, index=True)
    tour_date = Column(Date, nullable=False, index=True)
    time_slot = Column(String(10), nullable=False)
    participants = Column(Integer, nullable=False)
    adults = Column(Integer, nullable=False)
    children = Column(Integer, default=0, nullable=False)
    lead_traveler_name = Column(String(255), nullable=False)
    lead_traveler_email = Column(String(255), nullable=False)
    lead_traveler_phone = Column(String(50), nullable=False)
    language = Column(String(10), default="en", nullable=False)

    tour = relationship("Tour")

    @property
    def service(self):
        return self.tour

    @property
    def service_id(self) -> int:
        return self.tour_id

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.tour_date, parse_time_slot(self.time_slot))

    @property
    def end_at(self) -> datetime:
        duration = self.tour.duration_hours if self.tour else 0
        return self.start_at + timedelta(hours=duration)


BOOKING_MODELS = {
    "property": PropertyBooking,
    "vehicle": VehicleBooking,
    "tour": TourBooking,
}

BOOKING_NUMBER_PREFIXES = {
    "property": "PB",
    "vehicle": "VB",
    "tour": "TB",
}
