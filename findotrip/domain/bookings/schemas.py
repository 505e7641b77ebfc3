"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...shared.validators import validate_email, validate_phone, validate_time_slot

BOOKING_TYPE_PATTERN = "^(property|vehicle|tour)$"


class PropertyBookingCreate(BaseModel):
    room_type_id: int
    check_in: date
    check_out: date
    guests: int = Field(1, ge=1)
    rooms: int = Field(1, ge=1, le=20)
    guest_name: Optional[str] = Field(None, max_length=255)
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    special_requests: Optional[str] = Field(None, max_length=2000)

    @field_validator("guest_email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("guest_phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @model_validator(mode="after")
    def check_dates(self):
        if self.check_out <= self.check_in:
            raise ValueError("Check-out must be after check-in")
        return self


class VehicleBookingCreate(BaseModel):
    vehicle_id: int
    start_date: datetime
    end_date: datetime
    pickup_location: Optional[str] = Field(None, max_length=500)
    dropoff_location: Optional[str] = Field(None, max_length=500)
    insurance: bool = False
    driver: bool = False
    special_requests: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class TourBookingCreate(BaseModel):
    tour_id: int
    tour_date: date
    time_slot: str
    adults: int = Field(1, ge=1)
    children: int = Field(0, ge=0)
    lead_traveler_name: str = Field(..., min_length=1, max_length=255)
    lead_traveler_email: str
    lead_traveler_phone: str
    language: str = "en"
    special_requests: Optional[str] = Field(None, max_length=2000)

    @field_validator("time_slot")
    @classmethod
    def check_slot(cls, v: str) -> str:
        return validate_time_slot(v)

    @field_validator("lead_traveler_email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("lead_traveler_phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class BookingStatusUpdate(BaseModel):
    status: str = Field(..., pattern="^(CONFIRMED|COMPLETED|CANCELLED|REFUNDED|NO_SHOW)$")
    reason: Optional[str] = Field(None, max_length=1000)


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BookingResponse(BaseModel):
    id: int
    kind: str
    booking_number: str
    user_id: int
    provider_id: int
    service_id: int
    service_name: str
    status: str
    payment_status: str
    start_at: datetime
    end_at: datetime
    total_price: float
    currency: str
    price_breakdown: Optional[dict[str, Any]] = None
    special_requests: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    refund_amount: Optional[float] = None
    refund_percentage: Optional[float] = None
    paid_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    # property
    room_type_id: Optional[int] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: Optional[int] = None
    number_of_rooms: Optional[int] = None
    guest_name: Optional[str] = None
    # vehicle
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    insurance_selected: Optional[bool] = None
    driver_required: Optional[bool] = None
    # tour
    tour_date: Optional[date] = None
    time_slot: Optional[str] = None
    participants: Optional[int] = None
    adults: Optional[int] = None
    children: Optional[int] = None
    lead_traveler_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BookingSummary(BaseModel):
    id: int
    kind: str
    booking_number: str
    service_id: int
    service_name: str
    status: str
    payment_status: str
    start_at: datetime
    end_at: datetime
    total_price: float
    currency: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookingListResponse(BaseModel):
    items: list[BookingSummary]
    count: int


class VoucherResponse(BaseModel):
    booking_number: str
    booking_type: str
    service_name: str
    provider_name: str
    customer_name: str
    start: datetime
    end: datetime
    status: str
    amount: float
    currency: str
    qr_payload: str
