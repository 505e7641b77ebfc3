"""Listing domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...shared.validators import validate_time_slot
from ..pricing.engine import ADJUSTMENT_TYPES, DISCOUNT_TYPES

SERVICE_TYPE_PATTERN = "^(property|vehicle|tour)$"


# ============================================================================
# PROPERTIES & ROOM TYPES
# ============================================================================


class PropertyCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    property_type: str = "HOTEL"
    city: str = Field(..., min_length=1, max_length=120)
    country: str = Field(..., min_length=1, max_length=120)
    address: Optional[str] = None
    amenities: list[str] = []
    images: list[str] = []
    cleaning_fee: float = Field(0.0, ge=0)
    service_fee: float = Field(0.0, ge=0)
    tax_rate: Optional[float] = Field(None, ge=0, le=100)
    currency: str = "PKR"


class PropertyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    property_type: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    address: Optional[str] = None
    amenities: Optional[list[str]] = None
    images: Optional[list[str]] = None
    cleaning_fee: Optional[float] = Field(None, ge=0)
    service_fee: Optional[float] = Field(None, ge=0)
    tax_rate: Optional[float] = Field(None, ge=0, le=100)
    currency: Optional[str] = None
    is_active: Optional[bool] = None


class RoomTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    base_price: float = Field(..., gt=0)
    max_guests: int = Field(2, ge=1)
    total_units: int = Field(1, ge=1)
    available: bool = True
    currency: str = "PKR"


class RoomTypeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[float] = Field(None, gt=0)
    max_guests: Optional[int] = Field(None, ge=1)
    total_units: Optional[int] = Field(None, ge=1)
    available: Optional[bool] = None


class RoomTypeResponse(BaseModel):
    id: int
    property_id: int
    name: str
    description: Optional[str] = None
    base_price: float
    max_guests: int
    total_units: int
    available: bool
    currency: str

    model_config = ConfigDict(from_attributes=True)


class PropertyResponse(BaseModel):
    id: int
    owner_id: int
    name: str
    description: Optional[str] = None
    property_type: str
    city: str
    country: str
    address: Optional[str] = None
    amenities: Optional[list] = None
    images: Optional[list] = None
    cleaning_fee: float
    service_fee: float
    tax_rate: Optional[float] = None
    currency: str
    approval_status: str
    rejection_reason: Optional[str] = None
    is_active: bool
    rating: float
    review_count: int
    total_bookings: int
    min_price: Optional[float] = None
    room_types: list[RoomTypeResponse] = []
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RoomAvailabilityUpdate(BaseModel):
    """Per-date override for a room type"""

    date: date
    is_available: bool = True
    reason: Optional[str] = None
    available_units: Optional[int] = Field(None, ge=0)
    custom_price: Optional[float] = Field(None, gt=0)
    min_stay: Optional[int] = Field(None, ge=1)
    max_stay: Optional[int] = Field(None, ge=1)


class BulkAvailabilityUpdate(BaseModel):
    """Apply the same override to every day of an inclusive range"""

    start_date: date
    end_date: date
    is_available: bool = True
    reason: Optional[str] = None
    available_units: Optional[int] = Field(None, ge=0)
    custom_price: Optional[float] = Field(None, gt=0)
    min_stay: Optional[int] = Field(None, ge=1)
    max_stay: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        if (self.end_date - self.start_date).days > 365:
            raise ValueError("Bulk updates are limited to one year")
        return self


class RoomAvailabilityResponse(BaseModel):
    id: int
    room_type_id: int
    date: date
    is_available: bool
    reason: Optional[str] = None
    available_units: Optional[int] = None
    custom_price: Optional[float] = None
    min_stay: Optional[int] = None
    max_stay: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# PRICING RULES
# ============================================================================


class SeasonalPricingCreate(BaseModel):
    name: str
    room_type_id: Optional[int] = None
    start_date: date
    end_date: date
    days_of_week: list[int] = []
    price_adjustment: str
    adjustment_value: float
    priority: int = 0
    min_stay: Optional[int] = Field(None, ge=1)
    max_stay: Optional[int] = Field(None, ge=1)
    is_active: bool = True

    @field_validator("price_adjustment")
    @classmethod
    def validate_adjustment(cls, v: str) -> str:
        if v not in ADJUSTMENT_TYPES:
            raise ValueError(f"price_adjustment must be one of {', '.join(ADJUSTMENT_TYPES)}")
        return v

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, v: list[int]) -> list[int]:
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("days_of_week values must be 0 (Monday) to 6 (Sunday)")
        return sorted(set(v))

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class SpecialEventPricingCreate(BaseModel):
    event_name: str
    room_type_id: Optional[int] = None
    start_date: date
    end_date: date
    price_multiplier: float = Field(..., gt=0)
    min_stay: Optional[int] = Field(None, ge=1)
    is_active: bool = True

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class DiscountRuleCreate(BaseModel):
    type: str
    name: Optional[str] = None
    room_type_id: Optional[int] = None
    discount_percent: float = Field(..., gt=0, le=100)
    min_nights: Optional[int] = Field(None, ge=1)
    days_in_advance: Optional[int] = Field(None, ge=0)
    days_before_check_in: Optional[int] = Field(None, ge=0)
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    is_active: bool = True

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in DISCOUNT_TYPES:
            raise ValueError(f"type must be one of {', '.join(DISCOUNT_TYPES)}")
        return v


class SeasonalPricingResponse(SeasonalPricingCreate):
    id: int
    property_id: int

    model_config = ConfigDict(from_attributes=True)


class SpecialEventPricingResponse(SpecialEventPricingCreate):
    id: int
    property_id: int

    model_config = ConfigDict(from_attributes=True)


class DiscountRuleResponse(DiscountRuleCreate):
    id: int
    property_id: int

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# VEHICLES & TOURS
# ============================================================================


class VehicleCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1950, le=2100)
    category: str = "SEDAN"
    seats: int = Field(4, ge=1, le=60)
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    city: str
    country: str
    daily_rate: float = Field(..., gt=0)
    insurance_fee: float = Field(0.0, ge=0)
    driver_fee: float = Field(0.0, ge=0)
    security_deposit: float = Field(0.0, ge=0)
    driver_available: bool = False
    features: list[str] = []
    images: list[str] = []
    currency: str = "PKR"


class VehicleUpdate(BaseModel):
    name: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1950, le=2100)
    category: Optional[str] = None
    seats: Optional[int] = Field(None, ge=1, le=60)
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    daily_rate: Optional[float] = Field(None, gt=0)
    insurance_fee: Optional[float] = Field(None, ge=0)
    driver_fee: Optional[float] = Field(None, ge=0)
    security_deposit: Optional[float] = Field(None, ge=0)
    driver_available: Optional[bool] = None
    features: Optional[list[str]] = None
    images: Optional[list[str]] = None
    is_active: Optional[bool] = None


class VehicleResponse(BaseModel):
    id: int
    owner_id: int
    name: str
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    category: str
    seats: int
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    city: str
    country: str
    daily_rate: float
    insurance_fee: float
    driver_fee: float
    security_deposit: float
    driver_available: bool
    features: Optional[list] = None
    images: Optional[list] = None
    currency: str
    approval_status: str
    rejection_reason: Optional[str] = None
    is_active: bool
    rating: float
    review_count: int
    total_bookings: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TourCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    city: str
    country: str
    duration_hours: float = Field(3.0, gt=0, le=24 * 14)
    price_per_person: float = Field(..., gt=0)
    max_group_size: int = Field(10, ge=1)
    min_group_size: int = Field(1, ge=1)
    time_slots: list[str] = Field(..., min_length=1)
    languages: list[str] = ["en"]
    meeting_point: Optional[str] = None
    images: list[str] = []
    currency: str = "PKR"

    @field_validator("time_slots")
    @classmethod
    def validate_slots(cls, v: list[str]) -> list[str]:
        return sorted({validate_time_slot(s) for s in v})

    @model_validator(mode="after")
    def check_group(self):
        if self.min_group_size > self.max_group_size:
            raise ValueError("min_group_size cannot exceed max_group_size")
        return self


class TourUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    duration_hours: Optional[float] = Field(None, gt=0)
    price_per_person: Optional[float] = Field(None, gt=0)
    max_group_size: Optional[int] = Field(None, ge=1)
    min_group_size: Optional[int] = Field(None, ge=1)
    time_slots: Optional[list[str]] = None
    languages: Optional[list[str]] = None
    meeting_point: Optional[str] = None
    images: Optional[list[str]] = None
    is_active: Optional[bool] = None

    @field_validator("time_slots")
    @classmethod
    def validate_slots(cls, v):
        if v is None:
            return v
        if not v:
            raise ValueError("A tour needs at least one time slot")
        return sorted({validate_time_slot(s) for s in v})


class TourResponse(BaseModel):
    id: int
    owner_id: int
    title: str
    description: Optional[str] = None
    city: str
    country: str
    duration_hours: float
    price_per_person: float
    max_group_size: int
    min_group_size: int
    time_slots: list
    languages: Optional[list] = None
    meeting_point: Optional[str] = None
    images: Optional[list] = None
    currency: str
    approval_status: str
    rejection_reason: Optional[str] = None
    is_active: bool
    rating: float
    review_count: int
    total_bookings: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# CALENDAR BLOCKS & APPROVAL
# ============================================================================


class BlockDatesRequest(BaseModel):
    service_type: str = Field(..., pattern=SERVICE_TYPE_PATTERN)
    service_id: int
    start_date: date
    end_date: date
    reason: Optional[str] = None
    type: str = Field("blocked", pattern="^(blocked|maintenance|personal)$")

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class UnavailableDateResponse(BaseModel):
    id: int
    service_type: str
    service_id: int
    start_date: date
    end_date: date
    reason: Optional[str] = None
    type: str

    model_config = ConfigDict(from_attributes=True)


class ApprovalDecision(BaseModel):
    approve: bool
    reason: Optional[str] = None

    @model_validator(mode="after")
    def reason_required_on_reject(self):
        if not self.approve and not (self.reason and self.reason.strip()):
            raise ValueError("A reason is required when rejecting a listing")
        return self
