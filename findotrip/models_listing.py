"""
Listing models for the three marketplace verticals: properties (with room
types and their pricing rules), vehicles and tours.
"""

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
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Property(Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    property_type = Column(String(50), default="HOTEL", nullable=False)  # HOTEL, APARTMENT, VILLA, ...
    city = Column(String(120), nullable=False, index=True)
    country = Column(String(120), nullable=False)
    address = Column(String(500), nullable=True)
    amenities = Column(JSON, default=list, nullable=True)
    images = Column(JSON, default=list, nullable=True)
    cleaning_fee = Column(Float, default=0.0, nullable=False)
    service_fee = Column(Float, default=0.0, nullable=False)  # fixed amount; 0 means percentage default
    tax_rate = Column(Float, nullable=True)  # percent, e.g. 8 for 8%
    currency = Column(String(10), default="PKR", nullable=False)
    approval_status = Column(String(20), default="PENDING", nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    total_bookings = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="properties")
    room_types = relationship(
        "RoomType", back_populates="property", cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def min_price(self):
        prices = [r.base_price for r in self.room_types if r.available]
        return min(prices) if prices else None


class RoomType(Base):
    __tablename__ = "room_types"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Float, nullable=False)
    max_guests = Column(Integer, default=2, nullable=False)
    total_units = Column(Integer, default=1, nullable=False)
    available = Column(Boolean, default=True, nullable=False)
    currency = Column(String(10), default="PKR", nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    property = relationship("Property", back_populates="room_types")
    availability = relationship(
        "RoomAvailability", back_populates="room_type", cascade="all, delete-orphan"
    )


class RoomAvailability(Base):
    """Per-date override for a room type (blocks, unit caps, custom price, stay limits)"""

    __tablename__ = "room_availability"
    __table_args__ = (UniqueConstraint("room_type_id", "date", name="uq_room_type_date"),)

    id = Column(Integer, primary_key=True, index=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    reason = Column(String(255), nullable=True)
    available_units = Column(Integer, nullable=True)
    custom_price = Column(Float, nullable=True)
    min_stay = Column(Integer, nullable=True)
    max_stay = Column(Integer, nullable=True)

    room_type = relationship("RoomType", back_populates="availability")


class SeasonalPricing(Base):
    """Seasonal price adjustment; property-wide when room_type_id is null"""

    __tablename__ = "seasonal_pricing"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id"), nullable=True)
    name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days_of_week = Column(JSON, default=list, nullable=True)  # 0=Monday ... 6=Sunday; empty = all days
    price_adjustment = Column(String(30), nullable=False)
    adjustment_value = Column(Float, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    min_stay = Column(Integer, nullable=True)
    max_stay = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class SpecialEventPricing(Base):
    __tablename__ = "special_event_pricing"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id"), nullable=True)
    event_name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    price_multiplier = Column(Float, nullable=False)
    min_stay = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class DiscountRule(Base):
    __tablename__ = "discount_rules"

    id = Column(Integer, primary_key=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    room_type_id = Column(Integer, ForeignKey("room_types.id"), nullable=True)
    name = Column(String(255), nullable=True)
    type = Column(String(30), nullable=False)  # LONG_STAY, EARLY_BIRD, LAST_MINUTE, WEEKLY, MONTHLY
    discount_percent = Column(Float, nullable=False)
    min_nights = Column(Integer, nullable=True)
    days_in_advance = Column(Integer, nullable=True)
    days_before_check_in = Column(Integer, nullable=True)
    valid_from = Column(Date, nullable=True)
    valid_until = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)
    category = Column(String(50), default="SEDAN", nullable=False)
    seats = Column(Integer, default=4, nullable=False)
    transmission = Column(String(20), nullable=True)
    fuel_type = Column(String(20), nullable=True)
    city = Column(String(120), nullable=False, index=True)
    country = Column(String(120), nullable=False)
    daily_rate = Column(Float, nullable=False)
    insurance_fee = Column(Float, default=0.0, nullable=False)  # per day
    driver_fee = Column(Float, default=0.0, nullable=False)  # per day
    security_deposit = Column(Float, default=0.0, nullable=False)
    driver_available = Column(Boolean, default=False, nullable=False)
    features = Column(JSON, default=list, nullable=True)
    images = Column(JSON, default=list, nullable=True)
    currency = Column(String(10), default="PKR", nullable=False)
    approval_status = Column(String(20), default="PENDING", nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    total_bookings = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="vehicles")

    @property
    def display_name(self) -> str:
        return self.name


class Tour(Base):
    __tablename__ = "tours"

    id = Column(Integer, primary_key=True, index=True)
    # The tour guide running the tour
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    city = Column(String(120), nullable=False, index=True)
    country = Column(String(120), nullable=False)
    duration_hours = Column(Float, default=3.0, nullable=False)
    price_per_person = Column(Float, nullable=False)
    max_group_size = Column(Integer, default=10, nullable=False)
    min_group_size = Column(Integer, default=1, nullable=False)
    time_slots = Column(JSON, default=list, nullable=False)  # ["09:00", "14:00"]
    languages = Column(JSON, default=list, nullable=True)
    meeting_point = Column(String(500), nullable=True)
    images = Column(JSON, default=list, nullable=True)
    currency = Column(String(10), default="PKR", nullable=False)
    approval_status = Column(String(20), default="PENDING", nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    total_bookings = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="tours")

    @property
    def display_name(self) -> str:
        return self.title


class UnavailableDate(Base):
    """Owner-blocked calendar days (inclusive range) for any kind of service"""

    __tablename__ = "unavailable_dates"

    id = Column(Integer, primary_key=True, index=True)
    service_type = Column(String(20), nullable=False, index=True)
    service_id = Column(Integer, nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(String(255), nullable=True)
    type = Column(String(30), default="blocked", nullable=False)  # blocked, maintenance, personal
    created_at = Column(DateTime, server_default=func.now())


class WishlistItem(Base):
    """A listing a user saved to their favorites"""

    __tablename__ = "wishlist_items"
    __table_args__ = (
        UniqueConstraint("user_id", "service_type", "service_id", name="uq_wishlist_item"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_type = Column(String(20), nullable=False)
    service_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
