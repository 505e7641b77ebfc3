"""Listing repository - Database operations for properties, vehicles and tours"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models_booking import PropertyBooking
from ...models_listing import (
    DiscountRule,
    Property,
    RoomAvailability,
    RoomType,
    SeasonalPricing,
    SpecialEventPricing,
    Tour,
    UnavailableDate,
    Vehicle,
)
from ...shared.constants import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    PROPERTY,
    TOUR,
    VEHICLE,
)

LISTING_MODELS = {PROPERTY: Property, VEHICLE: Vehicle, TOUR: Tour}

PRICING_RULE_MODELS = {
    "seasonal": SeasonalPricing,
    "event": SpecialEventPricing,
    "discount": DiscountRule,
}


class ListingRepository:
    """Repository for listing database operations"""

    @staticmethod
    def get_listing(db: Session, service_type: str, listing_id: int):
        model = LISTING_MODELS.get(service_type)
        if model is None:
            return None
        query = db.query(model)
        if model is Property:
            query = query.options(selectinload(Property.room_types))
        return query.filter(model.id == listing_id).first()

    @staticmethod
    def get_owner_listings(db: Session, service_type: str, owner_id: int) -> list:
        model = LISTING_MODELS[service_type]
        return (
            db.query(model)
            .filter(model.owner_id == owner_id)
            .order_by(model.created_at.desc(), model.id.desc())
            .all()
        )

    @staticmethod
    def create(db: Session, obj):
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def update(db: Session, obj, **updates):
        """Update an object with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(obj, key):
                setattr(obj, key, value)
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def delete(db: Session, obj) -> None:
        db.delete(obj)
        db.commit()

    @staticmethod
    def get_room_type(db: Session, room_type_id: int) -> Optional[RoomType]:
        return db.query(RoomType).filter(RoomType.id == room_type_id).first()

    @staticmethod
    def count_room_bookings(db: Session, room_type_id: int) -> int:
        """Bookings of any status; history rows keep the room type alive"""
        return db.query(PropertyBooking).filter(PropertyBooking.room_type_id == room_type_id).count()

    @staticmethod
    def delete_room_scoped_rules(db: Session, room_type_id: int) -> None:
        """Drop pricing rules tied to one room type (caller commits)"""
        for model in PRICING_RULE_MODELS.values():
            db.query(model).filter(model.room_type_id == room_type_id).delete(synchronize_session=False)

    @staticmethod
    def upsert_room_availability(db: Session, room_type_id: int, day, **fields) -> RoomAvailability:
        """Insert or replace the override for one date (caller commits)"""
        row = (
            db.query(RoomAvailability)
            .filter(RoomAvailability.room_type_id == room_type_id, RoomAvailability.date == day)
            .first()
        )
        if row is None:
            row = RoomAvailability(room_type_id=room_type_id, date=day)
            db.add(row)
        for key, value in fields.items():
            setattr(row, key, value)
        return row

    @staticmethod
    def get_pricing_rules(db: Session, property_id: int) -> dict[str, list]:
        return {
            kind: db.query(model)
            .filter(model.property_id == property_id)
            .order_by(model.id.asc())
            .all()
            for kind, model in PRICING_RULE_MODELS.items()
        }

    @staticmethod
    def get_pricing_rule(db: Session, kind: str, rule_id: int):
        model = PRICING_RULE_MODELS.get(kind)
        if model is None:
            return None
        return db.query(model).filter(model.id == rule_id).first()

    @staticmethod
    def get_blocks(db: Session, service_type: str, service_id: int) -> list[UnavailableDate]:
        return (
            db.query(UnavailableDate)
            .filter(
                UnavailableDate.service_type == service_type,
                UnavailableDate.service_id == service_id,
            )
            .order_by(UnavailableDate.start_date.asc())
            .all()
        )

    @staticmethod
    def get_block(db: Session, block_id: int) -> Optional[UnavailableDate]:
        return db.query(UnavailableDate).filter(UnavailableDate.id == block_id).first()

    @staticmethod
    def public_query(db: Session, service_type: str):
        """Approved and active listings only"""
        model = LISTING_MODELS[service_type]
        return db.query(model).filter(
            model.approval_status == APPROVAL_APPROVED, model.is_active.is_(True)
        )

    @staticmethod
    def get_pending(db: Session, service_type: str) -> list:
        model = LISTING_MODELS[service_type]
        return (
            db.query(model)
            .filter(model.approval_status == APPROVAL_PENDING)
            .order_by(model.created_at.asc(), model.id.asc())
            .all()
        )
