"""Pricing repository - pricing rules for a room type over a date range"""

from datetime import date

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models_listing import DiscountRule, RoomType, SeasonalPricing, SpecialEventPricing


class PricingRepository:
    """Loads every rule that can touch a stay in one query per rule kind"""

    @staticmethod
    def get_event_rules(
        db: Session, room_type: RoomType, start: date, end: date
    ) -> list[SpecialEventPricing]:
        """Active events overlapping the inclusive range, highest multiplier first"""
        return (
            db.query(SpecialEventPricing)
            .filter(
                SpecialEventPricing.property_id == room_type.property_id,
                or_(
                    SpecialEventPricing.room_type_id == room_type.id,
                    SpecialEventPricing.room_type_id.is_(None),
                ),
                SpecialEventPricing.is_active.is_(True),
                SpecialEventPricing.start_date <= end,
                SpecialEventPricing.end_date >= start,
            )
            .order_by(SpecialEventPricing.price_multiplier.desc())
            .all()
        )

    @staticmethod
    def get_seasonal_rules(
        db: Session, room_type: RoomType, start: date, end: date
    ) -> list[SeasonalPricing]:
        """Active seasonal rules overlapping the inclusive range, highest priority first"""
        return (
            db.query(SeasonalPricing)
            .filter(
                SeasonalPricing.property_id == room_type.property_id,
                or_(
                    SeasonalPricing.room_type_id == room_type.id,
                    SeasonalPricing.room_type_id.is_(None),
                ),
                SeasonalPricing.is_active.is_(True),
                SeasonalPricing.start_date <= end,
                SeasonalPricing.end_date >= start,
            )
            .order_by(SeasonalPricing.priority.desc(), SeasonalPricing.id.asc())
            .all()
        )

    @staticmethod
    def get_discount_rules(db: Session, room_type: RoomType) -> list[DiscountRule]:
        return (
            db.query(DiscountRule)
            .filter(
                DiscountRule.property_id == room_type.property_id,
                or_(
                    DiscountRule.room_type_id == room_type.id,
                    DiscountRule.room_type_id.is_(None),
                ),
                DiscountRule.is_active.is_(True),
            )
            .all()
        )
