"""Wishlist repository - Database operations for saved listings"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models_listing import WishlistItem
from ..listings.repository import LISTING_MODELS


class WishlistRepository:
    """Repository for wishlist database operations"""

    @staticmethod
    def get_item(
        db: Session, user_id: int, service_type: str, service_id: int
    ) -> Optional[WishlistItem]:
        return (
            db.query(WishlistItem)
            .filter(
                WishlistItem.user_id == user_id,
                WishlistItem.service_type == service_type,
                WishlistItem.service_id == service_id,
            )
            .first()
        )

    @staticmethod
    def get_items(db: Session, user_id: int, service_type: Optional[str] = None) -> list[WishlistItem]:
        query = db.query(WishlistItem).filter(WishlistItem.user_id == user_id)
        if service_type:
            query = query.filter(WishlistItem.service_type == service_type)
        return query.order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc()).all()

    @staticmethod
    def count_saves(db: Session, service_type: str, service_id: int) -> int:
        return (
            db.query(WishlistItem)
            .filter(WishlistItem.service_type == service_type, WishlistItem.service_id == service_id)
            .count()
        )

    @staticmethod
    def get_listings(db: Session, service_type: str, ids: list[int]) -> dict[int, object]:
        """Listings of one kind keyed by id; missing ids are simply absent"""
        if not ids:
            return {}
        model = LISTING_MODELS[service_type]
        return {listing.id: listing for listing in db.query(model).filter(model.id.in_(ids)).all()}
