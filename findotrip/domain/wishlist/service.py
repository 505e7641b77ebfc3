"""Wishlist service - favorites across properties, vehicles and tours"""

import logging
from collections import defaultdict
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import User
from ...models_listing import WishlistItem
from ...shared.constants import APPROVAL_APPROVED, PROPERTY, TOUR, VEHICLE
from ..listings.repository import ListingRepository
from .repository import WishlistRepository
from .schemas import WishlistToggle

logger = logging.getLogger(__name__)

# Headline price shown on a saved card
PRICE_ATTRIBUTES = {PROPERTY: "min_price", VEHICLE: "daily_rate", TOUR: "price_per_person"}


def is_bookable(listing) -> bool:
    return listing is not None and listing.is_active and listing.approval_status == APPROVAL_APPROVED


class WishlistService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = WishlistRepository()
        self.listings = ListingRepository()

    def toggle(self, data: WishlistToggle, user: User) -> dict:
        """Add or remove a listing; repeating either action is harmless"""
        item = self.repo.get_item(self.db, user.id, data.service_type, data.service_id)

        if data.action == "remove":
            if item is not None:
                self.db.delete(item)
                self.db.commit()
            return {"success": True, "saved": False, "message": "Item removed from favorites"}

        if item is None:
            listing = self.listings.get_listing(self.db, data.service_type, data.service_id)
            if not is_bookable(listing):
                raise HTTPException(status_code=404, detail="Listing not found")
            self.db.add(
                WishlistItem(
                    user_id=user.id, service_type=data.service_type, service_id=data.service_id
                )
            )
            try:
                self.db.commit()
            except IntegrityError:
                # a concurrent request saved it first
                self.db.rollback()
            logger.info(f"💙 User {user.id} saved {data.service_type} {data.service_id}")
        return {"success": True, "saved": True, "message": "Item added to favorites"}

    def get_wishlist(self, user: User, service_type: Optional[str] = None) -> list[dict]:
        items = self.repo.get_items(self.db, user.id, service_type)

        ids_by_type = defaultdict(list)
        for item in items:
            ids_by_type[item.service_type].append(item.service_id)
        listings = {
            kind: self.repo.get_listings(self.db, kind, ids) for kind, ids in ids_by_type.items()
        }

        saved = []
        for item in items:
            listing = listings[item.service_type].get(item.service_id)
            entry = {
                "service_type": item.service_type,
                "service_id": item.service_id,
                "available": is_bookable(listing),
                "saved_at": item.created_at,
            }
            if listing is not None:
                entry.update(
                    name=listing.display_name,
                    city=listing.city,
                    price=getattr(listing, PRICE_ATTRIBUTES[item.service_type]),
                    rating=listing.rating,
                    image=(listing.images or [None])[0],
                )
            saved.append(entry)
        return saved

    def status(self, user: User, service_type: str, service_id: int) -> dict:
        return {
            "saved": self.repo.get_item(self.db, user.id, service_type, service_id) is not None,
            "saves": self.repo.count_saves(self.db, service_type, service_id),
        }
