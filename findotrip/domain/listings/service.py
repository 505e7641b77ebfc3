"""Listing service - Business logic for the marketplace catalog"""

import logging
import math
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ...models import User
from ...models_listing import (
    DiscountRule,
    Property,
    RoomType,
    SeasonalPricing,
    SpecialEventPricing,
    Tour,
    UnavailableDate,
    Vehicle,
)
from ...services.audit_service import (
    AUDIT_LISTING_APPROVED,
    AUDIT_LISTING_REJECTED,
    record_audit,
)
from ...services.notification_service import create_notification
from ...shared.constants import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    NOTIFY_LISTING_APPROVED,
    NOTIFY_LISTING_REJECTED,
    PROPERTY,
    SERVICE_TYPES,
    TOUR,
    VEHICLE,
)
from ...shared.sanitization import sanitize_list, sanitize_string
from ..availability.engine import date_range, days_overlap
from .repository import LISTING_MODELS, ListingRepository
from .schemas import (
    BlockDatesRequest,
    BulkAvailabilityUpdate,
    DiscountRuleCreate,
    PropertyCreate,
    PropertyUpdate,
    RoomAvailabilityUpdate,
    RoomTypeCreate,
    RoomTypeUpdate,
    SeasonalPricingCreate,
    SpecialEventPricingCreate,
    TourCreate,
    TourUpdate,
    VehicleCreate,
    VehicleUpdate,
)

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("price_asc", "price_desc", "rating", "newest")

# Fields whose free text is rendered by the web client
TEXT_FIELDS = ("name", "title", "description", "address", "meeting_point")


def _clean(payload: dict) -> dict:
    for key in TEXT_FIELDS:
        if key in payload and isinstance(payload[key], str):
            payload[key] = sanitize_string(payload[key])
    for key in ("amenities", "features", "languages"):
        if key in payload and payload[key] is not None:
            payload[key] = sanitize_list(payload[key])
    return payload


def paginate(items: list, page: int, limit: int) -> dict:
    total = len(items)
    start = (page - 1) * limit
    return {
        "items": items[start : start + limit],
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if limit else 0,
    }


class ListingService:
    """Service layer for listing business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ListingRepository()

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------

    def get_listing(self, service_type: str, listing_id: int):
        if service_type not in SERVICE_TYPES:
            raise HTTPException(status_code=400, detail="Unknown service type")
        listing = self.repo.get_listing(self.db, service_type, listing_id)
        if not listing:
            raise HTTPException(status_code=404, detail=f"{service_type.capitalize()} not found")
        return listing

    def get_managed_listing(self, service_type: str, listing_id: int, user: User):
        """Listing the user may modify (owner or admin)"""
        listing = self.get_listing(service_type, listing_id)
        if not user.is_admin and listing.owner_id != user.id:
            logger.warning(
                f"🚫 User {user.id} tried to manage {service_type} {listing_id} owned by {listing.owner_id}"
            )
            raise HTTPException(status_code=403, detail="You can only manage your own listings")
        return listing

    def get_public_listing(self, service_type: str, listing_id: int, viewer: Optional[User] = None):
        """Detail view; unapproved or inactive listings are only visible to owner/admin"""
        listing = self.get_listing(service_type, listing_id)
        is_public = listing.approval_status == APPROVAL_APPROVED and listing.is_active
        if not is_public and not (viewer and (viewer.is_admin or viewer.id == listing.owner_id)):
            raise HTTPException(status_code=404, detail=f"{service_type.capitalize()} not found")
        return listing

    def _get_managed_room_type(self, room_type_id: int, user: User) -> RoomType:
        room_type = self.repo.get_room_type(self.db, room_type_id)
        if not room_type:
            raise HTTPException(status_code=404, detail="Room type not found")
        self.get_managed_listing(PROPERTY, room_type.property_id, user)
        return room_type

    # ------------------------------------------------------------------
    # Generic listing CRUD
    # ------------------------------------------------------------------

    def _create_listing(self, model, payload: dict, user: User):
        listing = model(
            owner_id=user.id,
            approval_status=APPROVAL_PENDING,
            **_clean(payload),
        )
        listing = self.repo.create(self.db, listing)
        logger.info(f"✅ {model.__name__} {listing.id} created by user {user.id} - pending approval")
        return listing

    def _update_listing(self, service_type: str, listing_id: int, payload: dict, user: User):
        listing = self.get_managed_listing(service_type, listing_id, user)
        return self.repo.update(self.db, listing, **_clean(payload))

    def deactivate_listing(self, service_type: str, listing_id: int, user: User) -> dict:
        """Listings are deactivated rather than deleted so booking history stays intact"""
        listing = self.get_managed_listing(service_type, listing_id, user)
        listing.is_active = False
        self.db.commit()
        logger.info(f"🗑️ {service_type} {listing_id} deactivated by user {user.id}")
        return {"message": f"{service_type.capitalize()} deactivated"}

    def get_owner_listings(self, service_type: str, user: User) -> list:
        return self.repo.get_owner_listings(self.db, service_type, user.id)

    # ------------------------------------------------------------------
    # Properties & room types
    # ------------------------------------------------------------------

    def create_property(self, data: PropertyCreate, user: User) -> Property:
        return self._create_listing(Property, data.model_dump(), user)

    def update_property(self, property_id: int, data: PropertyUpdate, user: User) -> Property:
        return self._update_listing(PROPERTY, property_id, data.model_dump(exclude_unset=True), user)

    def add_room_type(self, property_id: int, data: RoomTypeCreate, user: User) -> RoomType:
        accommodation = self.get_managed_listing(PROPERTY, property_id, user)
        room_type = RoomType(property_id=accommodation.id, **_clean(data.model_dump()))
        return self.repo.create(self.db, room_type)

    def update_room_type(self, room_type_id: int, data: RoomTypeUpdate, user: User) -> RoomType:
        room_type = self._get_managed_room_type(room_type_id, user)
        return self.repo.update(self.db, room_type, **_clean(data.model_dump(exclude_unset=True)))

    def delete_room_type(self, room_type_id: int, user: User) -> dict:
        room_type = self._get_managed_room_type(room_type_id, user)
        if self.repo.count_room_bookings(self.db, room_type.id):
            raise HTTPException(
                status_code=409,
                detail="Room type has bookings. Mark it unavailable instead.",
            )
        # date overrides go with the room through the relationship cascade
        self.repo.delete_room_scoped_rules(self.db, room_type.id)
        self.repo.delete(self.db, room_type)
        return {"message": "Room type deleted"}

    def set_room_availability(self, room_type_id: int, data: RoomAvailabilityUpdate, user: User):
        room_type = self._get_managed_room_type(room_type_id, user)
        fields = data.model_dump(exclude={"date"})
        fields["reason"] = sanitize_string(fields.get("reason"))
        row = self.repo.upsert_room_availability(self.db, room_type.id, data.date, **fields)
        self.db.commit()
        self.db.refresh(row)
        return row

    def bulk_update_availability(
        self, room_type_id: int, data: BulkAvailabilityUpdate, user: User
    ) -> dict:
        room_type = self._get_managed_room_type(room_type_id, user)
        fields = data.model_dump(exclude={"start_date", "end_date"})
        fields["reason"] = sanitize_string(fields.get("reason"))

        updated = 0
        for day in date_range(data.start_date, data.end_date + timedelta(days=1)):
            self.repo.upsert_room_availability(self.db, room_type.id, day, **fields)
            updated += 1
        self.db.commit()
        logger.info(f"📅 Bulk availability update for room type {room_type.id}: {updated} day(s)")
        return {"message": f"Updated {updated} date(s)", "updated": updated}

    # ------------------------------------------------------------------
    # Pricing rules
    # ------------------------------------------------------------------

    def _check_rule_room_type(self, accommodation: Property, room_type_id: Optional[int]):
        if room_type_id is None:
            return
        if not any(r.id == room_type_id for r in accommodation.room_types):
            raise HTTPException(status_code=400, detail="Room type does not belong to this property")

    def create_seasonal_rule(self, property_id: int, data: SeasonalPricingCreate, user: User):
        accommodation = self.get_managed_listing(PROPERTY, property_id, user)
        self._check_rule_room_type(accommodation, data.room_type_id)
        payload = data.model_dump()
        payload["name"] = sanitize_string(payload["name"])
        return self.repo.create(self.db, SeasonalPricing(property_id=accommodation.id, **payload))

    def create_event_rule(self, property_id: int, data: SpecialEventPricingCreate, user: User):
        accommodation = self.get_managed_listing(PROPERTY, property_id, user)
        self._check_rule_room_type(accommodation, data.room_type_id)
        payload = data.model_dump()
        payload["event_name"] = sanitize_string(payload["event_name"])
        return self.repo.create(
            self.db, SpecialEventPricing(property_id=accommodation.id, **payload)
        )

    def create_discount_rule(self, property_id: int, data: DiscountRuleCreate, user: User):
        accommodation = self.get_managed_listing(PROPERTY, property_id, user)
        self._check_rule_room_type(accommodation, data.room_type_id)
        payload = data.model_dump()
        payload["name"] = sanitize_string(payload.get("name"))
        return self.repo.create(self.db, DiscountRule(property_id=accommodation.id, **payload))

    def get_pricing_rules(self, property_id: int, user: User) -> dict:
        accommodation = self.get_managed_listing(PROPERTY, property_id, user)
        return self.repo.get_pricing_rules(self.db, accommodation.id)

    def delete_pricing_rule(self, kind: str, rule_id: int, user: User) -> dict:
        rule = self.repo.get_pricing_rule(self.db, kind, rule_id)
        if not rule:
            raise HTTPException(status_code=404, detail="Pricing rule not found")
        self.get_managed_listing(PROPERTY, rule.property_id, user)
        self.repo.delete(self.db, rule)
        return {"message": "Pricing rule deleted"}

    # ------------------------------------------------------------------
    # Vehicles & tours
    # ------------------------------------------------------------------

    def create_vehicle(self, data: VehicleCreate, user: User) -> Vehicle:
        return self._create_listing(Vehicle, data.model_dump(), user)

    def update_vehicle(self, vehicle_id: int, data: VehicleUpdate, user: User) -> Vehicle:
        return self._update_listing(VEHICLE, vehicle_id, data.model_dump(exclude_unset=True), user)

    def create_tour(self, data: TourCreate, user: User) -> Tour:
        return self._create_listing(Tour, data.model_dump(), user)

    def update_tour(self, tour_id: int, data: TourUpdate, user: User) -> Tour:
        tour = self.get_managed_listing(TOUR, tour_id, user)
        payload = data.model_dump(exclude_unset=True)
        max_size = payload.get("max_group_size", tour.max_group_size)
        min_size = payload.get("min_group_size", tour.min_group_size)
        if min_size > max_size:
            raise HTTPException(
                status_code=400, detail="min_group_size cannot exceed max_group_size"
            )
        return self.repo.update(self.db, tour, **_clean(payload))

    # ------------------------------------------------------------------
    # Calendar blocks
    # ------------------------------------------------------------------

    def block_dates(self, data: BlockDatesRequest, user: User) -> UnavailableDate:
        listing = self.get_managed_listing(data.service_type, data.service_id, user)

        for existing in self.repo.get_blocks(self.db, data.service_type, listing.id):
            if days_overlap(data.start_date, data.end_date, existing.start_date, existing.end_date):
                raise HTTPException(
                    status_code=409,
                    detail=f"Dates overlap an existing block ({existing.start_date} to {existing.end_date})",
                )

        block = UnavailableDate(
            service_type=data.service_type,
            service_id=listing.id,
            owner_id=listing.owner_id,
            start_date=data.start_date,
            end_date=data.end_date,
            reason=sanitize_string(data.reason),
            type=data.type,
        )
        return self.repo.create(self.db, block)

    def unblock_dates(self, block_id: int, user: User) -> dict:
        block = self.repo.get_block(self.db, block_id)
        if not block:
            raise HTTPException(status_code=404, detail="Blocked dates not found")
        self.get_managed_listing(block.service_type, block.service_id, user)
        self.repo.delete(self.db, block)
        return {"message": "Dates unblocked"}

    def list_blocks(self, service_type: str, service_id: int) -> list[UnavailableDate]:
        listing = self.get_listing(service_type, service_id)
        return self.repo.get_blocks(self.db, service_type, listing.id)

    # ------------------------------------------------------------------
    # Public search
    # ------------------------------------------------------------------

    @staticmethod
    def _check_sort(sort: Optional[str]):
        if sort and sort not in SORT_OPTIONS:
            raise HTTPException(
                status_code=400, detail=f"sort must be one of {', '.join(SORT_OPTIONS)}"
            )

    def search_properties(
        self,
        city: Optional[str] = None,
        guests: Optional[int] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        self._check_sort(sort)
        query = self.repo.public_query(self.db, PROPERTY).options(
            selectinload(Property.room_types)
        )
        if city:
            query = query.filter(func.lower(Property.city).contains(city.strip().lower()))

        results = []
        for accommodation in query.all():
            rooms = [
                r for r in accommodation.room_types
                if r.available and (not guests or r.max_guests >= guests)
            ]
            if not rooms:
                continue
            price = min(r.base_price for r in rooms)
            if min_price is not None and price < min_price:
                continue
            if max_price is not None and price > max_price:
                continue
            results.append((price, accommodation))

        if sort == "price_asc":
            results.sort(key=lambda item: (item[0], item[1].id))
        elif sort == "price_desc":
            results.sort(key=lambda item: (-item[0], item[1].id))
        elif sort == "rating":
            results.sort(key=lambda item: (-item[1].rating, -item[1].review_count, item[1].id))
        else:
            results.sort(key=lambda item: item[1].id, reverse=True)

        return paginate([accommodation for _, accommodation in results], page, limit)

    def _search_priced(
        self,
        service_type: str,
        price_column,
        capacity_filter,
        city: Optional[str],
        min_price: Optional[float],
        max_price: Optional[float],
        sort: Optional[str],
        page: int,
        limit: int,
        extra_filters=(),
    ) -> dict:
        self._check_sort(sort)
        model = LISTING_MODELS[service_type]
        query = self.repo.public_query(self.db, service_type)
        if city:
            query = query.filter(func.lower(model.city).contains(city.strip().lower()))
        if capacity_filter is not None:
            query = query.filter(capacity_filter)
        for condition in extra_filters:
            query = query.filter(condition)
        if min_price is not None:
            query = query.filter(price_column >= min_price)
        if max_price is not None:
            query = query.filter(price_column <= max_price)

        if sort == "price_asc":
            query = query.order_by(price_column.asc(), model.id.asc())
        elif sort == "price_desc":
            query = query.order_by(price_column.desc(), model.id.asc())
        elif sort == "rating":
            query = query.order_by(model.rating.desc(), model.review_count.desc(), model.id.asc())
        else:
            query = query.order_by(model.id.desc())

        total = query.count()
        items = query.offset((page - 1) * limit).limit(limit).all()
        return {
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if limit else 0,
        }

    def search_vehicles(
        self,
        city: Optional[str] = None,
        seats: Optional[int] = None,
        category: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        return self._search_priced(
            VEHICLE,
            Vehicle.daily_rate,
            Vehicle.seats >= seats if seats else None,
            city,
            min_price,
            max_price,
            sort,
            page,
            limit,
            extra_filters=[Vehicle.category == category.upper()] if category else [],
        )

    def search_tours(
        self,
        city: Optional[str] = None,
        participants: Optional[int] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        return self._search_priced(
            TOUR,
            Tour.price_per_person,
            Tour.max_group_size >= participants if participants else None,
            city,
            min_price,
            max_price,
            sort,
            page,
            limit,
        )

    # ------------------------------------------------------------------
    # Admin approval
    # ------------------------------------------------------------------

    def pending_listings(self) -> dict:
        return {
            service_type: self.repo.get_pending(self.db, service_type)
            for service_type in SERVICE_TYPES
        }

    def review_listing(
        self,
        service_type: str,
        listing_id: int,
        approve: bool,
        reason: Optional[str],
        admin: User,
        context: Optional[dict] = None,
    ):
        listing = self.get_listing(service_type, listing_id)

        if approve:
            listing.approval_status = APPROVAL_APPROVED
            listing.rejection_reason = None
            notification_type = NOTIFY_LISTING_APPROVED
            title = "Listing approved"
            message = f"{listing.display_name} is now live on FindoTrip."
        else:
            listing.approval_status = APPROVAL_REJECTED
            listing.rejection_reason = sanitize_string(reason)
            notification_type = NOTIFY_LISTING_REJECTED
            title = "Listing rejected"
            message = f"{listing.display_name} was not approved: {listing.rejection_reason}"

        create_notification(
            self.db,
            listing.owner,
            notification_type,
            title,
            message,
            action_url=f"/dashboard/{service_type}s/{listing.id}",
            data={"service_type": service_type, "service_id": listing.id},
        )
        record_audit(
            self.db,
            admin,
            AUDIT_LISTING_APPROVED if approve else AUDIT_LISTING_REJECTED,
            service_type,
            listing.id,
            details={"owner_id": listing.owner_id, "reason": listing.rejection_reason},
            severity="medium",
            context=context,
        )
        self.db.commit()
        self.db.refresh(listing)
        logger.info(
            f"🛂 Admin {admin.id} {'approved' if approve else 'rejected'} {service_type} {listing.id}"
        )
        return listing
