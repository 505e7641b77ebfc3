"""Listing router - catalog endpoints for properties, vehicles and tours"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_roles
from ...database import get_db
from ...models import User
from ...services.audit_service import audit_context
from ...shared.constants import (
    ADMIN,
    PROPERTY,
    PROPERTY_OWNER,
    TOUR,
    TOUR_GUIDE,
    VEHICLE,
    VEHICLE_OWNER,
)
from .schemas import (
    SERVICE_TYPE_PATTERN,
    ApprovalDecision,
    BlockDatesRequest,
    BulkAvailabilityUpdate,
    DiscountRuleCreate,
    DiscountRuleResponse,
    PropertyCreate,
    PropertyResponse,
    PropertyUpdate,
    RoomAvailabilityResponse,
    RoomAvailabilityUpdate,
    RoomTypeCreate,
    RoomTypeResponse,
    RoomTypeUpdate,
    SeasonalPricingCreate,
    SeasonalPricingResponse,
    SpecialEventPricingCreate,
    SpecialEventPricingResponse,
    TourCreate,
    TourResponse,
    TourUpdate,
    UnavailableDateResponse,
    VehicleCreate,
    VehicleResponse,
    VehicleUpdate,
)
from .service import ListingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Listings"])

property_managers = require_roles(PROPERTY_OWNER, ADMIN)
vehicle_managers = require_roles(VEHICLE_OWNER, ADMIN)
tour_managers = require_roles(TOUR_GUIDE, ADMIN)
admins_only = require_roles(ADMIN)


def get_listing_service(db: Session = Depends(get_db)) -> ListingService:
    """Dependency injection for ListingService"""
    return ListingService(db)


def _page(result: dict, schema) -> dict:
    result["items"] = [schema.model_validate(item) for item in result["items"]]
    return result


# ============================================================================
# PROPERTIES
# ============================================================================


@router.get("/properties")
async def search_properties(
    city: Optional[str] = Query(None),
    guests: Optional[int] = Query(None, ge=1),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: ListingService = Depends(get_listing_service),
):
    """Search approved properties"""
    result = service.search_properties(city, guests, min_price, max_price, sort, page, limit)
    return _page(result, PropertyResponse)


@router.get("/properties/mine", response_model=list[PropertyResponse])
async def my_properties(
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.get_owner_listings(PROPERTY, current_user)


@router.post("/properties", response_model=PropertyResponse, status_code=201)
async def create_property(
    data: PropertyCreate,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.create_property(data, current_user)


@router.get("/properties/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    service: ListingService = Depends(get_listing_service),
):
    return service.get_public_listing(PROPERTY, property_id, viewer)


@router.patch("/properties/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: int,
    data: PropertyUpdate,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.update_property(property_id, data, current_user)


@router.delete("/properties/{property_id}")
async def deactivate_property(
    property_id: int,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.deactivate_listing(PROPERTY, property_id, current_user)


@router.post(
    "/properties/{property_id}/room-types", response_model=RoomTypeResponse, status_code=201
)
async def add_room_type(
    property_id: int,
    data: RoomTypeCreate,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.add_room_type(property_id, data, current_user)


@router.patch("/room-types/{room_type_id}", response_model=RoomTypeResponse)
async def update_room_type(
    room_type_id: int,
    data: RoomTypeUpdate,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.update_room_type(room_type_id, data, current_user)


@router.delete("/room-types/{room_type_id}")
async def delete_room_type(
    room_type_id: int,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.delete_room_type(room_type_id, current_user)


@router.put("/room-types/{room_type_id}/availability", response_model=RoomAvailabilityResponse)
async def set_room_availability(
    room_type_id: int,
    data: RoomAvailabilityUpdate,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    """Create or replace the override for one date"""
    return service.set_room_availability(room_type_id, data, current_user)


@router.post("/room-types/{room_type_id}/availability/bulk")
async def bulk_update_availability(
    room_type_id: int,
    data: BulkAvailabilityUpdate,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.bulk_update_availability(room_type_id, data, current_user)


# ============================================================================
# PRICING RULES
# ============================================================================


@router.get("/properties/{property_id}/pricing-rules")
async def get_pricing_rules(
    property_id: int,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    rules = service.get_pricing_rules(property_id, current_user)
    return {
        "seasonal": [SeasonalPricingResponse.model_validate(r) for r in rules["seasonal"]],
        "event": [SpecialEventPricingResponse.model_validate(r) for r in rules["event"]],
        "discount": [DiscountRuleResponse.model_validate(r) for r in rules["discount"]],
    }


@router.post(
    "/properties/{property_id}/pricing-rules/seasonal",
    response_model=SeasonalPricingResponse,
    status_code=201,
)
async def create_seasonal_rule(
    property_id: int,
    data: SeasonalPricingCreate,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.create_seasonal_rule(property_id, data, current_user)


@router.post(
    "/properties/{property_id}/pricing-rules/event",
    response_model=SpecialEventPricingResponse,
    status_code=201,
)
async def create_event_rule(
    property_id: int,
    data: SpecialEventPricingCreate,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.create_event_rule(property_id, data, current_user)


@router.post(
    "/properties/{property_id}/pricing-rules/discount",
    response_model=DiscountRuleResponse,
    status_code=201,
)
async def create_discount_rule(
    property_id: int,
    data: DiscountRuleCreate,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.create_discount_rule(property_id, data, current_user)


@router.delete("/pricing-rules/{kind}/{rule_id}")
async def delete_pricing_rule(
    kind: str,
    rule_id: int,
    current_user: User = Depends(property_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.delete_pricing_rule(kind, rule_id, current_user)


# ============================================================================
# VEHICLES
# ============================================================================


@router.get("/vehicles")
async def search_vehicles(
    city: Optional[str] = Query(None),
    seats: Optional[int] = Query(None, ge=1),
    category: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: ListingService = Depends(get_listing_service),
):
    result = service.search_vehicles(city, seats, category, min_price, max_price, sort, page, limit)
    return _page(result, VehicleResponse)


@router.get("/vehicles/mine", response_model=list[VehicleResponse])
async def my_vehicles(
    current_user: User = Depends(vehicle_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.get_owner_listings(VEHICLE, current_user)


@router.post("/vehicles", response_model=VehicleResponse, status_code=201)
async def create_vehicle(
    data: VehicleCreate,
    current_user: User = Depends(vehicle_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.create_vehicle(data, current_user)


@router.get("/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    service: ListingService = Depends(get_listing_service),
):
    return service.get_public_listing(VEHICLE, vehicle_id, viewer)


@router.patch("/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: int,
    data: VehicleUpdate,
    current_user: User = Depends(vehicle_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.update_vehicle(vehicle_id, data, current_user)


@router.delete("/vehicles/{vehicle_id}")
async def deactivate_vehicle(
    vehicle_id: int,
    current_user: User = Depends(vehicle_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.deactivate_listing(VEHICLE, vehicle_id, current_user)


# ============================================================================
# TOURS
# ============================================================================


@router.get("/tours")
async def search_tours(
    city: Optional[str] = Query(None),
    participants: Optional[int] = Query(None, ge=1),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: ListingService = Depends(get_listing_service),
):
    result = service.search_tours(city, participants, min_price, max_price, sort, page, limit)
    return _page(result, TourResponse)


@router.get("/tours/mine", response_model=list[TourResponse])
async def my_tours(
    current_user: User = Depends(tour_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.get_owner_listings(TOUR, current_user)


@router.post("/tours", response_model=TourResponse, status_code=201)
async def create_tour(
    data: TourCreate,
    current_user: User = Depends(tour_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.create_tour(data, current_user)


@router.get("/tours/{tour_id}", response_model=TourResponse)
async def get_tour(
    tour_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    service: ListingService = Depends(get_listing_service),
):
    return service.get_public_listing(TOUR, tour_id, viewer)


@router.patch("/tours/{tour_id}", response_model=TourResponse)
async def update_tour(
    tour_id: int,
    data: TourUpdate,
    current_user: User = Depends(tour_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.update_tour(tour_id, data, current_user)


@router.delete("/tours/{tour_id}")
async def deactivate_tour(
    tour_id: int,
    current_user: User = Depends(tour_managers),
    service: ListingService = Depends(get_listing_service),
):
    return service.deactivate_listing(TOUR, tour_id, current_user)


# ============================================================================
# BLOCKED DATES
# ============================================================================


@router.get("/blocked-dates", response_model=list[UnavailableDateResponse])
async def list_blocked_dates(
    service_type: str = Query(..., pattern=SERVICE_TYPE_PATTERN),
    service_id: int = Query(...),
    service: ListingService = Depends(get_listing_service),
):
    return service.list_blocks(service_type, service_id)


@router.post("/blocked-dates", response_model=UnavailableDateResponse, status_code=201)
async def block_dates(
    data: BlockDatesRequest,
    current_user: User = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    """Block calendar days for a listing the user manages"""
    return service.block_dates(data, current_user)


@router.delete("/blocked-dates/{block_id}")
async def unblock_dates(
    block_id: int,
    current_user: User = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    return service.unblock_dates(block_id, current_user)


# ============================================================================
# ADMIN APPROVAL
# ============================================================================


@router.get("/admin/listings/pending")
async def pending_listings(
    current_user: User = Depends(admins_only),
    service: ListingService = Depends(get_listing_service),
):
    pending = service.pending_listings()
    return {
        "properties": [PropertyResponse.model_validate(p) for p in pending[PROPERTY]],
        "vehicles": [VehicleResponse.model_validate(v) for v in pending[VEHICLE]],
        "tours": [TourResponse.model_validate(t) for t in pending[TOUR]],
    }


@router.post("/admin/listings/{service_type}/{listing_id}/review")
async def review_listing(
    service_type: str,
    listing_id: int,
    decision: ApprovalDecision,
    current_user: User = Depends(admins_only),
    context: dict = Depends(audit_context),
    service: ListingService = Depends(get_listing_service),
):
    """Approve or reject a listing"""
    listing = service.review_listing(
        service_type, listing_id, decision.approve, decision.reason, current_user, context
    )
    return {
        "id": listing.id,
        "service_type": service_type,
        "approval_status": listing.approval_status,
        "rejection_reason": listing.rejection_reason,
    }
