"""Booking router - booking lifecycle endpoints"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import User
from ...shared.constants import ADMIN, CUSTOMER, PROVIDER_ROLES
from .schemas import (
    BOOKING_TYPE_PATTERN,
    BookingCancel,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
    PropertyBookingCreate,
    TourBookingCreate,
    VehicleBookingCreate,
    VoucherResponse,
)
from .service import BookingService

router = APIRouter(prefix="/bookings", tags=["Bookings"])

customers_only = require_roles(CUSTOMER)
providers_and_admins = require_roles(*PROVIDER_ROLES, ADMIN)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


@router.post("/property", response_model=BookingResponse, status_code=201)
async def create_property_booking(
    data: PropertyBookingCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(customers_only),
    service: BookingService = Depends(get_booking_service),
):
    """Book one or more units of a room type"""
    return service.create_property_booking(data, current_user, background_tasks)


@router.post("/vehicle", response_model=BookingResponse, status_code=201)
async def create_vehicle_booking(
    data: VehicleBookingCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(customers_only),
    service: BookingService = Depends(get_booking_service),
):
    return service.create_vehicle_booking(data, current_user, background_tasks)


@router.post("/tour", response_model=BookingResponse, status_code=201)
async def create_tour_booking(
    data: TourBookingCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(customers_only),
    service: BookingService = Depends(get_booking_service),
):
    return service.create_tour_booking(data, current_user, background_tasks)


@router.get("", response_model=BookingListResponse)
async def my_bookings(
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """The current user's bookings across properties, vehicles and tours"""
    return service.get_customer_bookings(current_user, status)


@router.get("/provider", response_model=BookingListResponse)
async def provider_bookings(
    status: Optional[str] = Query(None),
    current_user: User = Depends(providers_and_admins),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_provider_bookings(current_user, status)


@router.get("/number/{booking_number}", response_model=BookingResponse)
async def get_booking_by_number(
    booking_number: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_by_number(booking_number, current_user)


@router.get("/{booking_type}/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    booking_type: str = Path(..., pattern=BOOKING_TYPE_PATTERN),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_booking_for_user(booking_type, booking_id, current_user)


@router.get("/{booking_type}/{booking_id}/voucher", response_model=VoucherResponse)
async def get_voucher(
    booking_id: int,
    booking_type: str = Path(..., pattern=BOOKING_TYPE_PATTERN),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_voucher(booking_type, booking_id, current_user)


@router.post("/{booking_type}/{booking_id}/pay", response_model=BookingResponse)
async def pay_booking(
    booking_id: int,
    background_tasks: BackgroundTasks,
    booking_type: str = Path(..., pattern=BOOKING_TYPE_PATTERN),
    current_user: User = Depends(customers_only),
    service: BookingService = Depends(get_booking_service),
):
    return service.pay_booking(booking_type, booking_id, current_user, background_tasks)


@router.patch("/{booking_type}/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    background_tasks: BackgroundTasks,
    booking_type: str = Path(..., pattern=BOOKING_TYPE_PATTERN),
    current_user: User = Depends(providers_and_admins),
    service: BookingService = Depends(get_booking_service),
):
    return service.update_status(
        booking_type, booking_id, data.status, current_user, data.reason, background_tasks
    )


@router.post("/{booking_type}/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int,
    data: BookingCancel,
    background_tasks: BackgroundTasks,
    booking_type: str = Path(..., pattern=BOOKING_TYPE_PATTERN),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.cancel_booking(
        booking_type, booking_id, current_user, data.reason, background_tasks
    )
