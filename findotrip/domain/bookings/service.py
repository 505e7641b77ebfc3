"""Booking service - Business logic for property, vehicle and tour bookings"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ...config import DEFAULT_COMMISSION_RATE, REVIEW_REQUEST_TTL_DAYS
from ...email_service import (
    send_booking_confirmation_email,
    send_booking_status_email,
    send_review_invite_email,
)
from ...models import Commission, User
from ...models_booking import (
    BOOKING_NUMBER_PREFIXES,
    PropertyBooking,
    TourBooking,
    VehicleBooking,
)
from ...models_review import ReviewRequest
from ...security_utils import generate_reference
from ...services.notification_service import create_notification, queue_email
from ...shared.constants import (
    APPROVAL_APPROVED,
    BOOKING_CANCELLED,
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    BOOKING_PENDING,
    BOOKING_REFUNDED,
    COMMISSION_CANCELLED,
    NOTIFY_BOOKING_CANCELLED,
    NOTIFY_BOOKING_CONFIRMED,
    NOTIFY_BOOKING_CREATED,
    NOTIFY_BOOKING_STATUS,
    NOTIFY_REVIEW_REQUEST,
    PAYMENT_PAID,
    PAYMENT_PARTIALLY_REFUNDED,
    PAYMENT_PENDING,
    PAYMENT_REFUNDED,
)
from ...shared.sanitization import sanitize_string
from ...shared.timeutils import to_naive_utc, utcnow
from ..availability.repository import AvailabilityRepository
from ..availability.service import AvailabilityService
from ..pricing.service import PricingService
from . import engine
from .repository import BookingRepository
from .schemas import PropertyBookingCreate, TourBookingCreate, VehicleBookingCreate

logger = logging.getLogger(__name__)

STATUS_NOTIFICATIONS = {
    BOOKING_CONFIRMED: (NOTIFY_BOOKING_CONFIRMED, "Booking confirmed"),
    BOOKING_CANCELLED: (NOTIFY_BOOKING_CANCELLED, "Booking cancelled"),
}


def _bookable(listing) -> bool:
    return bool(listing and listing.is_active and listing.approval_status == APPROVAL_APPROVED)


def _format_when(value: datetime) -> str:
    return value.strftime("%d %b %Y %H:%M")


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.inventory = AvailabilityRepository()
        self.availability = AvailabilityService(db)
        self.pricing = PricingService(db)

    # ------------------------------------------------------------------
    # Lookup & access
    # ------------------------------------------------------------------

    def get_booking(self, booking_type: str, booking_id: int):
        booking = self.repo.get_booking(self.db, booking_type, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    @staticmethod
    def _can_view(booking, user: User) -> bool:
        return user.is_admin or user.id in (booking.user_id, booking.provider_id)

    def get_booking_for_user(self, booking_type: str, booking_id: int, user: User):
        booking = self.get_booking(booking_type, booking_id)
        if not self._can_view(booking, user):
            raise HTTPException(status_code=403, detail="You do not have access to this booking")
        return booking

    def get_by_number(self, booking_number: str, user: User):
        booking = self.repo.get_by_number(self.db, booking_number.strip().upper())
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if not self._can_view(booking, user):
            raise HTTPException(status_code=403, detail="You do not have access to this booking")
        return booking

    @staticmethod
    def _check_status_filter(status: Optional[str]) -> Optional[str]:
        if status is None:
            return None
        status = status.upper()
        if status not in engine.BOOKING_STATUSES:
            raise HTTPException(status_code=400, detail=f"Unknown booking status: {status}")
        return status

    def get_customer_bookings(self, user: User, status: Optional[str] = None) -> dict:
        """Every booking the customer made across the three verticals, newest first"""
        bookings = self.repo.get_customer_bookings(
            self.db, user.id, self._check_status_filter(status)
        )
        return {"items": bookings, "count": len(bookings)}

    def get_provider_bookings(self, user: User, status: Optional[str] = None) -> dict:
        bookings = self.repo.get_provider_bookings(
            self.db, user.id, self._check_status_filter(status)
        )
        return {"items": bookings, "count": len(bookings)}

    def get_voucher(self, booking_type: str, booking_id: int, user: User) -> dict:
        booking = self.get_booking_for_user(booking_type, booking_id, user)
        if booking.status not in (BOOKING_CONFIRMED, BOOKING_COMPLETED):
            raise HTTPException(
                status_code=400, detail="Vouchers are only available for confirmed bookings"
            )

        service_name = booking.service_name
        return {
            "booking_number": booking.booking_number,
            "booking_type": booking.kind,
            "service_name": service_name,
            "provider_name": booking.provider.name,
            "customer_name": booking.user.name,
            "start": booking.start_at,
            "end": booking.end_at,
            "status": booking.status,
            "amount": booking.total_price,
            "currency": booking.currency,
            "qr_payload": engine.voucher_qr_payload(
                booking.booking_number, service_name, booking.total_price
            ),
        }

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _new_booking_number(self, booking_type: str) -> str:
        prefix = BOOKING_NUMBER_PREFIXES[booking_type]
        while True:
            number = generate_reference(prefix)
            if not self.repo.number_exists(self.db, booking_type, number):
                return number

    def _finalize_creation(
        self, booking, service, customer: User, background_tasks: Optional[BackgroundTasks]
    ):
        booking.booking_number = self._new_booking_number(booking.kind)
        booking.status = BOOKING_PENDING
        booking.payment_status = PAYMENT_PENDING
        self.db.add(booking)
        self.db.flush()

        action_url = f"/bookings/{booking.kind}/{booking.id}"
        data = {"booking_type": booking.kind, "booking_id": booking.id}
        create_notification(
            self.db,
            customer,
            NOTIFY_BOOKING_CREATED,
            "Booking received",
            f"Your booking {booking.booking_number} for {service.display_name} "
            "has been received and is awaiting confirmation.",
            action_url=action_url,
            data=data,
        )
        create_notification(
            self.db,
            service.owner,
            NOTIFY_BOOKING_CREATED,
            "New booking",
            f"{customer.name} booked {service.display_name} ({booking.booking_number}).",
            action_url=action_url,
            data=data,
            priority="HIGH",
        )
        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            f"✅ {booking.kind.title()} booking {booking.booking_number} created "
            f"for user {customer.id}: {booking.total_price} {booking.currency}"
        )
        queue_email(
            background_tasks,
            send_booking_confirmation_email,
            to=customer.email,
            customer_name=customer.name,
            booking_number=booking.booking_number,
            service_name=service.display_name,
            start=_format_when(booking.start_at),
            end=_format_when(booking.end_at),
            total=booking.total_price,
            currency=booking.currency,
        )
        return booking

    def create_property_booking(
        self,
        data: PropertyBookingCreate,
        user: User,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> PropertyBooking:
        today = utcnow().date()
        if data.check_in < today:
            raise HTTPException(status_code=400, detail="Check-in date cannot be in the past")

        room_type = self.inventory.get_room_type(self.db, data.room_type_id)
        if not room_type or not _bookable(room_type.property):
            raise HTTPException(status_code=404, detail="Property not found")
        accommodation = room_type.property

        max_guests = room_type.max_guests * data.rooms
        if data.guests > max_guests:
            raise HTTPException(
                status_code=400,
                detail=f"{room_type.name} allows at most {max_guests} guest(s) for {data.rooms} room(s)",
            )

        check = self.availability.check_room_availability(
            room_type.id, data.check_in, data.check_out, data.rooms
        )
        if not check["available"]:
            raise HTTPException(status_code=409, detail=check["reason"])

        quote = self.pricing.stay_price(
            room_type.id, data.check_in, data.check_out, data.rooms, booked_on=today
        )

        booking = PropertyBooking(
            user_id=user.id,
            provider_id=accommodation.owner_id,
            property_id=accommodation.id,
            room_type_id=room_type.id,
            check_in=data.check_in,
            check_out=data.check_out,
            guests=data.guests,
            number_of_rooms=data.rooms,
            guest_name=sanitize_string(data.guest_name) or user.name,
            guest_email=data.guest_email or user.email,
            guest_phone=data.guest_phone or user.phone,
            special_requests=sanitize_string(data.special_requests),
            total_price=quote["total"],
            currency=quote["currency"],
            price_breakdown=jsonable_encoder(quote),
        )
        return self._finalize_creation(booking, accommodation, user, background_tasks)

    def create_vehicle_booking(
        self,
        data: VehicleBookingCreate,
        user: User,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> VehicleBooking:
        start, end = to_naive_utc(data.start_date), to_naive_utc(data.end_date)
        if start < utcnow():
            raise HTTPException(status_code=400, detail="Start date cannot be in the past")

        vehicle = self.inventory.get_vehicle(self.db, data.vehicle_id)
        if not _bookable(vehicle):
            raise HTTPException(status_code=404, detail="Vehicle not found")
        if data.driver and not vehicle.driver_available:
            raise HTTPException(status_code=400, detail="This vehicle is not offered with a driver")

        check = self.availability.check_vehicle_availability(vehicle.id, start, end)
        if not check["available"]:
            raise HTTPException(status_code=409, detail=check["reason"])

        quote = self.pricing.vehicle_quote(vehicle.id, start, end, data.insurance, data.driver)

        booking = VehicleBooking(
            user_id=user.id,
            provider_id=vehicle.owner_id,
            vehicle_id=vehicle.id,
            start_date=start,
            end_date=end,
            pickup_location=sanitize_string(data.pickup_location),
            dropoff_location=sanitize_string(data.dropoff_location),
            insurance_selected=data.insurance,
            driver_required=data.driver,
            special_requests=sanitize_string(data.special_requests),
            total_price=quote["total"],
            currency=quote["currency"],
            price_breakdown=jsonable_encoder(quote),
        )
        return self._finalize_creation(booking, vehicle, user, background_tasks)

    def create_tour_booking(
        self,
        data: TourBookingCreate,
        user: User,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> TourBooking:
        if data.tour_date < utcnow().date():
            raise HTTPException(status_code=400, detail="Tour date cannot be in the past")

        tour = self.inventory.get_tour(self.db, data.tour_id)
        if not _bookable(tour):
            raise HTTPException(status_code=404, detail="Tour not found")

        participants = data.adults + data.children
        if participants < tour.min_group_size:
            raise HTTPException(
                status_code=400,
                detail=f"Minimum group size for this tour is {tour.min_group_size}",
            )

        check = self.availability.check_tour_availability(
            tour.id, data.tour_date, data.time_slot, participants
        )
        if not check["available"]:
            raise HTTPException(status_code=409, detail=check["reason"])

        quote = self.pricing.tour_quote(tour.id, data.adults, data.children)

        booking = TourBooking(
            user_id=user.id,
            provider_id=tour.owner_id,
            tour_id=tour.id,
            tour_date=data.tour_date,
            time_slot=data.time_slot,
            participants=participants,
            adults=data.adults,
            children=data.children,
            lead_traveler_name=sanitize_string(data.lead_traveler_name),
            lead_traveler_email=data.lead_traveler_email,
            lead_traveler_phone=data.lead_traveler_phone,
            language=data.language,
            special_requests=sanitize_string(data.special_requests),
            total_price=quote["total"],
            currency=quote["currency"],
            price_breakdown=jsonable_encoder(quote),
        )
        return self._finalize_creation(booking, tour, user, background_tasks)

    # ------------------------------------------------------------------
    # Status workflow
    # ------------------------------------------------------------------

    def apply_status(
        self,
        booking,
        new_status: str,
        background_tasks: Optional[BackgroundTasks] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Move a booking to ``new_status`` and run the side-effects of the move.
        Raises engine.InvalidTransition; the caller commits.
        """
        engine.ensure_transition(booking.status, new_status)
        now = now or utcnow()
        previous = booking.status
        booking.status = new_status

        if new_status == BOOKING_CONFIRMED:
            self._record_confirmation(booking)
        elif new_status == BOOKING_COMPLETED:
            booking.completed_at = now
            self.ensure_review_request(booking, now, background_tasks)
        elif new_status == BOOKING_REFUNDED:
            booking.refund_amount = booking.total_price
            booking.refund_percentage = 100
            booking.payment_status = PAYMENT_REFUNDED

        self._notify_status(booking, background_tasks)
        logger.info(f"📋 Booking {booking.booking_number}: {previous} -> {new_status}")

    def _record_confirmation(self, booking) -> None:
        """Commission for the platform and the service's booking counter"""
        if not self.repo.has_commission(self.db, booking.kind, booking.id):
            self.db.add(
                Commission(
                    booking_id=booking.id,
                    booking_type=booking.kind,
                    service_id=booking.service_id,
                    provider_id=booking.provider_id,
                    amount=engine.commission_amount(booking.total_price, DEFAULT_COMMISSION_RATE),
                    percentage=DEFAULT_COMMISSION_RATE * 100,
                    currency=booking.currency,
                )
            )
        service = booking.service
        service.total_bookings = (service.total_bookings or 0) + 1

    def ensure_review_request(
        self,
        booking,
        now: Optional[datetime] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Optional[ReviewRequest]:
        """Create the review invitation for a completed booking, once"""
        if self.repo.get_review_request(self.db, booking.kind, booking.id):
            return None

        now = now or utcnow()
        request = ReviewRequest(
            booking_id=booking.id,
            booking_type=booking.kind,
            customer_id=booking.user_id,
            provider_id=booking.provider_id,
            service_id=booking.service_id,
            service_type=booking.kind,
            requested_at=now,
            expires_at=now + timedelta(days=REVIEW_REQUEST_TTL_DAYS),
        )
        self.db.add(request)

        create_notification(
            self.db,
            booking.user,
            NOTIFY_REVIEW_REQUEST,
            "How was your trip?",
            f"Tell other travellers about {booking.service_name}.",
            action_url=f"/reviews/new?booking={booking.kind}:{booking.id}",
            data={"booking_type": booking.kind, "booking_id": booking.id},
        )
        queue_email(
            background_tasks,
            send_review_invite_email,
            to=booking.user.email,
            customer_name=booking.user.name,
            service_name=booking.service_name,
            booking_type=booking.kind,
            booking_id=booking.id,
        )
        return request

    def _notify_status(self, booking, background_tasks: Optional[BackgroundTasks]) -> None:
        notification_type, title = STATUS_NOTIFICATIONS.get(
            booking.status, (NOTIFY_BOOKING_STATUS, "Booking updated")
        )
        status_label = booking.status.replace("_", " ").lower()
        create_notification(
            self.db,
            booking.user,
            notification_type,
            title,
            f"Your booking {booking.booking_number} for {booking.service_name} is now {status_label}.",
            action_url=f"/bookings/{booking.kind}/{booking.id}",
            data={
                "booking_type": booking.kind,
                "booking_id": booking.id,
                "status": booking.status,
            },
        )
        queue_email(
            background_tasks,
            send_booking_status_email,
            to=booking.user.email,
            customer_name=booking.user.name,
            booking_number=booking.booking_number,
            service_name=booking.service_name,
            status=booking.status,
        )

    def pay_booking(
        self,
        booking_type: str,
        booking_id: int,
        user: User,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        """Simulated payment: marks the booking paid and confirms it"""
        booking = self.get_booking(booking_type, booking_id)
        if booking.user_id != user.id:
            raise HTTPException(status_code=403, detail="Only the customer can pay for this booking")
        if booking.payment_status != PAYMENT_PENDING:
            raise HTTPException(status_code=400, detail="Booking is already paid")
        if booking.status != BOOKING_PENDING:
            raise HTTPException(
                status_code=400, detail=f"Cannot pay for a {booking.status.lower()} booking"
            )

        now = utcnow()
        booking.payment_status = PAYMENT_PAID
        booking.paid_at = now
        self.apply_status(booking, BOOKING_CONFIRMED, background_tasks, now)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"💳 Payment recorded for booking {booking.booking_number}")
        return booking

    def update_status(
        self,
        booking_type: str,
        booking_id: int,
        new_status: str,
        user: User,
        reason: Optional[str] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        booking = self.get_booking(booking_type, booking_id)
        if not (user.is_admin or booking.provider_id == user.id):
            raise HTTPException(
                status_code=403, detail="Only the provider or an admin can update this booking"
            )

        if new_status == BOOKING_CANCELLED:
            return self.cancel_booking(booking_type, booking_id, user, reason, background_tasks)

        if new_status == BOOKING_REFUNDED and booking.payment_status not in (
            PAYMENT_PAID,
            PAYMENT_PARTIALLY_REFUNDED,
        ):
            raise HTTPException(status_code=400, detail="Only paid bookings can be refunded")

        try:
            self.apply_status(booking, new_status, background_tasks)
        except engine.InvalidTransition as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        self.db.commit()
        self.db.refresh(booking)
        return booking

    def cancel_booking(
        self,
        booking_type: str,
        booking_id: int,
        user: User,
        reason: Optional[str] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        """
        Cancel a pending or confirmed booking.

        Refund policy (paid bookings only), by hours until the booking starts:
        more than 48h -> 100%, more than 24h -> 50%, otherwise nothing.
        """
        booking = self.get_booking(booking_type, booking_id)
        is_customer = booking.user_id == user.id
        if not (is_customer or booking.provider_id == user.id or user.is_admin):
            raise HTTPException(status_code=403, detail="You do not have access to this booking")
        if BOOKING_CANCELLED not in engine.allowed_transitions(booking.status):
            raise HTTPException(
                status_code=400, detail=f"Cannot cancel a {booking.status.lower()} booking"
            )

        now = utcnow()
        percentage = 0
        if booking.payment_status == PAYMENT_PAID:
            percentage = engine.refund_percentage(booking.start_at, now)

        booking.cancelled_at = now
        booking.cancellation_reason = sanitize_string(reason)
        booking.refund_percentage = percentage
        booking.refund_amount = engine.refund_amount(booking.total_price, percentage)
        if percentage == 100:
            booking.payment_status = PAYMENT_REFUNDED
        elif percentage > 0:
            booking.payment_status = PAYMENT_PARTIALLY_REFUNDED

        for commission in self.repo.get_pending_commissions(self.db, booking.kind, booking.id):
            commission.status = COMMISSION_CANCELLED

        self.apply_status(booking, BOOKING_CANCELLED, background_tasks, now)

        if is_customer:
            create_notification(
                self.db,
                booking.provider,
                NOTIFY_BOOKING_CANCELLED,
                "Booking cancelled",
                f"{user.name} cancelled booking {booking.booking_number} for {booking.service_name}.",
                action_url=f"/bookings/{booking.kind}/{booking.id}",
                data={"booking_type": booking.kind, "booking_id": booking.id},
            )

        self.db.commit()
        self.db.refresh(booking)
        logger.info(
            f"🚫 Booking {booking.booking_number} cancelled by user {user.id} "
            f"(refund {percentage}% = {booking.refund_amount})"
        )
        return booking

