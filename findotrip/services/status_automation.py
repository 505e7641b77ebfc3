"""
Automated status transitions for bookings and review requests
Handles confirmed -> completed once a booking's end has passed
Handles pending -> expired for review invitations past their deadline
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.bookings.repository import BookingRepository
from ..domain.bookings.service import BookingService
from ..domain.reviews.repository import ReviewRepository
from ..shared.constants import BOOKING_COMPLETED
from ..shared.timeutils import utcnow

logger = logging.getLogger(__name__)


def complete_finished_bookings(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Mark CONFIRMED bookings whose stay, rental or tour has ended as COMPLETED.
    Should be run as a scheduled job (daily cron).

    Every completion creates a review request. Review invite emails are not
    sent from here; their payloads come back in ``review_invites`` so the
    worker can deliver them.

    Returns:
        dict: Summary of status changes made
    """
    summary = {
        "property_completed": 0,
        "vehicle_completed": 0,
        "tour_completed": 0,
        "review_requests_created": 0,
        "total_updated": 0,
        "review_invites": [],
    }

    try:
        now = now or utcnow()
        service = BookingService(db)

        for booking in BookingRepository.get_finished_confirmed(db, now):
            had_request = BookingRepository.get_review_request(db, booking.kind, booking.id)
            service.apply_status(booking, BOOKING_COMPLETED, now=now)
            summary[f"{booking.kind}_completed"] += 1
            logger.info(f"✅ Booking {booking.booking_number} transitioned: CONFIRMED → COMPLETED")

            if had_request is None:
                summary["review_requests_created"] += 1
                summary["review_invites"].append(
                    {
                        "to": booking.user.email,
                        "customer_name": booking.user.name,
                        "service_name": booking.service_name,
                        "booking_type": booking.kind,
                        "booking_id": booking.id,
                    }
                )

        total = summary["property_completed"] + summary["vehicle_completed"] + summary["tour_completed"]
        if total > 0:
            db.commit()
            summary["total_updated"] = total
            logger.info(f"📊 Booking automation summary: {total} completed")
        else:
            logger.debug("ℹ️ No booking status updates needed")

        return summary

    except Exception as e:
        logger.error(f"❌ Error completing finished bookings: {str(e)}")
        db.rollback()
        raise


def expire_review_requests(db: Session, now: Optional[datetime] = None) -> dict:
    """Mark PENDING review requests past their deadline as EXPIRED"""
    try:
        expired = ReviewRepository.expire_requests(db, now or utcnow())
        if expired:
            db.commit()
            logger.info(f"⌛ Expired {expired} review requests")
        return {"expired": expired}

    except Exception as e:
        logger.error(f"❌ Error expiring review requests: {str(e)}")
        db.rollback()
        raise
