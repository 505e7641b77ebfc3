"""
Role dashboards
Aggregated counters for the customer, provider and admin home screens
"""

import logging
from collections import Counter

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_roles
from ..database import get_db
from ..domain.bookings.repository import BookingRepository
from ..domain.bookings.schemas import BookingSummary
from ..domain.listings.repository import LISTING_MODELS
from ..domain.pricing.engine import round_money
from ..domain.reviews.service import ReviewService
from ..domain.support.engine import ACTIVE_TICKET_STATUSES
from ..models import Commission, User
from ..models_booking import BOOKING_MODELS
from ..models_review import Review
from ..models_support import SupportTicket
from ..shared.constants import (
    ACTIVE_BOOKING_STATUSES,
    ADMIN,
    APPROVAL_PENDING,
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    COMMISSION_CANCELLED,
    COMMISSION_PENDING,
    PROVIDER_ROLES,
)
from ..shared.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

REVENUE_STATUSES = (BOOKING_CONFIRMED, BOOKING_COMPLETED)
UPCOMING_LIMIT = 5


def _revenue(bookings) -> float:
    return round_money(sum(b.total_price for b in bookings if b.status in REVENUE_STATUSES))


@router.get("/customer")
async def customer_dashboard(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    bookings = BookingRepository.get_customer_bookings(db, current_user.id)
    now = utcnow()
    upcoming = sorted(
        (b for b in bookings if b.status in ACTIVE_BOOKING_STATUSES and b.start_at >= now),
        key=lambda b: b.start_at,
    )[:UPCOMING_LIMIT]

    reviews_written = db.query(Review).filter(Review.user_id == current_user.id).count()

    return {
        "total_bookings": len(bookings),
        "bookings_by_status": dict(Counter(b.status for b in bookings)),
        "upcoming_bookings": [BookingSummary.model_validate(b) for b in upcoming],
        "reviews_written": reviews_written,
        "pending_reviews": len(ReviewService(db).get_pending_reviews(current_user)),
    }


@router.get("/provider")
async def provider_dashboard(
    current_user: User = Depends(require_roles(*PROVIDER_ROLES)),
    db: Session = Depends(get_db),
):
    bookings = BookingRepository.get_provider_bookings(db, current_user.id)
    listings = sum(
        db.query(model).filter(model.owner_id == current_user.id).count()
        for model in LISTING_MODELS.values()
    )
    pending_commission = (
        db.query(func.sum(Commission.amount))
        .filter(Commission.provider_id == current_user.id, Commission.status == COMMISSION_PENDING)
        .scalar()
        or 0.0
    )
    open_tickets = (
        db.query(SupportTicket)
        .filter(
            SupportTicket.provider_id == current_user.id,
            SupportTicket.status.in_(ACTIVE_TICKET_STATUSES),
        )
        .count()
    )

    return {
        "listings": listings,
        "total_bookings": len(bookings),
        "bookings_by_status": dict(Counter(b.status for b in bookings)),
        "revenue": _revenue(bookings),
        "average_rating": current_user.average_rating,
        "total_reviews": current_user.total_reviews,
        "pending_commission": round_money(pending_commission),
        "open_support_tickets": open_tickets,
    }


@router.get("/admin")
async def admin_dashboard(
    current_user: User = Depends(require_roles(ADMIN)),
    db: Session = Depends(get_db),
):
    users_by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    pending_listings = {
        service_type: db.query(model).filter(model.approval_status == APPROVAL_PENDING).count()
        for service_type, model in LISTING_MODELS.items()
    }

    bookings_by_status = Counter()
    revenue = 0.0
    for model in BOOKING_MODELS.values():
        for status, count, total in (
            db.query(model.status, func.count(model.id), func.sum(model.total_price))
            .group_by(model.status)
            .all()
        ):
            bookings_by_status[status] += count
            if status in REVENUE_STATUSES:
                revenue += total or 0.0

    commission_total = (
        db.query(func.sum(Commission.amount))
        .filter(Commission.status != COMMISSION_CANCELLED)
        .scalar()
        or 0.0
    )
    open_tickets = (
        db.query(SupportTicket).filter(SupportTicket.status.in_(ACTIVE_TICKET_STATUSES)).count()
    )
    flagged_reviews = db.query(Review).filter(Review.flagged.is_(True)).count()

    return {
        "users_by_role": users_by_role,
        "total_users": sum(users_by_role.values()),
        "pending_listings": pending_listings,
        "bookings_by_status": dict(bookings_by_status),
        "revenue": round_money(revenue),
        "commission_total": round_money(commission_total),
        "open_support_tickets": open_tickets,
        "flagged_reviews": flagged_reviews,
    }
