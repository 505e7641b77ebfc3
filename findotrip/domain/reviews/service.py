"""Review service - reviews, rating aggregation and review requests"""

import logging
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from ...config import RATING_ALERT_THRESHOLD
from ...email_service import send_new_review_email, send_rating_alert_email
from ...models import User
from ...models_review import Review
from ...services.audit_service import AUDIT_REVIEW_REMOVED, AUDIT_REVIEW_RESTORED, record_audit
from ...services.notification_service import create_notification, queue_email
from ...shared.constants import (
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    NOTIFY_RATING_ALERT,
    NOTIFY_REVIEW_RECEIVED,
    PROPERTY,
    REVIEW_REQUEST_COMPLETED,
    REVIEW_REQUEST_EXPIRED,
    REVIEW_REQUEST_PENDING,
)
from ...shared.sanitization import sanitize_list, sanitize_string
from ...shared.timeutils import utcnow
from ...shared.validators import validate_rating
from ..bookings.repository import BookingRepository
from ..listings.repository import ListingRepository
from . import engine
from .repository import ReviewRepository
from .schemas import CATEGORY_RATING_FIELDS, ReviewCreate

logger = logging.getLogger(__name__)

REVIEWABLE_STATUSES = (BOOKING_CONFIRMED, BOOKING_COMPLETED)


class ReviewService:
    """Service layer for reviews and ratings"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository()
        self.bookings = BookingRepository()
        self.listings = ListingRepository()

    def get_review(self, review_id: int) -> Review:
        review = self.repo.get_review(self.db, review_id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")
        return review

    # ------------------------------------------------------------------
    # Rating aggregation
    # ------------------------------------------------------------------

    def recompute_ratings(self, service_type: str, service_id: int) -> Optional[User]:
        """
        Refresh a service's rating/review_count from its active reviews, then
        the owner's average over the raw ratings of all their active reviews.
        Returns the provider; the caller commits.
        """
        self.db.flush()
        service = self.listings.get_listing(self.db, service_type, service_id)
        if service is None:
            logger.warning(f"⚠️ Rating recompute skipped: {service_type} {service_id} not found")
            return None

        service.rating, service.review_count = engine.service_rating(
            self.repo.active_ratings(self.db, service_type, service_id)
        )

        provider = service.owner
        provider.average_rating, provider.total_reviews = engine.service_rating(
            self.repo.active_ratings_for_provider(self.db, provider.id)
        )

        logger.debug(
            f"⭐ {service_type} {service_id}: {service.rating} ({service.review_count}); "
            f"provider {provider.id}: {provider.average_rating} ({provider.total_reviews})"
        )
        return provider

    def get_summary(self, service_type: str, service_id: int) -> dict:
        ratings = self.repo.active_ratings(self.db, service_type, service_id)
        average, total = engine.service_rating(ratings)
        return {
            "total": total,
            "average": average,
            "breakdown": engine.rating_breakdown(ratings),
        }

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @staticmethod
    def _check_ratings(data: ReviewCreate) -> None:
        try:
            if data.rating is None or not 1 <= data.rating <= 5:
                raise ValueError("Rating must be between 1 and 5")
            for field in CATEGORY_RATING_FIELDS:
                validate_rating(getattr(data, field), field)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    def create_review(
        self,
        data: ReviewCreate,
        user: User,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Review:
        self._check_ratings(data)

        booking = self.bookings.get_booking(self.db, data.booking_type, data.booking_id)
        if not booking or booking.user_id != user.id:
            raise HTTPException(status_code=404, detail="Booking not found")
        if booking.status not in REVIEWABLE_STATUSES:
            raise HTTPException(
                status_code=400, detail="Only confirmed or completed bookings can be reviewed"
            )
        if self.repo.get_for_booking(self.db, user.id, booking.kind, booking.id):
            raise HTTPException(status_code=409, detail="You have already reviewed this booking")

        now = utcnow()
        provider = booking.provider
        previous_average, previous_total = provider.average_rating, provider.total_reviews

        review = Review(
            user_id=user.id,
            provider_id=booking.provider_id,
            booking_id=booking.id,
            booking_type=booking.kind,
            service_id=booking.service_id,
            service_type=booking.kind,
            rating=data.rating,
            title=sanitize_string(data.title),
            comment=sanitize_string(data.comment),
            pros=sanitize_list(data.pros),
            cons=sanitize_list(data.cons),
            images=data.images,
            verified=booking.status == BOOKING_COMPLETED or booking.end_at < now,
            reviewer_name=user.name or "Anonymous",
            reviewer_avatar=user.avatar,
            stay_duration=booking.nights if booking.kind == PROPERTY else None,
        )
        for field in CATEGORY_RATING_FIELDS:
            setattr(review, field, getattr(data, field))
        self.db.add(review)

        self.recompute_ratings(booking.kind, booking.service_id)

        request = self.repo.get_pending_request(self.db, booking.kind, booking.id)
        if request:
            request.status = REVIEW_REQUEST_COMPLETED
            request.completed_at = now

        service_name = booking.service_name
        create_notification(
            self.db,
            provider,
            NOTIFY_REVIEW_RECEIVED,
            "New review received",
            f"{service_name} received a new review ({data.rating}/5)",
            action_url=f"/dashboard/reviews?service={booking.kind}:{booking.service_id}",
            data={"service_type": booking.kind, "service_id": booking.service_id},
        )
        queue_email(
            background_tasks,
            send_new_review_email,
            to=provider.email,
            provider_name=provider.name,
            service_name=service_name,
            rating=data.rating,
            comment=review.comment,
        )

        if engine.should_alert(
            previous_average,
            previous_total,
            provider.average_rating,
            provider.total_reviews,
            RATING_ALERT_THRESHOLD,
        ):
            logger.warning(
                f"⚠️ Provider {provider.id} average dropped to {provider.average_rating}"
            )
            create_notification(
                self.db,
                provider,
                NOTIFY_RATING_ALERT,
                "Your rating needs attention",
                f"Your average rating is now {provider.average_rating}, "
                f"below {RATING_ALERT_THRESHOLD}.",
                action_url="/dashboard/reviews",
                data={"average_rating": provider.average_rating},
                priority="HIGH",
            )
            queue_email(
                background_tasks,
                send_rating_alert_email,
                to=provider.email,
                provider_name=provider.name,
                average_rating=provider.average_rating,
                threshold=RATING_ALERT_THRESHOLD,
            )

        self.db.commit()
        self.db.refresh(review)
        logger.info(f"✅ Review {review.id} created for {booking.kind} {booking.service_id}")
        return review

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def get_service_reviews(
        self, service_type: str, service_id: int, page: int = 1, limit: int = 10
    ) -> dict:
        items, total = self.repo.get_service_reviews(
            self.db, service_type, service_id, skip=(page - 1) * limit, limit=limit
        )
        return {"items": items, "total": total, "page": page, "limit": limit}

    def get_user_reviews(self, user: User) -> list[Review]:
        return self.repo.get_user_reviews(self.db, user.id)

    def get_pending_reviews(self, user: User) -> list:
        """Bookings the user can review now: finished or completed, not yet reviewed"""
        now = utcnow()
        reviewed = self.repo.reviewed_bookings(self.db, user.id)
        return [
            booking
            for booking in self.bookings.get_customer_bookings(self.db, user.id)
            if booking.status in REVIEWABLE_STATUSES
            and (booking.status == BOOKING_COMPLETED or booking.end_at < now)
            and (booking.kind, booking.id) not in reviewed
        ]

    def get_pending_requests(self, user: User) -> list:
        return self.repo.get_customer_requests(self.db, user.id, utcnow())

    def get_flagged_reviews(self) -> list[Review]:
        return self.repo.get_flagged(self.db)

    # ------------------------------------------------------------------
    # Reply / flag / moderate / delete
    # ------------------------------------------------------------------

    def reply(self, review_id: int, user: User, response: str) -> Review:
        review = self.get_review(review_id)
        if review.provider_id != user.id:
            raise HTTPException(status_code=403, detail="Only the provider can reply to this review")

        review.owner_response = sanitize_string(response)
        review.owner_response_at = utcnow()
        self.db.commit()
        self.db.refresh(review)
        return review

    def flag(self, review_id: int, user: User, reason: str) -> Review:
        review = self.get_review(review_id)
        review.flagged = True
        review.flag_reason = sanitize_string(reason)
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"🚩 Review {review_id} flagged by user {user.id}")
        return review

    def moderate(
        self, review_id: int, admin: User, remove: bool, context: Optional[dict] = None
    ) -> Review:
        """Hide a review (and keep it flagged) or restore it; ratings follow"""
        review = self.get_review(review_id)
        if remove:
            review.is_active = False
            review.flagged = True
        else:
            review.is_active = True
            review.flagged = False
            review.flag_reason = None
        review.moderated_by = admin.id
        review.moderated_at = utcnow()

        self.recompute_ratings(review.service_type, review.service_id)
        record_audit(
            self.db,
            admin,
            AUDIT_REVIEW_REMOVED if remove else AUDIT_REVIEW_RESTORED,
            "review",
            review.id,
            details={
                "service_type": review.service_type,
                "service_id": review.service_id,
                "flag_reason": review.flag_reason,
            },
            severity="medium",
            context=context,
        )
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"🛡️ Review {review_id} {'removed' if remove else 'restored'} by admin {admin.id}")
        return review

    def delete_review(self, review_id: int, user: User) -> dict:
        review = self.get_review(review_id)
        if review.user_id != user.id:
            raise HTTPException(status_code=403, detail="You can only delete your own reviews")

        service_type, service_id = review.service_type, review.service_id
        self.db.delete(review)
        self.recompute_ratings(service_type, service_id)
        self.db.commit()
        return {"success": True}

    # ------------------------------------------------------------------
    # Provider analytics
    # ------------------------------------------------------------------

    def request_stats(self, provider: User) -> dict:
        counts = self.repo.request_counts(self.db, provider.id)
        total = sum(counts.values())
        completed = counts.get(REVIEW_REQUEST_COMPLETED, 0)
        return {
            "total_requests": total,
            "completed_requests": completed,
            "pending_requests": counts.get(REVIEW_REQUEST_PENDING, 0),
            "expired_requests": counts.get(REVIEW_REQUEST_EXPIRED, 0),
            "completion_rate": round(completed / total * 100) if total else 0,
        }

    def provider_analytics(self, provider: User) -> dict:
        reviews = self.repo.get_provider_reviews(self.db, provider.id)

        by_service: dict[tuple[str, int], list[int]] = {}
        for review in reviews:
            by_service.setdefault((review.service_type, review.service_id), []).append(review.rating)

        services = []
        for (service_type, service_id), ratings in by_service.items():
            listing = self.listings.get_listing(self.db, service_type, service_id)
            average, count = engine.service_rating(ratings)
            services.append(
                {
                    "service_type": service_type,
                    "service_id": service_id,
                    "service_name": listing.display_name if listing else "",
                    "average_rating": average,
                    "review_count": count,
                }
            )
        services.sort(key=lambda s: (-s["review_count"], s["service_type"], s["service_id"]))

        responded = sum(1 for r in reviews if r.owner_response)
        return {
            "average_rating": provider.average_rating,
            "total_reviews": provider.total_reviews,
            "breakdown": engine.rating_breakdown(r.rating for r in reviews),
            "services": services,
            "monthly_trend": engine.monthly_counts(r.created_at for r in reviews),
            "response_rate": engine.response_rate(responded, len(reviews)),
            "review_requests": self.request_stats(provider),
        }
