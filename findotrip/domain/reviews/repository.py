"""Review repository - Database operations for reviews and review requests"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models_review import Review, ReviewRequest
from ...shared.constants import REVIEW_REQUEST_EXPIRED, REVIEW_REQUEST_PENDING


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_review(db: Session, review_id: int) -> Optional[Review]:
        return db.query(Review).filter(Review.id == review_id).first()

    @staticmethod
    def get_for_booking(
        db: Session, user_id: int, booking_type: str, booking_id: int
    ) -> Optional[Review]:
        return (
            db.query(Review)
            .filter(
                Review.user_id == user_id,
                Review.booking_type == booking_type,
                Review.booking_id == booking_id,
            )
            .first()
        )

    @staticmethod
    def active_ratings(db: Session, service_type: str, service_id: int) -> list[int]:
        rows = (
            db.query(Review.rating)
            .filter(
                Review.service_type == service_type,
                Review.service_id == service_id,
                Review.is_active.is_(True),
            )
            .all()
        )
        return [row.rating for row in rows]

    @staticmethod
    def active_ratings_for_provider(db: Session, provider_id: int) -> list[int]:
        """Raw ratings of every active review across all of a provider's services"""
        rows = (
            db.query(Review.rating)
            .filter(Review.provider_id == provider_id, Review.is_active.is_(True))
            .all()
        )
        return [row.rating for row in rows]

    @staticmethod
    def get_service_reviews(
        db: Session, service_type: str, service_id: int, skip: int = 0, limit: int = 10
    ) -> tuple[list[Review], int]:
        query = db.query(Review).filter(
            Review.service_type == service_type,
            Review.service_id == service_id,
            Review.is_active.is_(True),
        )
        total = query.count()
        items = (
            query.order_by(Review.created_at.desc(), Review.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def get_user_reviews(db: Session, user_id: int) -> list[Review]:
        return (
            db.query(Review)
            .filter(Review.user_id == user_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )

    @staticmethod
    def get_provider_reviews(db: Session, provider_id: int) -> list[Review]:
        return (
            db.query(Review)
            .filter(Review.provider_id == provider_id, Review.is_active.is_(True))
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )

    @staticmethod
    def get_flagged(db: Session) -> list[Review]:
        return (
            db.query(Review)
            .filter(Review.flagged.is_(True))
            .order_by(Review.updated_at.desc(), Review.id.desc())
            .all()
        )

    @staticmethod
    def reviewed_bookings(db: Session, user_id: int) -> set[tuple[str, int]]:
        rows = db.query(Review.booking_type, Review.booking_id).filter(Review.user_id == user_id).all()
        return {(row.booking_type, row.booking_id) for row in rows}

    @staticmethod
    def get_pending_request(db: Session, booking_type: str, booking_id: int) -> Optional[ReviewRequest]:
        return (
            db.query(ReviewRequest)
            .filter(
                ReviewRequest.booking_type == booking_type,
                ReviewRequest.booking_id == booking_id,
                ReviewRequest.status == REVIEW_REQUEST_PENDING,
            )
            .first()
        )

    @staticmethod
    def get_customer_requests(db: Session, customer_id: int, now: datetime) -> list[ReviewRequest]:
        return (
            db.query(ReviewRequest)
            .filter(
                ReviewRequest.customer_id == customer_id,
                ReviewRequest.status == REVIEW_REQUEST_PENDING,
                ReviewRequest.expires_at > now,
            )
            .order_by(ReviewRequest.requested_at.desc(), ReviewRequest.id.desc())
            .all()
        )

    @staticmethod
    def request_counts(db: Session, provider_id: int) -> dict[str, int]:
        rows = (
            db.query(ReviewRequest.status, func.count(ReviewRequest.id))
            .filter(ReviewRequest.provider_id == provider_id)
            .group_by(ReviewRequest.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def expire_requests(db: Session, now: datetime) -> int:
        """Mark overdue PENDING requests EXPIRED (caller commits)"""
        return (
            db.query(ReviewRequest)
            .filter(
                ReviewRequest.status == REVIEW_REQUEST_PENDING,
                ReviewRequest.expires_at < now,
            )
            .update({ReviewRequest.status: REVIEW_REQUEST_EXPIRED}, synchronize_session=False)
        )
