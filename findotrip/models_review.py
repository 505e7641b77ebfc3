"""
Review and rating models
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "booking_type", "booking_id", name="uq_review_per_booking"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    booking_id = Column(Integer, nullable=False)
    booking_type = Column(String(20), nullable=False)
    service_id = Column(Integer, nullable=False, index=True)
    service_type = Column(String(20), nullable=False, index=True)

    rating = Column(Integer, nullable=False)  # 1..5
    title = Column(String(255), nullable=True)
    comment = Column(Text, nullable=False)
    # Optional category ratings (1..5)
    cleanliness_rating = Column(Integer, nullable=True)
    accuracy_rating = Column(Integer, nullable=True)
    communication_rating = Column(Integer, nullable=True)
    location_rating = Column(Integer, nullable=True)
    value_rating = Column(Integer, nullable=True)
    service_rating = Column(Integer, nullable=True)
    pros = Column(JSON, default=list, nullable=True)
    cons = Column(JSON, default=list, nullable=True)
    images = Column(JSON, default=list, nullable=True)

    verified = Column(Boolean, default=False, nullable=False)
    reviewer_name = Column(String(255), nullable=False, default="Anonymous")
    reviewer_avatar = Column(String(500), nullable=True)
    stay_duration = Column(Integer, nullable=True)  # nights, property reviews only

    owner_response = Column(Text, nullable=True)
    owner_response_at = Column(DateTime, nullable=True)

    # Moderation - only active reviews count toward ratings
    is_active = Column(Boolean, default=True, nullable=False)
    flagged = Column(Boolean, default=False, nullable=False)
    flag_reason = Column(Text, nullable=True)
    moderated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    moderated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    author = relationship("User", foreign_keys=[user_id])
    provider = relationship("User", foreign_keys=[provider_id])


class ReviewRequest(Base):
    """Invitation to review a completed booking"""

    __tablename__ = "review_requests"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, nullable=False)
    booking_type = Column(String(20), nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    service_id = Column(Integer, nullable=False)
    service_type = Column(String(20), nullable=False)
    status = Column(String(20), default="PENDING", nullable=False, index=True)
    requested_at = Column(DateTime, server_default=func.now())
    expires_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)
