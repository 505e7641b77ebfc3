import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, nullable=False, default=generate_public_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(30), nullable=False, default="CUSTOMER", index=True)
    phone = Column(String(50), nullable=True)
    avatar = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Provider-level rating aggregate across every listing the user owns
    average_rating = Column(Float, default=0.0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    properties = relationship("Property", back_populates="owner")
    vehicles = relationship("Vehicle", back_populates="owner")
    tours = relationship("Tour", back_populates="owner")
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_role = Column(String(30), nullable=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    data = Column(JSON, nullable=True)
    priority = Column(String(20), default="NORMAL", nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="notifications")


class Commission(Base):
    """Platform commission owed on a confirmed booking"""

    __tablename__ = "commissions"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, nullable=False, index=True)
    booking_type = Column(String(20), nullable=False)
    service_id = Column(Integer, nullable=False)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    percentage = Column(Float, nullable=False)
    currency = Column(String(10), default="PKR", nullable=False)
    status = Column(String(20), default="PENDING", nullable=False, index=True)
    payout_id = Column(Integer, ForeignKey("payouts.id"), nullable=True)
    calculated_at = Column(DateTime, server_default=func.now())
    paid_at = Column(DateTime, nullable=True)

    provider = relationship("User")
    payout = relationship("Payout", back_populates="commissions")


class Payout(Base):
    __tablename__ = "payouts"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(10), default="PKR", nullable=False)
    status = Column(String(20), default="PENDING", nullable=False)
    payment_method = Column(String(30), nullable=False)  # BANK_TRANSFER, PAYPAL, STRIPE
    bank_details = Column(JSON, nullable=True)
    requested_at = Column(DateTime, server_default=func.now())
    processed_at = Column(DateTime, nullable=True)

    commissions = relationship("Commission", back_populates="payout")

    @property
    def commission_ids(self) -> list[int]:
        return [c.id for c in self.commissions]


class AuditLog(Base):
    """Append-only trail of admin and security actions"""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(60), nullable=False, index=True)
    resource_type = Column(String(40), nullable=False, index=True)
    resource_id = Column(String(64), nullable=True)
    details = Column(JSON, nullable=True)
    severity = Column(String(10), default="low", nullable=False)  # low, medium, high, critical
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    # sha256 over the entry as written; lets admins spot edited rows
    hash = Column(String(64), nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)

    user = relationship("User")
