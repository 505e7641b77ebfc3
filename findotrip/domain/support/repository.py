"""Support repository - Database operations for tickets, messages and templates"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ...models import User
from ...models_support import SupportMessage, SupportTemplate, SupportTicket
from .engine import ACTIVE_TICKET_STATUSES, INTERNAL_NOTE


class SupportRepository:
    """Repository for support database operations"""

    @staticmethod
    def get_ticket(db: Session, ticket_id: int) -> Optional[SupportTicket]:
        return (
            db.query(SupportTicket)
            .options(selectinload(SupportTicket.messages))
            .filter(SupportTicket.id == ticket_id)
            .first()
        )

    @staticmethod
    def number_exists(db: Session, ticket_number: str) -> bool:
        return (
            db.query(SupportTicket.id).filter(SupportTicket.ticket_number == ticket_number).first()
            is not None
        )

    @staticmethod
    def get_provider_tickets(
        db: Session, provider_id: int, status: Optional[str] = None
    ) -> list[SupportTicket]:
        query = db.query(SupportTicket).filter(SupportTicket.provider_id == provider_id)
        if status:
            query = query.filter(SupportTicket.status == status)
        return query.order_by(SupportTicket.updated_at.desc(), SupportTicket.id.desc()).all()

    @staticmethod
    def get_admin_queue(
        db: Session,
        status: Optional[str] = None,
        category: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to_id: Optional[int] = None,
        provider_role: Optional[str] = None,
        escalated: Optional[bool] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[SupportTicket], int]:
        query = db.query(SupportTicket)
        if status:
            query = query.filter(SupportTicket.status == status)
        if category:
            query = query.filter(SupportTicket.category == category)
        if priority:
            query = query.filter(SupportTicket.priority == priority)
        if assigned_to_id is not None:
            query = query.filter(SupportTicket.assigned_to_id == assigned_to_id)
        if provider_role:
            query = query.join(User, SupportTicket.provider_id == User.id).filter(
                User.role == provider_role
            )
        if escalated is not None:
            query = query.filter(SupportTicket.escalated.is_(escalated))

        total = query.count()
        items = (
            query.order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def get_open_tickets(db: Session) -> list[SupportTicket]:
        return (
            db.query(SupportTicket)
            .filter(SupportTicket.status.in_(ACTIVE_TICKET_STATUSES))
            .order_by(SupportTicket.created_at.asc(), SupportTicket.id.asc())
            .all()
        )

    @staticmethod
    def get_tickets_between(
        db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[SupportTicket]:
        query = db.query(SupportTicket)
        if start:
            query = query.filter(SupportTicket.created_at >= start)
        if end:
            query = query.filter(SupportTicket.created_at <= end)
        return query.all()

    @staticmethod
    def get_message(db: Session, message_id: int) -> Optional[SupportMessage]:
        return db.query(SupportMessage).filter(SupportMessage.id == message_id).first()

    @staticmethod
    def mark_ticket_read(
        db: Session, ticket_id: int, reader_id: int, now: datetime, include_internal: bool = True
    ) -> int:
        """Mark messages from other senders read (caller commits)"""
        query = db.query(SupportMessage).filter(
            SupportMessage.ticket_id == ticket_id,
            SupportMessage.sender_id != reader_id,
            SupportMessage.is_read.is_(False),
        )
        if not include_internal:
            query = query.filter(SupportMessage.type != INTERNAL_NOTE)
        return query.update(
            {SupportMessage.is_read: True, SupportMessage.read_at: now}, synchronize_session=False
        )

    @staticmethod
    def unread_count(db: Session, user: User) -> int:
        query = db.query(func.count(SupportMessage.id)).join(
            SupportTicket, SupportMessage.ticket_id == SupportTicket.id
        ).filter(SupportMessage.sender_id != user.id, SupportMessage.is_read.is_(False))
        if user.is_admin:
            query = query.filter(SupportTicket.assigned_to_id == user.id)
        else:
            query = query.filter(
                SupportTicket.provider_id == user.id, SupportMessage.type != INTERNAL_NOTE
            )
        return query.scalar() or 0

    @staticmethod
    def get_template(db: Session, template_id: int) -> Optional[SupportTemplate]:
        return db.query(SupportTemplate).filter(SupportTemplate.id == template_id).first()

    @staticmethod
    def get_template_by_name(db: Session, name: str) -> Optional[SupportTemplate]:
        return db.query(SupportTemplate).filter(SupportTemplate.name == name).first()

    @staticmethod
    def get_templates(
        db: Session, category: Optional[str] = None, include_inactive: bool = False
    ) -> list[SupportTemplate]:
        query = db.query(SupportTemplate)
        if not include_inactive:
            query = query.filter(SupportTemplate.is_active.is_(True))
        if category:
            query = query.filter(SupportTemplate.category == category)
        return query.order_by(SupportTemplate.usage_count.desc(), SupportTemplate.name.asc()).all()
