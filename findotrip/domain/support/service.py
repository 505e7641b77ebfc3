"""Support service - provider support tickets, chat messages and canned responses"""

import logging
from collections import Counter
from datetime import datetime
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_support_ticket_email
from ...models import User
from ...models_support import SupportMessage, SupportTemplate, SupportTicket
from ...security_utils import generate_reference
from ...services.notification_service import create_notification, notify_admins, queue_email
from ...shared.constants import (
    NOTIFY_SUPPORT_MESSAGE_RECEIVED,
    NOTIFY_SUPPORT_TICKET_CREATED,
    NOTIFY_SUPPORT_TICKET_UPDATED,
    PROVIDER_ROLES,
)
from ...shared.sanitization import sanitize_list, sanitize_string
from ...shared.timeutils import utcnow
from . import engine
from .repository import SupportRepository
from .schemas import MessageCreate, TemplateCreate, TemplateUpdate, TicketCreate

logger = logging.getLogger(__name__)

TICKET_NUMBER_PREFIX = "ST"


class SupportService:
    """Service layer for the provider support workflow"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SupportRepository()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get_ticket(self, ticket_id: int) -> SupportTicket:
        ticket = self.repo.get_ticket(self.db, ticket_id)
        if not ticket:
            raise HTTPException(status_code=404, detail="Support ticket not found")
        return ticket

    @staticmethod
    def _check_access(ticket: SupportTicket, user: User) -> None:
        if not (user.is_admin or ticket.provider_id == user.id):
            raise HTTPException(status_code=403, detail="You do not have access to this ticket")

    def get_ticket_for_user(self, ticket_id: int, user: User) -> SupportTicket:
        ticket = self.get_ticket(ticket_id)
        self._check_access(ticket, user)
        return ticket

    @staticmethod
    def visible_messages(ticket: SupportTicket, user: User) -> list[SupportMessage]:
        """Internal notes are for admins only"""
        if user.is_admin:
            return list(ticket.messages)
        return [m for m in ticket.messages if m.type != engine.INTERNAL_NOTE]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _new_ticket_number(self) -> str:
        while True:
            number = generate_reference(TICKET_NUMBER_PREFIX)
            if not self.repo.number_exists(self.db, number):
                return number

    def _system_message(
        self, ticket: SupportTicket, actor: User, content: str, action: str, **details
    ) -> SupportMessage:
        message = SupportMessage(
            ticket_id=ticket.id,
            sender_id=actor.id,
            content=content,
            type=engine.SYSTEM,
            system_data={"action": action, **details},
        )
        self.db.add(message)
        ticket.last_message_at = utcnow()
        return message

    def _notify_provider(
        self,
        ticket: SupportTicket,
        notification_type: str,
        title: str,
        update: str,
        background_tasks: Optional[BackgroundTasks],
    ) -> None:
        provider = ticket.provider
        create_notification(
            self.db,
            provider,
            notification_type,
            title,
            update,
            action_url=f"/dashboard/support/{ticket.id}",
            data={"ticket_id": ticket.id, "ticket_number": ticket.ticket_number},
        )
        queue_email(
            background_tasks,
            send_support_ticket_email,
            to=provider.email,
            provider_name=provider.name,
            ticket_number=ticket.ticket_number,
            ticket_title=ticket.title,
            update=update,
        )

    def _notify_support_team(
        self, ticket: SupportTicket, notification_type: str, title: str, message: str, priority: str = "NORMAL"
    ) -> None:
        """The assigned admin when there is one, otherwise every admin"""
        action_url = f"/admin/support/{ticket.id}"
        data = {"ticket_id": ticket.id, "ticket_number": ticket.ticket_number}
        if ticket.assigned_to is not None:
            create_notification(
                self.db, ticket.assigned_to, notification_type, title, message, action_url, data, priority
            )
        else:
            notify_admins(self.db, notification_type, title, message, action_url, data, priority)

    def _notify_counterparty(
        self,
        ticket: SupportTicket,
        sender: User,
        content: str,
        background_tasks: Optional[BackgroundTasks],
    ) -> None:
        preview = content[:100]
        if sender.id == ticket.provider_id:
            self._notify_support_team(
                ticket,
                NOTIFY_SUPPORT_MESSAGE_RECEIVED,
                "New support message",
                f"{sender.name} replied on {ticket.ticket_number}: {preview}",
            )
        else:
            self._notify_provider(
                ticket,
                NOTIFY_SUPPORT_MESSAGE_RECEIVED,
                "New support message",
                f"Support replied on {ticket.ticket_number}: {preview}",
                background_tasks,
            )

    # ------------------------------------------------------------------
    # Tickets
    # ------------------------------------------------------------------

    def create_ticket(self, data: TicketCreate, user: User) -> SupportTicket:
        if user.role not in PROVIDER_ROLES:
            raise HTTPException(
                status_code=403, detail="Only service providers can open support tickets"
            )

        ticket = SupportTicket(
            ticket_number=self._new_ticket_number(),
            title=sanitize_string(data.title),
            description=sanitize_string(data.description),
            category=data.category,
            priority=data.priority,
            status=engine.NEW,
            provider_id=user.id,
            related_service_id=data.related_service_id,
            related_service_type=data.related_service_type,
        )
        self.db.add(ticket)
        self.db.flush()

        self._system_message(
            ticket,
            user,
            f"Support ticket created: {ticket.title}",
            "ticket_created",
            category=ticket.category,
            priority=ticket.priority,
        )
        notify_admins(
            self.db,
            NOTIFY_SUPPORT_TICKET_CREATED,
            "New support ticket",
            f"New support ticket from {user.name}: {ticket.title}",
            action_url=f"/admin/support/{ticket.id}",
            data={
                "ticket_id": ticket.id,
                "ticket_number": ticket.ticket_number,
                "category": ticket.category,
                "priority": ticket.priority,
            },
            priority="HIGH" if ticket.priority in (engine.HIGH, engine.URGENT) else "NORMAL",
        )
        self.db.commit()
        self.db.refresh(ticket)
        logger.info(f"🎫 Support ticket {ticket.ticket_number} opened by provider {user.id}")
        return ticket

    def get_provider_tickets(self, user: User, status: Optional[str] = None) -> list[SupportTicket]:
        return self.repo.get_provider_tickets(self.db, user.id, status)

    def get_admin_queue(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to_id: Optional[int] = None,
        provider_role: Optional[str] = None,
        escalated: Optional[bool] = None,
        page: int = 1,
        limit: int = 50,
    ) -> dict:
        items, total = self.repo.get_admin_queue(
            self.db,
            status=status,
            category=category,
            priority=priority,
            assigned_to_id=assigned_to_id,
            provider_role=provider_role,
            escalated=escalated,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return {"items": items, "total": total, "page": page, "limit": limit}

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _post_message(
        self,
        ticket: SupportTicket,
        sender: User,
        content: str,
        message_type: str,
        attachments: Optional[list] = None,
        template_id: Optional[int] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> SupportMessage:
        if ticket.status == engine.CLOSED:
            raise HTTPException(status_code=400, detail="Cannot add messages to a closed ticket")

        now = utcnow()
        message = SupportMessage(
            ticket_id=ticket.id,
            sender_id=sender.id,
            content=content,
            type=message_type,
            attachments=attachments or [],
            template_id=template_id,
        )
        self.db.add(message)
        ticket.last_message_at = now

        if message_type != engine.INTERNAL_NOTE:
            if sender.is_admin:
                if ticket.first_response_at is None:
                    ticket.first_response_at = now
                if ticket.status == engine.NEW:
                    ticket.status = engine.OPEN
            elif ticket.status == engine.WAITING_ON_PROVIDER:
                ticket.status = engine.IN_PROGRESS
            self._notify_counterparty(ticket, sender, content, background_tasks)

        self.db.commit()
        self.db.refresh(message)
        return message

    def add_message(
        self,
        ticket_id: int,
        data: MessageCreate,
        user: User,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> SupportMessage:
        ticket = self.get_ticket_for_user(ticket_id, user)
        if data.internal and not user.is_admin:
            raise HTTPException(status_code=403, detail="Only admins can add internal notes")

        message_type = engine.INTERNAL_NOTE if data.internal else engine.TEXT
        return self._post_message(
            ticket,
            user,
            sanitize_string(data.content),
            message_type,
            attachments=sanitize_list(data.attachments),
            background_tasks=background_tasks,
        )

    def send_template(
        self,
        ticket_id: int,
        template_id: int,
        admin: User,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> SupportMessage:
        """Send a canned response with its placeholders filled in"""
        ticket = self.get_ticket(ticket_id)
        template = self.repo.get_template(self.db, template_id)
        if not template or not template.is_active:
            raise HTTPException(status_code=404, detail="Template not found")

        content = engine.render_template(
            template.content,
            {
                "provider_name": ticket.provider.name,
                "ticket_number": ticket.ticket_number,
                "ticket_title": ticket.title,
                "admin_name": admin.name,
            },
        )
        template.usage_count = (template.usage_count or 0) + 1
        return self._post_message(
            ticket,
            admin,
            content,
            engine.TEMPLATE,
            template_id=template.id,
            background_tasks=background_tasks,
        )

    def mark_message_read(self, message_id: int, user: User) -> SupportMessage:
        message = self.repo.get_message(self.db, message_id)
        if not message:
            raise HTTPException(status_code=404, detail="Message not found")
        ticket = self.get_ticket_for_user(message.ticket_id, user)
        if message.type == engine.INTERNAL_NOTE and not user.is_admin:
            raise HTTPException(status_code=404, detail="Message not found")

        if message.sender_id != user.id and not message.is_read:
            message.is_read = True
            message.read_at = utcnow()
            self.db.commit()
            self.db.refresh(message)
        logger.debug(f"Message {message_id} on ticket {ticket.ticket_number} read by {user.id}")
        return message

    def mark_ticket_read(self, ticket_id: int, user: User) -> dict:
        ticket = self.get_ticket_for_user(ticket_id, user)
        updated = self.repo.mark_ticket_read(
            self.db, ticket.id, user.id, utcnow(), include_internal=user.is_admin
        )
        self.db.commit()
        return {"marked_read": updated}

    def unread_count(self, user: User) -> int:
        return self.repo.unread_count(self.db, user)

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def change_status(
        self,
        ticket_id: int,
        new_status: str,
        user: User,
        resolution: Optional[str] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> SupportTicket:
        """
        Admins drive the workflow. Providers may only close or reopen their
        own ticket once it has been resolved.
        """
        ticket = self.get_ticket_for_user(ticket_id, user)
        if not user.is_admin and not (
            ticket.status == engine.RESOLVED and new_status in (engine.CLOSED, engine.OPEN)
        ):
            raise HTTPException(
                status_code=403, detail="Providers can only close or reopen a resolved ticket"
            )

        try:
            engine.ensure_transition(ticket.status, new_status)
        except engine.InvalidTransition as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        now = utcnow()
        previous = ticket.status
        ticket.status = new_status
        if new_status == engine.RESOLVED:
            ticket.resolution = sanitize_string(resolution)
            ticket.resolved_at = now
            ticket.resolved_by = user.id
        elif new_status == engine.CLOSED:
            ticket.closed_at = now
        elif previous == engine.RESOLVED and new_status == engine.OPEN:
            ticket.resolved_at = None
            ticket.resolved_by = None

        self._system_message(
            ticket,
            user,
            f"Ticket status changed to: {new_status}",
            "status_changed",
            previous_status=previous,
            new_status=new_status,
            resolution=ticket.resolution if new_status == engine.RESOLVED else None,
        )

        update = f"Your support ticket status has been updated to: {new_status}"
        if user.id == ticket.provider_id:
            self._notify_support_team(
                ticket,
                NOTIFY_SUPPORT_TICKET_UPDATED,
                "Support ticket updated",
                f"{user.name} moved {ticket.ticket_number} to {new_status}",
            )
        else:
            self._notify_provider(
                ticket, NOTIFY_SUPPORT_TICKET_UPDATED, "Support ticket updated", update, background_tasks
            )

        self.db.commit()
        self.db.refresh(ticket)
        logger.info(f"🎫 Ticket {ticket.ticket_number}: {previous} -> {new_status} by user {user.id}")
        return ticket

    def assign(self, ticket_id: int, admin_id: int, actor: User) -> SupportTicket:
        ticket = self.get_ticket(ticket_id)
        if ticket.status == engine.CLOSED:
            raise HTTPException(status_code=400, detail="Closed tickets cannot be assigned")

        assignee = self.db.query(User).filter(User.id == admin_id).first()
        if not assignee or not assignee.is_admin or not assignee.is_active:
            raise HTTPException(status_code=400, detail="Tickets can only be assigned to admins")

        ticket.assigned_to_id = assignee.id
        if ticket.status in (engine.NEW, engine.OPEN):
            ticket.status = engine.IN_PROGRESS

        self._system_message(
            ticket,
            actor,
            f"Ticket assigned to: {assignee.name}",
            "ticket_assigned",
            assigned_to=assignee.id,
        )
        if assignee.id != actor.id:
            create_notification(
                self.db,
                assignee,
                NOTIFY_SUPPORT_TICKET_UPDATED,
                "Support ticket assigned",
                f"{ticket.ticket_number} was assigned to you: {ticket.title}",
                action_url=f"/admin/support/{ticket.id}",
                data={"ticket_id": ticket.id, "ticket_number": ticket.ticket_number},
            )

        self.db.commit()
        self.db.refresh(ticket)
        return ticket

    def escalate(self, ticket_id: int, user: User, reason: Optional[str] = None) -> SupportTicket:
        ticket = self.get_ticket_for_user(ticket_id, user)
        if ticket.status == engine.CLOSED:
            raise HTTPException(status_code=400, detail="Closed tickets cannot be escalated")
        if ticket.escalated:
            raise HTTPException(status_code=409, detail="Ticket is already escalated")

        reason = sanitize_string(reason)
        ticket.escalated = True
        ticket.escalated_at = utcnow()
        ticket.escalated_by = user.id
        ticket.escalation_reason = reason
        ticket.priority = engine.URGENT

        suffix = f": {reason}" if reason else ""
        self._system_message(
            ticket, user, f"Ticket escalated to urgent priority{suffix}", "ticket_escalated", reason=reason
        )
        notify_admins(
            self.db,
            NOTIFY_SUPPORT_TICKET_UPDATED,
            "Support ticket escalated",
            f"Support ticket escalated: {ticket.title}",
            action_url=f"/admin/support/{ticket.id}",
            data={"ticket_id": ticket.id, "ticket_number": ticket.ticket_number, "reason": reason},
            priority="URGENT",
        )

        self.db.commit()
        self.db.refresh(ticket)
        logger.warning(f"⚠️ Ticket {ticket.ticket_number} escalated by user {user.id}")
        return ticket

    def rate(
        self, ticket_id: int, user: User, rating: int, feedback: Optional[str] = None
    ) -> SupportTicket:
        ticket = self.get_ticket(ticket_id)
        if ticket.provider_id != user.id:
            raise HTTPException(status_code=403, detail="Only the ticket owner can rate support")
        if ticket.status not in (engine.RESOLVED, engine.CLOSED):
            raise HTTPException(status_code=400, detail="Only resolved or closed tickets can be rated")
        if not 1 <= rating <= 5:
            raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")

        feedback = sanitize_string(feedback)
        ticket.satisfaction_rating = rating
        ticket.satisfaction_feedback = feedback

        suffix = f" - {feedback}" if feedback else ""
        self._system_message(
            ticket,
            user,
            f"Support ticket rated: {rating}/5 stars{suffix}",
            "ticket_rated",
            rating=rating,
        )
        self.db.commit()
        self.db.refresh(ticket)
        return ticket

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def list_templates(
        self, category: Optional[str] = None, include_inactive: bool = False
    ) -> list[SupportTemplate]:
        return self.repo.get_templates(self.db, category, include_inactive)

    def create_template(self, data: TemplateCreate, admin: User) -> SupportTemplate:
        name = data.name.strip()
        if self.repo.get_template_by_name(self.db, name):
            raise HTTPException(status_code=409, detail="A template with this name already exists")

        template = SupportTemplate(
            name=name,
            title=sanitize_string(data.title),
            content=data.content.strip(),
            category=data.category,
            created_by=admin.id,
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        return template

    def update_template(self, template_id: int, data: TemplateUpdate) -> SupportTemplate:
        template = self.repo.get_template(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")

        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(template, key, sanitize_string(value) if key == "title" else value)
        self.db.commit()
        self.db.refresh(template)
        return template

    def delete_template(self, template_id: int) -> dict:
        template = self.repo.get_template(self.db, template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        # sent messages keep their rendered text
        self.db.query(SupportMessage).filter(SupportMessage.template_id == template.id).update(
            {SupportMessage.template_id: None}, synchronize_session=False
        )
        self.db.delete(template)
        self.db.commit()
        return {"success": True}

    # ------------------------------------------------------------------
    # SLA & analytics
    # ------------------------------------------------------------------

    def sla_breaches(self, now: Optional[datetime] = None) -> list[dict]:
        """Open tickets still waiting on a first admin reply past their target"""
        now = now or utcnow()
        breaches = []
        for ticket in self.repo.get_open_tickets(self.db):
            if engine.breaches_first_response(ticket, now):
                due = engine.first_response_due(ticket.created_at, ticket.priority)
                breaches.append(
                    {
                        "ticket_id": ticket.id,
                        "ticket_number": ticket.ticket_number,
                        "title": ticket.title,
                        "priority": ticket.priority,
                        "status": ticket.status,
                        "created_at": ticket.created_at,
                        "due_at": due,
                        "overdue_minutes": round(engine.minutes_between(due, now)),
                    }
                )
        breaches.sort(key=lambda b: b["due_at"])
        return breaches

    def analytics(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        tickets = self.repo.get_tickets_between(self.db, start, end)
        ratings = [t.satisfaction_rating for t in tickets if t.satisfaction_rating]

        return {
            "total_tickets": len(tickets),
            "resolved_tickets": sum(
                1 for t in tickets if t.status in (engine.RESOLVED, engine.CLOSED)
            ),
            "avg_first_response_minutes": engine.average(
                engine.minutes_between(t.created_at, t.first_response_at) for t in tickets
            ),
            "avg_resolution_minutes": engine.average(
                engine.minutes_between(t.created_at, t.resolved_at) for t in tickets
            ),
            "by_category": dict(Counter(t.category for t in tickets)),
            "by_priority": dict(Counter(t.priority for t in tickets)),
            "by_status": dict(Counter(t.status for t in tickets)),
            "avg_satisfaction": engine.average(ratings),
            "total_ratings": len(ratings),
            "escalated_tickets": sum(1 for t in tickets if t.escalated),
        }
