"""Support router - provider tickets, chat threads and the admin support desk"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...shared.constants import ADMIN, PROVIDER_ROLES
from .schemas import (
    CATEGORY_PATTERN,
    PRIORITY_PATTERN,
    STATUS_PATTERN,
    MessageCreate,
    MessageResponse,
    TemplateCreate,
    TemplateMessageCreate,
    TemplateResponse,
    TemplateUpdate,
    TicketAssign,
    TicketCreate,
    TicketDetail,
    TicketEscalate,
    TicketPage,
    TicketRating,
    TicketResponse,
    TicketStatusUpdate,
)
from .service import SupportService

router = APIRouter(prefix="/support", tags=["Support"])

rate_limit_tickets = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="support_tickets")
providers_only = require_roles(*PROVIDER_ROLES)
admins_only = require_roles(ADMIN)


def get_support_service(db: Session = Depends(get_db)) -> SupportService:
    """Dependency injection for SupportService"""
    return SupportService(db)


# ----------------------------------------------------------------------
# Tickets
# ----------------------------------------------------------------------


@router.post("/tickets", response_model=TicketResponse, status_code=201)
async def create_ticket(
    data: TicketCreate,
    _: None = Depends(rate_limit_tickets),
    current_user: User = Depends(providers_only),
    service: SupportService = Depends(get_support_service),
):
    return service.create_ticket(data, current_user)


@router.get("/tickets", response_model=list[TicketResponse])
async def my_tickets(
    status: Optional[str] = Query(None, pattern=STATUS_PATTERN),
    current_user: User = Depends(providers_only),
    service: SupportService = Depends(get_support_service),
):
    return service.get_provider_tickets(current_user, status)


@router.get("/unread-count")
async def unread_count(
    current_user: User = Depends(get_current_user),
    service: SupportService = Depends(get_support_service),
):
    return {"unread_count": service.unread_count(current_user)}


@router.get("/tickets/{ticket_id}", response_model=TicketDetail)
async def get_ticket(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: SupportService = Depends(get_support_service),
):
    """Ticket with its message thread; providers never see internal notes"""
    ticket = service.get_ticket_for_user(ticket_id, current_user)
    return TicketDetail(
        **TicketResponse.model_validate(ticket).model_dump(),
        messages=[
            MessageResponse.model_validate(m) for m in service.visible_messages(ticket, current_user)
        ],
    )


@router.post("/tickets/{ticket_id}/messages", response_model=MessageResponse, status_code=201)
async def add_message(
    ticket_id: int,
    data: MessageCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: SupportService = Depends(get_support_service),
):
    return service.add_message(ticket_id, data, current_user, background_tasks)


@router.post(
    "/tickets/{ticket_id}/template-messages", response_model=MessageResponse, status_code=201
)
async def send_template_message(
    ticket_id: int,
    data: TemplateMessageCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(admins_only),
    service: SupportService = Depends(get_support_service),
):
    return service.send_template(ticket_id, data.template_id, current_user, background_tasks)


@router.post("/tickets/{ticket_id}/read")
async def mark_ticket_read(
    ticket_id: int,
    current_user: User = Depends(get_current_user),
    service: SupportService = Depends(get_support_service),
):
    return service.mark_ticket_read(ticket_id, current_user)


@router.post("/messages/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: int,
    current_user: User = Depends(get_current_user),
    service: SupportService = Depends(get_support_service),
):
    return service.mark_message_read(message_id, current_user)


@router.patch("/tickets/{ticket_id}/status", response_model=TicketResponse)
async def update_ticket_status(
    ticket_id: int,
    data: TicketStatusUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    service: SupportService = Depends(get_support_service),
):
    return service.change_status(
        ticket_id, data.status, current_user, data.resolution, background_tasks
    )


@router.post("/tickets/{ticket_id}/assign", response_model=TicketResponse)
async def assign_ticket(
    ticket_id: int,
    data: TicketAssign,
    current_user: User = Depends(admins_only),
    service: SupportService = Depends(get_support_service),
):
    return service.assign(ticket_id, data.admin_id, current_user)


@router.post("/tickets/{ticket_id}/escalate", response_model=TicketResponse)
async def escalate_ticket(
    ticket_id: int,
    data: TicketEscalate,
    current_user: User = Depends(get_current_user),
    service: SupportService = Depends(get_support_service),
):
    return service.escalate(ticket_id, current_user, data.reason)


@router.post("/tickets/{ticket_id}/rating", response_model=TicketResponse)
async def rate_ticket(
    ticket_id: int,
    data: TicketRating,
    current_user: User = Depends(providers_only),
    service: SupportService = Depends(get_support_service),
):
    return service.rate(ticket_id, current_user, data.rating, data.feedback)


# ----------------------------------------------------------------------
# Admin desk
# ----------------------------------------------------------------------


@router.get("/admin/tickets", response_model=TicketPage)
async def admin_ticket_queue(
    status: Optional[str] = Query(None, pattern=STATUS_PATTERN),
    category: Optional[str] = Query(None, pattern=CATEGORY_PATTERN),
    priority: Optional[str] = Query(None, pattern=PRIORITY_PATTERN),
    assigned_to_id: Optional[int] = None,
    provider_role: Optional[str] = Query(None, pattern="^(PROPERTY_OWNER|VEHICLE_OWNER|TOUR_GUIDE)$"),
    escalated: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    current_user: User = Depends(admins_only),
    service: SupportService = Depends(get_support_service),
):
    return service.get_admin_queue(
        status=status,
        category=category,
        priority=priority,
        assigned_to_id=assigned_to_id,
        provider_role=provider_role,
        escalated=escalated,
        page=page,
        limit=limit,
    )


@router.get("/admin/sla-breaches")
async def sla_breaches(
    current_user: User = Depends(admins_only),
    service: SupportService = Depends(get_support_service),
):
    return {"breaches": service.sla_breaches()}


@router.get("/admin/analytics")
async def support_analytics(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    current_user: User = Depends(admins_only),
    service: SupportService = Depends(get_support_service),
):
    return service.analytics(start, end)


# ----------------------------------------------------------------------
# Templates
# ----------------------------------------------------------------------


@router.get("/templates", response_model=list[TemplateResponse])
async def list_templates(
    category: Optional[str] = Query(None, pattern=CATEGORY_PATTERN),
    include_inactive: bool = False,
    current_user: User = Depends(admins_only),
    service: SupportService = Depends(get_support_service),
):
    return service.list_templates(category, include_inactive)


@router.post("/templates", response_model=TemplateResponse, status_code=201)
async def create_template(
    data: TemplateCreate,
    current_user: User = Depends(admins_only),
    service: SupportService = Depends(get_support_service),
):
    return service.create_template(data, current_user)


@router.patch("/templates/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: int,
    data: TemplateUpdate,
    current_user: User = Depends(admins_only),
    service: SupportService = Depends(get_support_service),
):
    return service.update_template(template_id, data)


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: int,
    current_user: User = Depends(admins_only),
    service: SupportService = Depends(get_support_service),
):
    return service.delete_template(template_id)
