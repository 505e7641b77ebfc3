"""Support domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

CATEGORY_PATTERN = (
    "^(BOOKING_ISSUE|PAYMENT_ISSUE|ACCOUNT_ISSUE|LISTING_ISSUE|TECHNICAL_ISSUE|GENERAL_INQUIRY)$"
)
PRIORITY_PATTERN = "^(LOW|NORMAL|HIGH|URGENT)$"
STATUS_PATTERN = "^(NEW|OPEN|IN_PROGRESS|WAITING_ON_PROVIDER|RESOLVED|CLOSED)$"


class TicketCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: str = Field(..., min_length=10, max_length=5000)
    category: str = Field(..., pattern=CATEGORY_PATTERN)
    priority: str = Field("NORMAL", pattern=PRIORITY_PATTERN)
    related_service_id: Optional[int] = None
    related_service_type: Optional[str] = Field(None, pattern="^(property|vehicle|tour)$")


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    internal: bool = False
    attachments: list[str] = []


class TemplateMessageCreate(BaseModel):
    template_id: int


class TicketStatusUpdate(BaseModel):
    status: str = Field(..., pattern=STATUS_PATTERN)
    resolution: Optional[str] = Field(None, max_length=5000)


class TicketAssign(BaseModel):
    admin_id: int


class TicketEscalate(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class TicketRating(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=2000)


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    title: str = Field(..., min_length=2, max_length=255)
    content: str = Field(..., min_length=1, max_length=5000)
    category: Optional[str] = Field(None, pattern=CATEGORY_PATTERN)


class TemplateUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=255)
    content: Optional[str] = Field(None, min_length=1, max_length=5000)
    category: Optional[str] = Field(None, pattern=CATEGORY_PATTERN)
    is_active: Optional[bool] = None


class TemplateResponse(BaseModel):
    id: int
    name: str
    title: str
    content: str
    category: Optional[str] = None
    is_active: bool
    usage_count: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    id: int
    ticket_id: int
    sender_id: int
    content: str
    type: str
    attachments: Optional[list] = None
    template_id: Optional[int] = None
    system_data: Optional[dict[str, Any]] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TicketResponse(BaseModel):
    id: int
    ticket_number: str
    title: str
    description: str
    category: str
    priority: str
    status: str
    provider_id: int
    assigned_to_id: Optional[int] = None
    related_service_id: Optional[int] = None
    related_service_type: Optional[str] = None
    escalated: bool
    escalated_at: Optional[datetime] = None
    escalation_reason: Optional[str] = None
    resolution: Optional[str] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    satisfaction_rating: Optional[int] = None
    first_response_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TicketDetail(TicketResponse):
    messages: list[MessageResponse] = []


class TicketPage(BaseModel):
    items: list[TicketResponse]
    total: int
    page: int
    limit: int
