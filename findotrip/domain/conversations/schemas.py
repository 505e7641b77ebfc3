"""Conversation domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

SERVICE_TYPE_PATTERN = "^(property|vehicle|tour)$"


class ConversationStart(BaseModel):
    """
    Open (or reopen) a thread. The other participant is participant_id when
    given, else the other party of the booking, else the listing's owner.
    """

    participant_id: Optional[int] = None
    service_type: Optional[str] = Field(None, pattern=SERVICE_TYPE_PATTERN)
    service_id: Optional[int] = None
    booking_type: Optional[str] = Field(None, pattern=SERVICE_TYPE_PATTERN)
    booking_id: Optional[int] = None
    message: Optional[str] = Field(None, max_length=5000)

    @model_validator(mode="after")
    def check_target(self):
        if (self.service_type is None) != (self.service_id is None):
            raise ValueError("service_type and service_id go together")
        if (self.booking_type is None) != (self.booking_id is None):
            raise ValueError("booking_type and booking_id go together")
        if self.participant_id is None and self.service_id is None and self.booking_id is None:
            raise ValueError("Give a participant, a listing or a booking")
        return self


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    reply_to_id: Optional[int] = None
    attachments: list[str] = []


class ChatMessageUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class ParticipantView(BaseModel):
    id: int
    name: str
    role: str
    avatar: Optional[str] = None


class ChatMessageView(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    sender_name: str
    content: str
    type: str
    attachments: list = []
    reply_to_id: Optional[int] = None
    is_read: bool
    read_at: Optional[datetime] = None
    is_edited: bool
    edited_at: Optional[datetime] = None
    is_deleted: bool
    created_at: Optional[datetime] = None


class LastMessage(BaseModel):
    id: int
    sender_id: int
    content: str
    created_at: Optional[datetime] = None


class ConversationSummary(BaseModel):
    id: int
    type: str
    participants: list[ParticipantView]
    last_message: Optional[LastMessage] = None
    last_message_at: Optional[datetime] = None
    unread_count: int
    message_count: int
    is_active: bool
    related_service_type: Optional[str] = None
    related_service_id: Optional[int] = None
    related_booking_type: Optional[str] = None
    related_booking_id: Optional[int] = None


class ConversationDetail(ConversationSummary):
    messages: list[ChatMessageView]


class SearchHit(BaseModel):
    conversation_id: int
    message_id: int
    sender_name: str
    snippet: str
    created_at: Optional[datetime] = None
