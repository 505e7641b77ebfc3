"""Conversation router - direct messages"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    ChatMessageCreate,
    ChatMessageUpdate,
    ChatMessageView,
    ConversationDetail,
    ConversationStart,
    ConversationSummary,
    SearchHit,
)
from .service import ConversationService

router = APIRouter(prefix="/conversations", tags=["Conversations"])

rate_limit_messages = create_rate_limiter(limit=30, window_seconds=60, key_prefix="chat_messages")


def get_conversation_service(db: Session = Depends(get_db)) -> ConversationService:
    return ConversationService(db)


@router.post("", response_model=ConversationDetail)
async def start_conversation(
    data: ConversationStart,
    response: Response,
    _: None = Depends(rate_limit_messages),
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    """
    Open a thread with a user, a listing's owner or the other side of a booking.
    Returns 201 for a new thread and 200 when the pair already has one.
    """
    conversation, created = service.start_conversation(data, current_user)
    response.status_code = 201 if created else 200
    return conversation


@router.get("", response_model=list[ConversationSummary])
async def my_conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.list_conversations(current_user, page, limit)


@router.get("/unread-count")
async def unread_count(
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.unread_count(current_user)


@router.get("/search", response_model=list[SearchHit])
async def search_messages(
    q: str = Query(..., min_length=2, max_length=100),
    limit: int = Query(20, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.search(current_user, q, limit)


@router.patch("/messages/{message_id}", response_model=ChatMessageView)
async def edit_message(
    message_id: int,
    data: ChatMessageUpdate,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.edit_message(message_id, data, current_user)


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: int,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.delete_message(message_id, current_user)


@router.get("/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.get_conversation(conversation_id, current_user)


@router.get("/{conversation_id}/messages", response_model=list[ChatMessageView])
async def get_messages(
    conversation_id: int,
    limit: int = Query(50, ge=1, le=100),
    before_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    """Older pages via before_id; fetched messages from the other side become read"""
    return service.get_messages(conversation_id, current_user, limit, before_id)


@router.post("/{conversation_id}/messages", response_model=ChatMessageView, status_code=201)
async def send_message(
    conversation_id: int,
    data: ChatMessageCreate,
    _: None = Depends(rate_limit_messages),
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.send_message(conversation_id, data, current_user)


@router.post("/{conversation_id}/read")
async def mark_read(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.mark_read(conversation_id, current_user)


@router.delete("/{conversation_id}")
async def hide_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    service: ConversationService = Depends(get_conversation_service),
):
    return service.hide_conversation(conversation_id, current_user)
