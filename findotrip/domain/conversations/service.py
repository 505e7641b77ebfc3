"""Conversation service - direct messages between customers, providers and admins"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...models_chat import ChatMessage, Conversation, ConversationParticipant
from ...services.notification_service import create_notification
from ...shared.constants import NOTIFY_CHAT_MESSAGE
from ...shared.sanitization import sanitize_list, sanitize_string
from ...shared.timeutils import utcnow
from ..bookings.repository import BookingRepository
from ..listings.repository import ListingRepository
from . import engine
from .repository import ConversationRepository
from .schemas import ChatMessageCreate, ChatMessageUpdate, ConversationStart

logger = logging.getLogger(__name__)


def participant_view(user: User) -> dict:
    return {"id": user.id, "name": user.name, "role": user.role, "avatar": user.avatar}


def message_view(message: ChatMessage) -> dict:
    """Deleted messages keep their row but lose their content"""
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "sender_name": message.sender.name,
        "content": engine.DELETED_PLACEHOLDER if message.is_deleted else message.content,
        "type": message.type,
        "attachments": [] if message.is_deleted else (message.attachments or []),
        "reply_to_id": message.reply_to_id,
        "is_read": message.is_read,
        "read_at": message.read_at,
        "is_edited": message.is_edited,
        "edited_at": message.edited_at,
        "is_deleted": message.is_deleted,
        "created_at": message.created_at,
    }


class ConversationService:
    """Service layer for direct messaging"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ConversationRepository()
        self.bookings = BookingRepository()
        self.listings = ListingRepository()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def _get_for_participant(
        self, conversation_id: int, user: User
    ) -> tuple[Conversation, ConversationParticipant]:
        conversation = self.repo.get_conversation(self.db, conversation_id)
        if not conversation:
            raise HTTPException(status_code=404, detail="Conversation not found")
        participant = conversation.participant(user.id)
        if participant is None:
            logger.warning(f"🚫 User {user.id} tried to open conversation {conversation_id}")
            raise HTTPException(status_code=403, detail="You are not part of this conversation")
        return conversation, participant

    def _get_own_message(self, message_id: int, user: User) -> ChatMessage:
        message = self.repo.get_message(self.db, message_id)
        if not message:
            raise HTTPException(status_code=404, detail="Message not found")
        if message.sender_id != user.id:
            raise HTTPException(status_code=403, detail="You can only change your own messages")
        return message

    def _summary(self, conversation: Conversation, user: User, last: Optional[ChatMessage]) -> dict:
        participant = conversation.participant(user.id)
        last_message = None
        if last is not None:
            last_message = {
                "id": last.id,
                "sender_id": last.sender_id,
                "content": engine.DELETED_PLACEHOLDER if last.is_deleted else engine.preview(last.content),
                "created_at": last.created_at,
            }
        return {
            "id": conversation.id,
            "type": conversation.type,
            "participants": [
                participant_view(p.user) for p in conversation.participants if p.user_id != user.id
            ],
            "last_message": last_message,
            "last_message_at": conversation.last_message_at,
            "unread_count": participant.unread_count if participant else 0,
            "message_count": conversation.message_count,
            "is_active": conversation.is_active,
            "related_service_type": conversation.related_service_type,
            "related_service_id": conversation.related_service_id,
            "related_booking_type": conversation.related_booking_type,
            "related_booking_id": conversation.related_booking_id,
        }

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    def _resolve_target(self, data: ConversationStart, user: User) -> tuple[User, dict]:
        """The other participant plus the listing/booking the thread is about"""
        related = {}
        target = None

        if data.booking_id is not None:
            booking = self.bookings.get_booking(self.db, data.booking_type, data.booking_id)
            if not booking or user.id not in (booking.user_id, booking.provider_id) and not user.is_admin:
                raise HTTPException(status_code=404, detail="Booking not found")
            related.update(
                related_booking_type=booking.kind,
                related_booking_id=booking.id,
                related_service_type=booking.kind,
                related_service_id=booking.service_id,
            )
            target = booking.provider if user.id == booking.user_id else booking.user

        if data.service_id is not None:
            listing = self.listings.get_listing(self.db, data.service_type, data.service_id)
            if not listing:
                raise HTTPException(status_code=404, detail="Listing not found")
            related.setdefault("related_service_type", data.service_type)
            related.setdefault("related_service_id", listing.id)
            if target is None:
                target = listing.owner

        if data.participant_id is not None:
            target = self.db.query(User).filter(User.id == data.participant_id).first()

        if target is None or not target.is_active:
            raise HTTPException(status_code=404, detail="User not found")
        return target, related

    def start_conversation(self, data: ConversationStart, user: User) -> tuple[dict, bool]:
        """The pair's open thread of this type, created when missing, and whether it is new"""
        target, related = self._resolve_target(data, user)
        if target.id == user.id:
            raise HTTPException(status_code=400, detail="You cannot message yourself")
        try:
            conversation_type = engine.conversation_type(user.role, target.role)
        except ValueError as e:
            raise HTTPException(status_code=403, detail=str(e)) from e

        conversation = self.repo.find_between(self.db, user.id, target.id, conversation_type)
        created = conversation is None
        if created:
            conversation = Conversation(type=conversation_type, created_by=user.id, **related)
            conversation.participants = [
                ConversationParticipant(user_id=user.id),
                ConversationParticipant(user_id=target.id),
            ]
            self.db.add(conversation)
            self.db.flush()
            logger.info(
                f"💬 Conversation {conversation.id} ({conversation_type}) opened by user {user.id} with {target.id}"
            )
        else:
            conversation.participant(user.id).hidden = False

        if data.message and data.message.strip():
            self._post(conversation, user, data.message)
        self.db.commit()
        return self.get_conversation(conversation.id, user), created

    def list_conversations(self, user: User, page: int = 1, limit: int = 20) -> list[dict]:
        conversations = self.repo.get_user_conversations(
            self.db, user.id, skip=(page - 1) * limit, limit=limit
        )
        last = self.repo.last_messages(self.db, [c.id for c in conversations])
        return [self._summary(c, user, last.get(c.id)) for c in conversations]

    def get_conversation(self, conversation_id: int, user: User, limit: int = 50) -> dict:
        conversation, _ = self._get_for_participant(conversation_id, user)
        messages = self.repo.get_messages(self.db, conversation.id, limit)
        detail = self._summary(conversation, user, messages[-1] if messages else None)
        detail["messages"] = [message_view(m) for m in messages]
        return detail

    def hide_conversation(self, conversation_id: int, user: User) -> dict:
        """Remove the thread from the user's list until someone writes again"""
        _, participant = self._get_for_participant(conversation_id, user)
        participant.hidden = True
        self.db.commit()
        return {"success": True}

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _post(
        self,
        conversation: Conversation,
        sender: User,
        content: str,
        attachments: Optional[list] = None,
        reply_to_id: Optional[int] = None,
    ) -> ChatMessage:
        content = sanitize_string(content)
        if not content:
            raise HTTPException(status_code=400, detail="Message cannot be empty")

        message = ChatMessage(
            conversation_id=conversation.id,
            sender_id=sender.id,
            content=content,
            type=engine.TEXT,
            attachments=attachments or [],
            reply_to_id=reply_to_id,
        )
        self.db.add(message)
        self.db.flush()

        conversation.last_message_at = utcnow()
        conversation.message_count = (conversation.message_count or 0) + 1
        for participant in conversation.participants:
            participant.hidden = False
            if participant.user_id == sender.id:
                continue
            participant.unread_count = (participant.unread_count or 0) + 1
            create_notification(
                self.db,
                participant.user,
                NOTIFY_CHAT_MESSAGE,
                f"New message from {sender.name}",
                engine.preview(content),
                action_url=f"/messages/{conversation.id}",
                data={"conversation_id": conversation.id, "message_id": message.id},
            )
        return message

    def send_message(self, conversation_id: int, data: ChatMessageCreate, user: User) -> dict:
        conversation, _ = self._get_for_participant(conversation_id, user)
        if not conversation.is_active:
            raise HTTPException(status_code=400, detail="This conversation is closed")

        if data.reply_to_id is not None:
            original = self.repo.get_message(self.db, data.reply_to_id)
            if not original or original.conversation_id != conversation.id:
                raise HTTPException(status_code=400, detail="Reply must quote a message in this conversation")

        message = self._post(
            conversation,
            user,
            data.content,
            attachments=sanitize_list(data.attachments),
            reply_to_id=data.reply_to_id,
        )
        self.db.commit()
        self.db.refresh(message)
        logger.debug(f"💬 Message {message.id} sent in conversation {conversation.id} by user {user.id}")
        return message_view(message)

    def get_messages(
        self, conversation_id: int, user: User, limit: int = 50, before_id: Optional[int] = None
    ) -> list[dict]:
        """One page of history; the other side's unread messages in it become read"""
        conversation, participant = self._get_for_participant(conversation_id, user)
        messages = self.repo.get_messages(self.db, conversation.id, limit, before_id)

        now = utcnow()
        newly_read = 0
        for message in messages:
            if message.sender_id != user.id and not message.is_read:
                message.is_read = True
                message.read_at = now
                newly_read += 1
        if newly_read:
            participant.unread_count = max(0, (participant.unread_count or 0) - newly_read)
            participant.last_read_at = now
            self.db.commit()
        return [message_view(m) for m in messages]

    def mark_read(self, conversation_id: int, user: User) -> dict:
        conversation, participant = self._get_for_participant(conversation_id, user)
        now = utcnow()
        marked = self.repo.mark_all_read(self.db, conversation.id, user.id, now)
        participant.unread_count = 0
        participant.last_read_at = now
        self.db.commit()
        return {"marked": marked}

    def edit_message(self, message_id: int, data: ChatMessageUpdate, user: User) -> dict:
        message = self._get_own_message(message_id, user)
        if message.is_deleted:
            raise HTTPException(status_code=400, detail="Deleted messages cannot be edited")
        content = sanitize_string(data.content)
        if not content:
            raise HTTPException(status_code=400, detail="Message cannot be empty")

        message.content = content
        message.is_edited = True
        message.edited_at = utcnow()
        self.db.commit()
        self.db.refresh(message)
        return message_view(message)

    def delete_message(self, message_id: int, user: User) -> dict:
        message = self._get_own_message(message_id, user)
        if not message.is_deleted:
            message.is_deleted = True
            message.deleted_at = utcnow()
            self.db.commit()
            logger.info(f"🗑️ Message {message.id} deleted by user {user.id}")
        return {"success": True}

    # ------------------------------------------------------------------
    # Counters & search
    # ------------------------------------------------------------------

    def unread_count(self, user: User) -> dict:
        by_conversation = {
            p.conversation_id: p.unread_count
            for p in self.repo.get_participations(self.db, user.id)
            if p.unread_count
        }
        return {"total": sum(by_conversation.values()), "by_conversation": by_conversation}

    def search(self, user: User, term: str, limit: int = 20) -> list[dict]:
        term = sanitize_string(term)
        if not term:
            raise HTTPException(status_code=400, detail="Search term cannot be empty")
        return [
            {
                "conversation_id": m.conversation_id,
                "message_id": m.id,
                "sender_name": m.sender.name,
                "snippet": engine.snippet(m.content, term),
                "created_at": m.created_at,
            }
            for m in self.repo.search_messages(self.db, user.id, term, limit)
        ]
