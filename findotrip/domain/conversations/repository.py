"""Conversation repository - Database operations for threads and chat messages"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from ...models_chat import ChatMessage, Conversation, ConversationParticipant


class ConversationRepository:
    """Repository for messaging database operations"""

    @staticmethod
    def get_conversation(db: Session, conversation_id: int) -> Optional[Conversation]:
        return db.query(Conversation).filter(Conversation.id == conversation_id).first()

    @staticmethod
    def find_between(
        db: Session, user_a: int, user_b: int, conversation_type: str
    ) -> Optional[Conversation]:
        """Active thread of the given type that both users take part in"""
        first = aliased(ConversationParticipant)
        second = aliased(ConversationParticipant)
        return (
            db.query(Conversation)
            .join(first, first.conversation_id == Conversation.id)
            .join(second, second.conversation_id == Conversation.id)
            .filter(
                first.user_id == user_a,
                second.user_id == user_b,
                Conversation.type == conversation_type,
                Conversation.is_active.is_(True),
            )
            .order_by(Conversation.id.asc())
            .first()
        )

    @staticmethod
    def get_user_conversations(
        db: Session, user_id: int, skip: int = 0, limit: int = 50
    ) -> list[Conversation]:
        """Threads the user has not hidden, most recent activity first"""
        return (
            db.query(Conversation)
            .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
            .filter(
                ConversationParticipant.user_id == user_id,
                ConversationParticipant.hidden.is_(False),
            )
            .order_by(
                func.coalesce(Conversation.last_message_at, Conversation.created_at).desc(),
                Conversation.id.desc(),
            )
            .offset(skip)
            .limit(limit)
            .all()
        )

    @staticmethod
    def last_messages(db: Session, conversation_ids: list[int]) -> dict[int, ChatMessage]:
        if not conversation_ids:
            return {}
        latest = (
            select(func.max(ChatMessage.id))
            .where(ChatMessage.conversation_id.in_(conversation_ids))
            .group_by(ChatMessage.conversation_id)
        )
        messages = db.query(ChatMessage).filter(ChatMessage.id.in_(latest)).all()
        return {m.conversation_id: m for m in messages}

    @staticmethod
    def get_messages(
        db: Session, conversation_id: int, limit: int = 50, before_id: Optional[int] = None
    ) -> list[ChatMessage]:
        """Up to `limit` messages older than before_id, oldest first"""
        query = db.query(ChatMessage).filter(ChatMessage.conversation_id == conversation_id)
        if before_id is not None:
            query = query.filter(ChatMessage.id < before_id)
        newest_first = query.order_by(ChatMessage.id.desc()).limit(limit).all()
        return list(reversed(newest_first))

    @staticmethod
    def get_message(db: Session, message_id: int) -> Optional[ChatMessage]:
        return db.query(ChatMessage).filter(ChatMessage.id == message_id).first()

    @staticmethod
    def mark_all_read(db: Session, conversation_id: int, reader_id: int, read_at) -> int:
        """Mark the other side's messages read (caller commits); returns rows changed"""
        return (
            db.query(ChatMessage)
            .filter(
                ChatMessage.conversation_id == conversation_id,
                ChatMessage.sender_id != reader_id,
                ChatMessage.is_read.is_(False),
            )
            .update({"is_read": True, "read_at": read_at}, synchronize_session=False)
        )

    @staticmethod
    def get_participations(db: Session, user_id: int) -> list[ConversationParticipant]:
        return (
            db.query(ConversationParticipant)
            .filter(ConversationParticipant.user_id == user_id)
            .all()
        )

    @staticmethod
    def search_messages(db: Session, user_id: int, term: str, limit: int = 20) -> list[ChatMessage]:
        """Visible messages containing term in the user's threads, newest first"""
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return (
            db.query(ChatMessage)
            .join(
                ConversationParticipant,
                ConversationParticipant.conversation_id == ChatMessage.conversation_id,
            )
            .filter(
                ConversationParticipant.user_id == user_id,
                ConversationParticipant.hidden.is_(False),
                ChatMessage.is_deleted.is_(False),
                ChatMessage.content.ilike(f"%{escaped}%", escape="\\"),
            )
            .order_by(ChatMessage.id.desc())
            .limit(limit)
            .all()
        )
