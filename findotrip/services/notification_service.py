"""
Unified Notification Service
In-app notifications plus best-effort email delivery for marketplace events
"""

import logging
from typing import Any, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from ..models import Notification, User
from ..shared.constants import ADMIN

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    user: User,
    notification_type: str,
    title: str,
    message: str,
    action_url: Optional[str] = None,
    data: Optional[dict[str, Any]] = None,
    priority: str = "NORMAL",
) -> Notification:
    """
    Add an in-app notification for a user.
    The caller owns the transaction; the row is only flushed here.
    """
    notification = Notification(
        user_id=user.id,
        user_role=user.role,
        type=notification_type,
        title=title,
        message=message,
        action_url=action_url,
        data=data or {},
        priority=priority,
    )
    db.add(notification)
    db.flush()
    logger.debug(f"🔔 {notification_type} notification queued for user {user.id}")
    return notification


def notify_admins(
    db: Session,
    notification_type: str,
    title: str,
    message: str,
    action_url: Optional[str] = None,
    data: Optional[dict[str, Any]] = None,
    priority: str = "NORMAL",
) -> int:
    """Notify every active admin. Returns the number of notifications created"""
    admins = db.query(User).filter(User.role == ADMIN, User.is_active.is_(True)).all()
    for admin in admins:
        create_notification(
            db, admin, notification_type, title, message, action_url, data, priority
        )
    return len(admins)


def queue_email(background_tasks: Optional[BackgroundTasks], email_func, **email_kwargs) -> bool:
    """
    Schedule an email to go out after the response is sent.
    Without a BackgroundTasks instance (batch jobs, direct service calls) nothing is queued.
    """
    if background_tasks is None:
        logger.debug(f"ℹ️ No background task runner - {email_func.__name__} not queued")
        return False

    background_tasks.add_task(email_func, **email_kwargs)
    return True
