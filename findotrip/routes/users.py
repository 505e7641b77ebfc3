"""Admin user management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import require_roles
from ..database import get_db
from ..models import User
from ..schemas import ROLE_PATTERN, UserResponse, UserStatusUpdate
from ..services.audit_service import (
    AUDIT_USER_ACTIVATED,
    AUDIT_USER_DEACTIVATED,
    audit_context,
    record_audit,
)
from ..shared.constants import ADMIN

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/users", tags=["Users"])

admins_only = require_roles(ADMIN)


@router.get("", response_model=list[UserResponse])
async def list_users(
    role: Optional[str] = Query(None, pattern=ROLE_PATTERN),
    is_active: Optional[bool] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(admins_only),
    db: Session = Depends(get_db),
):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    return query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()


@router.patch("/{user_id}/status", response_model=UserResponse)
async def set_user_status(
    user_id: int,
    data: UserStatusUpdate,
    current_user: User = Depends(admins_only),
    context: dict = Depends(audit_context),
    db: Session = Depends(get_db),
):
    """Activate or deactivate an account"""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.id == current_user.id and not data.is_active:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    user.is_active = data.is_active
    record_audit(
        db,
        current_user,
        AUDIT_USER_ACTIVATED if data.is_active else AUDIT_USER_DEACTIVATED,
        "user",
        user.id,
        details={"role": user.role},
        severity="medium" if data.is_active else "high",
        context=context,
    )
    db.commit()
    db.refresh(user)
    logger.info(
        f"👤 Admin {current_user.id} {'activated' if user.is_active else 'deactivated'} user {user.id}"
    )
    return user
