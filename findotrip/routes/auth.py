import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import create_access_token, get_current_user
from ..database import get_db
from ..email_service import send_welcome_email
from ..models import User
from ..rate_limiter import create_rate_limiter
from ..schemas import LoginRequest, TokenResponse, UserCreate, UserResponse, UserUpdate
from ..security_utils import (
    check_password_strength,
    hash_password_bcrypt,
    mask_sensitive_data,
    verify_password_bcrypt,
)
from ..services.notification_service import queue_email
from ..shared.constants import ADMIN
from ..shared.sanitization import sanitize_string
from ..shared.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

rate_limit_register = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="register")
rate_limit_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    data: UserCreate,
    background_tasks: BackgroundTasks,
    _: None = Depends(rate_limit_register),
    db: Session = Depends(get_db),
):
    """Create a customer or provider account and sign it in"""
    if data.role == ADMIN:
        raise HTTPException(status_code=403, detail="Admin accounts cannot be self-registered")

    strength = check_password_strength(data.password)
    if not strength["is_valid"]:
        raise HTTPException(
            status_code=400,
            detail={"message": "Password is too weak", "feedback": strength["feedback"]},
        )

    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(status_code=409, detail="An account with this email already exists")

    user = User(
        email=data.email,
        password_hash=hash_password_bcrypt(data.password),
        name=sanitize_string(data.name),
        role=data.role,
        phone=data.phone,
        last_login_at=utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"🆕 Registered {user.role} account {mask_sensitive_data(user.email)}")

    queue_email(
        background_tasks, send_welcome_email, to=user.email, user_name=user.name, role=user.role
    )
    return TokenResponse(
        access_token=create_access_token(user), user=UserResponse.model_validate(user)
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    _: None = Depends(rate_limit_login),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password_bcrypt(data.password, user.password_hash):
        logger.warning(f"⚠️ Failed login for {mask_sensitive_data(data.email)}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    return TokenResponse(
        access_token=create_access_token(user), user=UserResponse.model_validate(user)
    )


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updates = data.model_dump(exclude_unset=True)
    for field in ("name", "bio"):
        if updates.get(field) is not None:
            updates[field] = sanitize_string(updates[field])
    for key, value in updates.items():
        setattr(current_user, key, value)

    db.commit()
    db.refresh(current_user)
    return current_user
