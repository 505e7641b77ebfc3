"""
Security utilities: password hashing, access tokens and reference numbers
"""

import logging
import os
import re
import secrets
import string
import time
from datetime import timedelta
from typing import Any, Optional

from jose import JWTError
from jose import jwt as jose_jwt
from passlib.context import CryptContext

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from .shared.timeutils import utcnow

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits

MIN_PASSWORD_LENGTH = 8
PASSWORD_RULES = (
    (r"[a-z]", "Add lowercase letters"),
    (r"[A-Z]", "Add uppercase letters"),
    (r"\d", "Add numbers"),
    (r"[^A-Za-z0-9]", "Add a symbol"),
)
COMMON_PASSWORDS = {"password", "password1", "12345678", "qwerty123", "findotrip", "letmein1"}


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password_bcrypt(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password_bcrypt(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


def check_password_strength(password: str) -> dict[str, Any]:
    """
    Score a password against PASSWORD_RULES

    A password is accepted at MIN_PASSWORD_LENGTH or more characters
    with at least three of the character classes and not on the common list.
    """
    missing = [hint for pattern, hint in PASSWORD_RULES if not re.search(pattern, password)]
    classes = len(PASSWORD_RULES) - len(missing)

    feedback = []
    if len(password) < MIN_PASSWORD_LENGTH:
        feedback.append(f"Use at least {MIN_PASSWORD_LENGTH} characters")
    if classes < 3:
        feedback.extend(missing)
    if password.lower() in COMMON_PASSWORDS:
        feedback.append("This password is too common")

    return {
        "score": classes + (len(password) >= 12),
        "feedback": feedback,
        "is_valid": not feedback,
    }


# ============================================================================
# TOKEN GENERATION & VALIDATION
# ============================================================================


def create_jwt_token(claims: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign an access token carrying `claims` plus iat/exp"""
    issued = utcnow()
    lifetime = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {**claims, "iat": issued, "exp": issued + lifetime, "typ": "access"}
    return jose_jwt.encode(payload, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """Decoded claims of a valid, unexpired access token, else None"""
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"⚠️ Rejected access token: {e}")
        return None
    if payload.get("typ") != "access":
        logger.warning("⚠️ Rejected token with unexpected type")
        return None
    return payload


def generate_reference(prefix: str, random_length: int = 6) -> str:
    """
    Generate a human-readable reference such as a booking or ticket number:
    prefix + epoch milliseconds + random uppercase alphanumerics.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(random_length))
    return f"{prefix}{millis}{suffix}"


def mask_sensitive_data(value: str, visible_chars: int = 2) -> str:
    """Mask an email or identifier for logs, e.g. ay****@example.com"""
    local, at, domain = value.partition("@")
    shown = local[:visible_chars]
    return f"{shown}{'*' * max(len(local) - len(shown), 1)}{at}{domain}"
