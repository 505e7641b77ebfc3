"""
Audit trail for admin and security actions

Entries join the caller's transaction, so an action that rolls back leaves
no audit row behind. Each row carries a sha256 of its own content; an entry
whose hash no longer matches has been edited after it was written.
"""

import hashlib
import json
import logging
import re
import secrets
from datetime import datetime
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..models import AuditLog, User
from ..rate_limiter import client_identity
from ..shared.timeutils import utcnow

logger = logging.getLogger(__name__)

SEVERITIES = ("low", "medium", "high", "critical")

# Actions written by the admin endpoints
AUDIT_LISTING_APPROVED = "listing_approved"
AUDIT_LISTING_REJECTED = "listing_rejected"
AUDIT_USER_ACTIVATED = "user_activated"
AUDIT_USER_DEACTIVATED = "user_deactivated"
AUDIT_REVIEW_REMOVED = "review_removed"
AUDIT_REVIEW_RESTORED = "review_restored"
AUDIT_PAYOUT_PROCESSED = "payout_processed"

REDACTIONS = (
    (re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b"), "[CARD]"),
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    (re.compile(r"\+\d{10,15}\b"), "[PHONE]"),
    (re.compile(r"\b0\d{3}-?\d{7}\b"), "[PHONE]"),
)


def redact(value: Any) -> Any:
    """Mask card numbers and contact details anywhere in a payload"""
    if isinstance(value, str):
        for pattern, label in REDACTIONS:
            value = pattern.sub(label, value)
        return value
    if isinstance(value, dict):
        return {str(k): redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    return value


def entry_hash(
    user_id: Optional[int],
    action: str,
    resource_type: str,
    resource_id: Optional[str],
    details: dict,
    created_at: datetime,
) -> str:
    payload = json.dumps(
        {
            "user_id": user_id,
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": details,
            "timestamp": created_at.isoformat(),
        },
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(payload.encode()).hexdigest()


def audit_context(request: Request) -> dict[str, Optional[str]]:
    """Dependency capturing the caller's address and client for audit entries"""
    user_agent = request.headers.get("user-agent")
    return {
        "ip_address": client_identity(request),
        "user_agent": user_agent[:500] if user_agent else None,
    }


def record_audit(
    db: Session,
    actor: Optional[User],
    action: str,
    resource_type: str,
    resource_id: Any = None,
    details: Optional[dict[str, Any]] = None,
    severity: str = "low",
    context: Optional[dict[str, Optional[str]]] = None,
) -> AuditLog:
    """
    Add an audit entry to the session; the caller commits.

    Args:
        actor: User performing the action (None for scheduled jobs)
        action: Short verb such as "listing_approved"
        resource_type / resource_id: What was acted on
        details: JSON-safe extra fields, redacted before storage
        severity: One of SEVERITIES
        context: Output of the audit_context dependency
    """
    if severity not in SEVERITIES:
        raise ValueError(f"Unknown audit severity: {severity}")

    context = context or {}
    user_id = actor.id if actor is not None else None
    resource_id = str(resource_id) if resource_id is not None else None
    details = redact(details or {})
    created_at = utcnow()

    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        severity=severity,
        ip_address=context.get("ip_address"),
        user_agent=context.get("user_agent"),
        hash=entry_hash(user_id, action, resource_type, resource_id, details, created_at),
        created_at=created_at,
    )
    db.add(entry)
    logger.info(f"📝 AUDIT {action} {resource_type}:{resource_id} by user {user_id} [{severity}]")
    return entry


def verify_entry(entry: AuditLog) -> bool:
    expected = entry_hash(
        entry.user_id,
        entry.action,
        entry.resource_type,
        entry.resource_id,
        entry.details or {},
        entry.created_at,
    )
    return secrets.compare_digest(expected, entry.hash)
