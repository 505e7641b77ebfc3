"""Admin view of the audit trail"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import require_roles
from ..database import get_db
from ..models import AuditLog, User
from ..schemas import AuditLogPage
from ..services.audit_service import verify_entry
from ..shared.constants import ADMIN
from ..shared.timeutils import to_naive_utc

router = APIRouter(prefix="/admin/audit-logs", tags=["Audit"])

admins_only = require_roles(ADMIN)


@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    user_id: Optional[int] = None,
    severity: Optional[str] = Query(None, pattern="^(low|medium|high|critical)$"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(admins_only),
    db: Session = Depends(get_db),
):
    """Newest first, filtered by any combination of fields"""
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if severity:
        query = query.filter(AuditLog.severity == severity)
    if start:
        query = query.filter(AuditLog.created_at >= to_naive_utc(start))
    if end:
        query = query.filter(AuditLog.created_at < to_naive_utc(end))

    total = query.count()
    items = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"items": items, "total": total, "page": page, "limit": limit}


@router.get("/{entry_id}/verify")
async def verify_audit_log(
    entry_id: int,
    current_user: User = Depends(admins_only),
    db: Session = Depends(get_db),
):
    entry = db.query(AuditLog).filter(AuditLog.id == entry_id).first()
    if not entry:
        raise HTTPException(status_code=404, detail="Audit entry not found")
    return {"id": entry.id, "valid": verify_entry(entry)}
