"""Commission router - provider commission ledger and payouts"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_roles
from ...database import get_db
from ...models import User
from ...services.audit_service import audit_context
from ...shared.constants import ADMIN, PROVIDER_ROLES
from .schemas import (
    COMMISSION_STATUS_PATTERN,
    CommissionResponse,
    CommissionStats,
    PayoutRequest,
    PayoutResponse,
)
from .service import CommissionService

router = APIRouter(tags=["Commissions"])

providers_only = require_roles(*PROVIDER_ROLES)
admins_only = require_roles(ADMIN)


def get_commission_service(db: Session = Depends(get_db)) -> CommissionService:
    """Dependency injection for CommissionService"""
    return CommissionService(db)


@router.get("/commissions", response_model=list[CommissionResponse])
async def list_commissions(
    status: Optional[str] = Query(None, pattern=COMMISSION_STATUS_PATTERN),
    current_user: User = Depends(providers_only),
    service: CommissionService = Depends(get_commission_service),
):
    return service.get_commissions(current_user, status)


@router.get("/commissions/stats", response_model=CommissionStats)
async def commission_stats(
    current_user: User = Depends(providers_only),
    service: CommissionService = Depends(get_commission_service),
):
    return service.get_stats(current_user)


@router.post("/payouts", response_model=PayoutResponse, status_code=201)
async def request_payout(
    data: PayoutRequest,
    current_user: User = Depends(providers_only),
    service: CommissionService = Depends(get_commission_service),
):
    return service.request_payout(current_user, data)


@router.get("/payouts", response_model=list[PayoutResponse])
async def payout_history(
    current_user: User = Depends(providers_only),
    service: CommissionService = Depends(get_commission_service),
):
    return service.get_payouts(current_user)


@router.get("/admin/payouts", response_model=list[PayoutResponse])
async def all_payouts(
    status: Optional[str] = Query(None, pattern="^(PENDING|PROCESSED)$"),
    current_user: User = Depends(admins_only),
    service: CommissionService = Depends(get_commission_service),
):
    return service.list_all_payouts(status)


@router.post("/admin/payouts/{payout_id}/process", response_model=PayoutResponse)
async def process_payout(
    payout_id: int,
    current_user: User = Depends(admins_only),
    context: dict = Depends(audit_context),
    service: CommissionService = Depends(get_commission_service),
):
    """Mark a payout as sent; its commissions become PAID"""
    return service.process_payout(payout_id, current_user, context)
