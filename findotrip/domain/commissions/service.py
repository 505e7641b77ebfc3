"""Commission service - platform commission ledger and provider payouts"""

import logging
from collections import defaultdict
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import DEFAULT_CURRENCY
from ...models import Payout, User
from ...services.audit_service import AUDIT_PAYOUT_PROCESSED, record_audit
from ...shared.constants import (
    COMMISSION_PAID,
    COMMISSION_PENDING,
    PAYOUT_PENDING,
    PAYOUT_PROCESSED,
)
from ...shared.sanitization import sanitize_string
from ...shared.timeutils import utcnow
from ..pricing.engine import round_money
from .repository import CommissionRepository
from .schemas import PayoutRequest

logger = logging.getLogger(__name__)


class CommissionService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = CommissionRepository()

    def get_commissions(self, provider: User, status: Optional[str] = None):
        return self.repo.get_provider_commissions(self.db, provider.id, status)

    def get_stats(self, provider: User) -> dict:
        commissions = self.repo.get_provider_commissions(self.db, provider.id)
        by_status = defaultdict(float)
        counts = defaultdict(int)
        for commission in commissions:
            by_status[commission.status] += commission.amount
            counts[commission.status] += 1

        return {
            "total_amount": round_money(sum(c.amount for c in commissions)),
            "count": len(commissions),
            "by_status": {k: round_money(v) for k, v in by_status.items()},
            "counts_by_status": dict(counts),
            "pending_amount": round_money(by_status.get(COMMISSION_PENDING, 0.0)),
            "currency": commissions[0].currency if commissions else DEFAULT_CURRENCY,
        }

    def request_payout(self, provider: User, data: PayoutRequest) -> Payout:
        """Bundle every unpaid PENDING commission into a single payout request"""
        commissions = self.repo.get_unpaid_commissions(self.db, provider.id)
        if not commissions:
            raise HTTPException(status_code=400, detail="No pending commissions available for payout")

        bank_details = None
        if data.bank_details:
            bank_details = {k: sanitize_string(str(v)) for k, v in data.bank_details.items()}

        payout = Payout(
            provider_id=provider.id,
            amount=round_money(sum(c.amount for c in commissions)),
            currency=commissions[0].currency,
            status=PAYOUT_PENDING,
            payment_method=data.payment_method,
            bank_details=bank_details,
        )
        self.db.add(payout)
        self.db.flush()
        for commission in commissions:
            commission.payout_id = payout.id

        self.db.commit()
        self.db.refresh(payout)
        logger.info(
            f"💸 Payout {payout.id} requested by provider {provider.id}: "
            f"{payout.amount} {payout.currency} over {len(commissions)} commissions"
        )
        return payout

    def get_payouts(self, provider: User):
        return self.repo.get_provider_payouts(self.db, provider.id)

    def list_all_payouts(self, status: Optional[str] = None):
        return self.repo.get_payouts(self.db, status)

    def process_payout(
        self, payout_id: int, admin: User, context: Optional[dict] = None
    ) -> Payout:
        payout = self.repo.get_payout(self.db, payout_id)
        if not payout:
            raise HTTPException(status_code=404, detail="Payout not found")
        if payout.status == PAYOUT_PROCESSED:
            raise HTTPException(status_code=400, detail="Payout has already been processed")

        now = utcnow()
        payout.status = PAYOUT_PROCESSED
        payout.processed_at = now
        for commission in payout.commissions:
            if commission.status == COMMISSION_PENDING:
                commission.status = COMMISSION_PAID
                commission.paid_at = now
        record_audit(
            self.db,
            admin,
            AUDIT_PAYOUT_PROCESSED,
            "payout",
            payout.id,
            details={
                "provider_id": payout.provider_id,
                "amount": payout.amount,
                "currency": payout.currency,
                "payment_method": payout.payment_method,
            },
            severity="high",
            context=context,
        )

        self.db.commit()
        self.db.refresh(payout)
        logger.info(f"✅ Payout {payout.id} processed for provider {payout.provider_id}")
        return payout
