"""Commission repository - Database operations for commissions and payouts"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Commission, Payout
from ...shared.constants import COMMISSION_PENDING


class CommissionRepository:
    """Repository for commission and payout database operations"""

    @staticmethod
    def get_provider_commissions(
        db: Session, provider_id: int, status: Optional[str] = None
    ) -> list[Commission]:
        query = db.query(Commission).filter(Commission.provider_id == provider_id)
        if status:
            query = query.filter(Commission.status == status)
        return query.order_by(Commission.calculated_at.desc(), Commission.id.desc()).all()

    @staticmethod
    def get_unpaid_commissions(db: Session, provider_id: int) -> list[Commission]:
        """PENDING commissions not yet attached to a payout"""
        return (
            db.query(Commission)
            .filter(
                Commission.provider_id == provider_id,
                Commission.status == COMMISSION_PENDING,
                Commission.payout_id.is_(None),
            )
            .all()
        )

    @staticmethod
    def get_payout(db: Session, payout_id: int) -> Optional[Payout]:
        return db.query(Payout).filter(Payout.id == payout_id).first()

    @staticmethod
    def get_provider_payouts(db: Session, provider_id: int) -> list[Payout]:
        return (
            db.query(Payout)
            .filter(Payout.provider_id == provider_id)
            .order_by(Payout.requested_at.desc(), Payout.id.desc())
            .all()
        )

    @staticmethod
    def get_payouts(db: Session, status: Optional[str] = None) -> list[Payout]:
        query = db.query(Payout)
        if status:
            query = query.filter(Payout.status == status)
        return query.order_by(Payout.requested_at.desc(), Payout.id.desc()).all()
