"""Commission and payout schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

COMMISSION_STATUS_PATTERN = "^(PENDING|PAID|CANCELLED)$"


class CommissionResponse(BaseModel):
    id: int
    booking_id: int
    booking_type: str
    service_id: int
    provider_id: int
    amount: float
    percentage: float
    currency: str
    status: str
    payout_id: Optional[int] = None
    calculated_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CommissionStats(BaseModel):
    total_amount: float
    count: int
    by_status: dict[str, float]
    counts_by_status: dict[str, int]
    pending_amount: float
    currency: str


class PayoutRequest(BaseModel):
    payment_method: str = Field("BANK_TRANSFER", pattern="^(BANK_TRANSFER|PAYPAL|STRIPE)$")
    bank_details: Optional[dict] = None  # {"bank_name", "account_title", "account_number"} or {"paypal_email"}


class PayoutResponse(BaseModel):
    id: int
    provider_id: int
    amount: float
    currency: str
    status: str
    payment_method: str
    requested_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    commission_ids: list[int] = []

    model_config = ConfigDict(from_attributes=True)
