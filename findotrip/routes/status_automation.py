"""
API endpoint for manually running status automation
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import require_roles
from ..database import get_db
from ..email_service import send_review_invite_email
from ..models import User
from ..services.notification_service import queue_email
from ..services.status_automation import complete_finished_bookings, expire_review_requests
from ..shared.constants import ADMIN

router = APIRouter(prefix="/status", tags=["status"])


class AutomationResult(BaseModel):
    property_completed: int
    vehicle_completed: int
    tour_completed: int
    review_requests_created: int
    review_requests_expired: int
    total_updated: int


@router.post("/automation/run", response_model=AutomationResult)
async def run_status_automation(
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_roles(ADMIN)),
    db: Session = Depends(get_db),
):
    """
    Manually trigger status automation
    (In production this runs from the arq worker's daily cron)
    """
    result = complete_finished_bookings(db)
    for invite in result.pop("review_invites"):
        queue_email(background_tasks, send_review_invite_email, **invite)
    expired = expire_review_requests(db)
    return AutomationResult(**result, review_requests_expired=expired["expired"])
