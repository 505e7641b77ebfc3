"""Review router - reviews, ratings and review requests"""

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...services.audit_service import audit_context
from ...shared.constants import ADMIN, PROVIDER_ROLES
from ..bookings.schemas import BookingSummary
from .schemas import (
    SERVICE_TYPE_PATTERN,
    RatingSummary,
    ReviewCreate,
    ReviewFlag,
    ReviewModeration,
    ReviewPage,
    ReviewReply,
    ReviewRequestResponse,
    ReviewResponse,
)
from .service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])

rate_limit_reviews = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="reviews")
providers_only = require_roles(*PROVIDER_ROLES)
admins_only = require_roles(ADMIN)


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


@router.post("", response_model=ReviewResponse, status_code=201)
async def create_review(
    data: ReviewCreate,
    background_tasks: BackgroundTasks,
    _: None = Depends(rate_limit_reviews),
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    """Review a confirmed or completed booking"""
    return service.create_review(data, current_user, background_tasks)


@router.get("/mine", response_model=list[ReviewResponse])
async def my_reviews(
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return service.get_user_reviews(current_user)


@router.get("/pending", response_model=list[BookingSummary])
async def bookings_pending_review(
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return service.get_pending_reviews(current_user)


@router.get("/requests", response_model=list[ReviewRequestResponse])
async def pending_review_requests(
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return service.get_pending_requests(current_user)


@router.get("/analytics")
async def review_analytics(
    current_user: User = Depends(providers_only),
    service: ReviewService = Depends(get_review_service),
):
    """Per-service averages, monthly trend and response rate for the provider"""
    return service.provider_analytics(current_user)


@router.get("/flagged", response_model=list[ReviewResponse])
async def flagged_reviews(
    current_user: User = Depends(admins_only),
    service: ReviewService = Depends(get_review_service),
):
    return service.get_flagged_reviews()


@router.get("/service/{service_type}/{service_id}", response_model=ReviewPage)
async def service_reviews(
    service_id: int,
    service_type: str = Path(..., pattern=SERVICE_TYPE_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    service: ReviewService = Depends(get_review_service),
):
    return service.get_service_reviews(service_type, service_id, page, limit)


@router.get("/service/{service_type}/{service_id}/summary", response_model=RatingSummary)
async def service_rating_summary(
    service_id: int,
    service_type: str = Path(..., pattern=SERVICE_TYPE_PATTERN),
    service: ReviewService = Depends(get_review_service),
):
    return service.get_summary(service_type, service_id)


@router.post("/{review_id}/reply", response_model=ReviewResponse)
async def reply_to_review(
    review_id: int,
    data: ReviewReply,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return service.reply(review_id, current_user, data.response)


@router.post("/{review_id}/flag", response_model=ReviewResponse)
async def flag_review(
    review_id: int,
    data: ReviewFlag,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return service.flag(review_id, current_user, data.reason)


@router.post("/{review_id}/moderate", response_model=ReviewResponse)
async def moderate_review(
    review_id: int,
    data: ReviewModeration,
    current_user: User = Depends(admins_only),
    context: dict = Depends(audit_context),
    service: ReviewService = Depends(get_review_service),
):
    return service.moderate(review_id, current_user, data.remove, context)


@router.delete("/{review_id}")
async def delete_review(
    review_id: int,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    return service.delete_review(review_id, current_user)
