"""Review domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SERVICE_TYPE_PATTERN = "^(property|vehicle|tour)$"

CATEGORY_RATING_FIELDS = (
    "cleanliness_rating",
    "accuracy_rating",
    "communication_rating",
    "location_rating",
    "value_rating",
    "service_rating",
)


class ReviewCreate(BaseModel):
    booking_type: str = Field(..., pattern=SERVICE_TYPE_PATTERN)
    booking_id: int
    # Bounds are checked by the service so out-of-range ratings answer 400
    rating: int
    title: Optional[str] = Field(None, max_length=255)
    comment: str = Field(..., min_length=1, max_length=5000)
    cleanliness_rating: Optional[int] = None
    accuracy_rating: Optional[int] = None
    communication_rating: Optional[int] = None
    location_rating: Optional[int] = None
    value_rating: Optional[int] = None
    service_rating: Optional[int] = None
    pros: list[str] = []
    cons: list[str] = []
    images: list[str] = []


class ReviewReply(BaseModel):
    response: str = Field(..., min_length=1, max_length=2000)


class ReviewFlag(BaseModel):
    reason: str = Field(..., min_length=3, max_length=1000)


class ReviewModeration(BaseModel):
    remove: bool


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    provider_id: int
    booking_id: int
    booking_type: str
    service_id: int
    service_type: str
    rating: int
    title: Optional[str] = None
    comment: str
    cleanliness_rating: Optional[int] = None
    accuracy_rating: Optional[int] = None
    communication_rating: Optional[int] = None
    location_rating: Optional[int] = None
    value_rating: Optional[int] = None
    service_rating: Optional[int] = None
    pros: Optional[list] = None
    cons: Optional[list] = None
    images: Optional[list] = None
    verified: bool
    reviewer_name: str
    reviewer_avatar: Optional[str] = None
    stay_duration: Optional[int] = None
    owner_response: Optional[str] = None
    owner_response_at: Optional[datetime] = None
    is_active: bool
    flagged: bool
    flag_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReviewPage(BaseModel):
    items: list[ReviewResponse]
    total: int
    page: int
    limit: int


class RatingSummary(BaseModel):
    total: int
    average: float
    breakdown: dict[int, int]


class ReviewRequestResponse(BaseModel):
    id: int
    booking_id: int
    booking_type: str
    service_id: int
    service_type: str
    status: str
    requested_at: Optional[datetime] = None
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)
