"""Wishlist domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

SERVICE_TYPE_PATTERN = "^(property|vehicle|tour)$"


class WishlistToggle(BaseModel):
    service_type: str = Field(..., pattern=SERVICE_TYPE_PATTERN)
    service_id: int
    action: str = Field(..., pattern="^(add|remove)$")


class SavedListing(BaseModel):
    service_type: str
    service_id: int
    name: Optional[str] = None
    city: Optional[str] = None
    price: Optional[float] = None
    rating: Optional[float] = None
    image: Optional[str] = None
    # False once the listing is deactivated, unapproved or gone
    available: bool
    saved_at: Optional[datetime] = None
