"""Wishlist router - a user's saved listings"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import SERVICE_TYPE_PATTERN, SavedListing, WishlistToggle
from .service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])


def get_wishlist_service(db: Session = Depends(get_db)) -> WishlistService:
    return WishlistService(db)


@router.get("", response_model=list[SavedListing])
async def my_wishlist(
    service_type: Optional[str] = Query(None, pattern=SERVICE_TYPE_PATTERN),
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service),
):
    return service.get_wishlist(current_user, service_type)


@router.post("/toggle")
async def toggle_wishlist(
    data: WishlistToggle,
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service),
):
    return service.toggle(data, current_user)


@router.get("/status")
async def wishlist_status(
    service_type: str = Query(..., pattern=SERVICE_TYPE_PATTERN),
    service_id: int = Query(...),
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service),
):
    """Whether the user saved a listing, plus how many users did"""
    return service.status(current_user, service_type, service_id)
