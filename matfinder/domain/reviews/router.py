"""Review router"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_verified_user
from ...database import get_db
from ...models import UserAccount
from .schemas import ReviewCreate, ReviewListResponse, ReviewResponse, ReviewSort
from .service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


@router.get("/venues/{venue_id}/reviews", response_model=ReviewListResponse)
async def list_reviews(
    venue_id: str,
    sort: ReviewSort = Query(ReviewSort.LATEST),
    service: ReviewService = Depends(get_review_service),
):
    """Reviews for a gym with the rounded average rating"""
    return service.list_reviews(venue_id, sort)


@router.post(
    "/venues/{venue_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    venue_id: str,
    data: ReviewCreate,
    current_user: UserAccount = Depends(get_verified_user),
    service: ReviewService = Depends(get_review_service),
):
    review = service.create_review(venue_id, data, current_user)
    return ReviewResponse.from_review(review)


@router.delete("/reviews/{review_id}")
async def delete_review(
    review_id: str,
    current_user: UserAccount = Depends(get_verified_user),
    service: ReviewService = Depends(get_review_service),
):
    return service.delete_review(review_id, current_user)


__all__ = ["router"]
