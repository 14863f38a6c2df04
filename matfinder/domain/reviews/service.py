"""Review service - Business logic for venue reviews"""

import logging
import math
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import user_identifier
from ...models import Review, UserAccount
from ..venues.repository import VenueRepository
from .repository import ReviewRepository
from .schemas import ReviewCreate, ReviewListResponse, ReviewResponse, ReviewSort

logger = logging.getLogger(__name__)


def average_rating(mean_stars: Optional[float]) -> int:
    """Mean stars rounded half-up; 0 when there are no reviews"""
    if mean_stars is None:
        return 0
    return int(math.floor(mean_stars + 0.5))


class ReviewService:
    """Service layer for review business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository()
        self.venue_repo = VenueRepository()

    def _get_venue(self, venue_id: str):
        venue = self.venue_repo.get_venue_by_id(self.db, venue_id)
        if not venue:
            raise HTTPException(status_code=404, detail="Gym not found")
        return venue

    def rating_summary(self, venue_id: str) -> tuple[int, int]:
        """(average rating, review count)"""
        mean, count = self.repo.get_rating_summary(self.db, venue_id)
        return average_rating(mean), count

    def list_reviews(self, venue_id: str, sort: ReviewSort = ReviewSort.LATEST) -> ReviewListResponse:
        self._get_venue(venue_id)
        reviews = self.repo.get_reviews(self.db, venue_id, sort)
        average, count = self.rating_summary(venue_id)
        return ReviewListResponse(
            venueId=venue_id,
            averageRating=average,
            reviewCount=count,
            reviews=[ReviewResponse.from_review(r) for r in reviews],
        )

    def list_all_reviews(self, sort: ReviewSort = ReviewSort.LATEST) -> list[Review]:
        return self.repo.get_reviews(self.db, None, sort)

    def create_review(self, venue_id: str, data: ReviewCreate, user: UserAccount) -> Review:
        venue = self._get_venue(venue_id)
        author_name = (data.authorName or "").strip() or user.user_name or user.name or "Anonymous"

        review = self.repo.create_review(
            self.db,
            venue_id=venue.id,
            stars=data.stars,
            review=data.review,
            author_name=author_name,
            author_user_id=user_identifier(user),
        )
        logger.info(f"⭐ Review {review.id} ({review.stars} stars) added to {venue.name}")
        return review

    def get_review(self, review_id: str) -> Review:
        review = self.repo.get_review_by_id(self.db, review_id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")
        return review

    def delete_review(self, review_id: str, user: UserAccount) -> dict:
        """Authors may remove their own reviews; admins may remove any"""
        review = self.get_review(review_id)
        is_author = review.author_user_id is not None and review.author_user_id in (
            user.id,
            user.firebase_uid,
        )
        if not user.is_admin and not is_author:
            raise HTTPException(status_code=403, detail="You can only delete your own reviews")

        self.repo.delete_review(self.db, review)
        logger.info(f"🗑️ Review {review_id} deleted by {user.email}")
        return {"message": "Review deleted successfully"}
