"""Review domain schemas"""

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import require_text


class ReviewSort(str, enum.Enum):
    LATEST = "latest"
    OLDEST = "oldest"
    STARS = "stars"


class ReviewCreate(BaseModel):
    stars: int
    review: str
    authorName: Optional[str] = None

    @field_validator("stars")
    @classmethod
    def validate_stars(cls, v):
        if not 1 <= v <= 5:
            raise ValueError("Stars must be between 1 and 5")
        return v

    @field_validator("review")
    @classmethod
    def validate_review(cls, v):
        return require_text(v, "Review text")


class ReviewResponse(BaseModel):
    id: str
    venueId: str
    stars: int
    review: str
    authorName: str
    authorUserId: Optional[str] = None
    createdTimestamp: datetime

    @classmethod
    def from_review(cls, review) -> "ReviewResponse":
        return cls(
            id=review.id,
            venueId=review.venue_id,
            stars=review.stars,
            review=review.review,
            authorName=review.author_name,
            authorUserId=review.author_user_id,
            createdTimestamp=review.created_at,
        )


class ReviewListResponse(BaseModel):
    venueId: str
    averageRating: int
    reviewCount: int
    reviews: list[ReviewResponse]
