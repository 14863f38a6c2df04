"""Review repository - Database operations for reviews"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...config import REVIEW_COLLECTION
from ...models import Review
from ..sync.tombstones import record_tombstones
from .schemas import ReviewSort

SORT_ORDERS = {
    ReviewSort.LATEST: (Review.created_at.desc(),),
    ReviewSort.OLDEST: (Review.created_at.asc(),),
    ReviewSort.STARS: (Review.stars.desc(), Review.created_at.desc()),
}


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_reviews(
        db: Session, venue_id: Optional[str] = None, sort: ReviewSort = ReviewSort.LATEST
    ) -> list[Review]:
        query = db.query(Review)
        if venue_id is not None:
            query = query.filter(Review.venue_id == venue_id)
        return query.order_by(*SORT_ORDERS[sort]).all()

    @staticmethod
    def get_review_by_id(db: Session, review_id: str) -> Optional[Review]:
        return db.query(Review).filter(Review.id == review_id).first()

    @staticmethod
    def get_rating_summary(db: Session, venue_id: str) -> tuple[Optional[float], int]:
        """(mean stars or None, review count)"""
        avg, count = (
            db.query(func.avg(Review.stars), func.count(Review.id))
            .filter(Review.venue_id == venue_id)
            .one()
        )
        return (float(avg) if avg is not None else None), int(count or 0)

    @staticmethod
    def create_review(db: Session, **review_data) -> Review:
        review = Review(**review_data)
        db.add(review)
        db.commit()
        db.refresh(review)
        return review

    @staticmethod
    def delete_review(db: Session, review: Review) -> None:
        record_tombstones(db, REVIEW_COLLECTION, [review.id])
        db.delete(review)
        db.commit()
