# backend/timebank/repositories/review_repository.py
"""
Review Repository

Data access for reviews and the reviewee aggregate that feeds profile ratings.
"""

import logging
from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.review import Review
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReviewRepository(BaseRepository[Review]):
    """Repository for per-booking reviews."""

    def __init__(self, db: Session):
        super().__init__(db, Review)
        self.logger = logging.getLogger(__name__)

    def create(self, **kwargs) -> Review:
        """Create a review, exposing integrity errors for duplicate handling."""
        try:
            return super().create(**kwargs)
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exc.__cause__
            raise

    def exists_for_booking(self, booking_id: str) -> bool:
        return self.exists(booking_id=booking_id)

    def aggregate_for_reviewee(self, reviewee_id: str) -> Tuple[float, int]:
        """
        Return (average rating, review count) over every review of the reviewee.

        The average is 0.0 when the reviewee has no reviews.
        """
        try:
            avg_rating, total = (
                self.db.query(func.avg(Review.rating), func.count(Review.id))
                .filter(Review.reviewee_id == reviewee_id)
                .one()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to aggregate reviews for %s: %s", reviewee_id, exc)
            raise RepositoryException("Failed to aggregate reviews") from exc
        return (float(avg_rating) if avg_rating is not None else 0.0, int(total or 0))

    def list_for_reviewee(self, reviewee_id: str, limit: int = 100) -> List[Review]:
        query = (
            self._build_query()
            .filter(Review.reviewee_id == reviewee_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .limit(limit)
        )
        return self._execute_query(query)
