# backend/timebank/services/review_service.py
"""
Review Service

One review per completed booking, written by the booking's learner about the
provider. The booking_id uniqueness constraint is what actually guarantees a
single review; the pre-check only produces a friendlier error on the common
path. After every insert, update or delete the reviewee's aggregate rating is
recomputed from scratch.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import MAX_REVIEW_COMMENT_LENGTH
from ..core.exceptions import (
    DuplicateReviewException,
    ForbiddenException,
    NotEligibleException,
    NotFoundException,
    ValidationException,
)
from ..models.booking import BookingStatus
from ..models.review import Review
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class ReviewService(BaseService):
    """Review gate and reviewee rating aggregation."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_review_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.profile_repository = RepositoryFactory.create_profile_repository(db)

    @staticmethod
    def _validate(rating: Optional[int], comment: Optional[str]) -> None:
        if rating is not None and (
            isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5
        ):
            raise ValidationException(
                "Rating must be an integer between 1 and 5",
                code="INVALID_RATING",
                details={"rating": rating},
            )
        if comment is not None and len(comment) > MAX_REVIEW_COMMENT_LENGTH:
            raise ValidationException(
                f"Comment must be at most {MAX_REVIEW_COMMENT_LENGTH} characters",
                code="COMMENT_TOO_LONG",
            )

    def _recompute_rating(self, reviewee_id: str) -> None:
        average, total = self.repository.aggregate_for_reviewee(reviewee_id)
        self.profile_repository.update_rating(reviewee_id, average, total)

    @BaseService.measure_operation("submit_review")
    def submit_review(
        self, booking_id: str, reviewer_id: str, rating: int, comment: Optional[str] = None
    ) -> Review:
        """
        Record the learner's review of a completed booking.

        Raises:
            ValidationException: rating outside 1..5 or comment too long
            NotFoundException: unknown booking
            NotEligibleException: booking not completed, or reviewer is not its learner
            DuplicateReviewException: a review already exists (including a concurrent insert)
        """
        if rating is None:
            raise ValidationException("Rating is required", code="INVALID_RATING")
        self._validate(rating, comment)

        with self.transaction():
            booking = self.booking_repository.get_for_update(booking_id)
            if booking is None:
                raise NotFoundException("Booking not found", details={"booking_id": booking_id})
            if booking.status != BookingStatus.COMPLETED.value:
                raise NotEligibleException(booking_id, "Only completed sessions can be reviewed")
            if booking.learner_id != reviewer_id:
                raise NotEligibleException(booking_id, "Only the learner can review this session")
            if self.repository.exists_for_booking(booking_id):
                raise DuplicateReviewException(booking_id)

            try:
                review = self.repository.create(
                    booking_id=booking_id,
                    service_id=booking.service_id,
                    reviewee_id=booking.provider_id,
                    reviewer_id=reviewer_id,
                    rating=rating,
                    comment=comment,
                )
            except IntegrityError as exc:
                logger.info(f"Concurrent review insert rejected for booking {booking_id}")
                raise DuplicateReviewException(booking_id) from exc

            booking.review_submitted = True
            self._recompute_rating(booking.provider_id)

        logger.info(f"Review {review.id} submitted for booking {booking_id} ({rating}/5)")
        return review

    def _get_own_review(self, review_id: str, reviewer_id: str) -> Review:
        review = self.repository.get_by_id(review_id)
        if review is None:
            raise NotFoundException("Review not found", details={"review_id": review_id})
        if review.reviewer_id != reviewer_id:
            raise ForbiddenException("You can only change your own reviews")
        return review

    @BaseService.measure_operation("update_review")
    def update_review(
        self,
        review_id: str,
        reviewer_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> Review:
        self._validate(rating, comment)

        with self.transaction():
            review = self._get_own_review(review_id, reviewer_id)
            if rating is not None:
                review.rating = rating
            if comment is not None:
                review.comment = comment
            self.repository.flush()
            self._recompute_rating(review.reviewee_id)
        return review

    @BaseService.measure_operation("delete_review")
    def delete_review(self, review_id: str, reviewer_id: str) -> None:
        with self.transaction():
            review = self._get_own_review(review_id, reviewer_id)
            reviewee_id = review.reviewee_id
            booking = self.booking_repository.get_by_id(review.booking_id, load_relationships=False)
            self.repository.delete(review_id)
            if booking is not None:
                booking.review_submitted = False
            self._recompute_rating(reviewee_id)

    def list_for_reviewee(self, reviewee_id: str, limit: int = 100) -> List[Review]:
        return self.repository.list_for_reviewee(reviewee_id, limit=limit)
