# backend/timebank/models/review.py
"""
Review model.

Design notes:
- One review per booking, enforced by a DB unique constraint on booking_id
- Only the learner of a completed booking may write it (checked in ReviewService)
- The reviewee's profile rating is recomputed from all their reviews after every change
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint
import ulid

from ..database import Base
from .types import UTCDateTime


class Review(Base):
    """
    Per-booking review submitted by the learner about the provider.
    """

    __tablename__ = "reviews"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))

    booking_id = Column(
        String(26), ForeignKey("booking_requests.id", ondelete="CASCADE"), nullable=False
    )
    service_id = Column(String(26), ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    reviewee_id = Column(
        String(26), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    reviewer_id = Column(
        String(26), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_reviews_booking"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        Index("idx_reviews_reviewee", "reviewee_id"),
        Index("idx_reviews_service", "service_id"),
        Index("idx_reviews_reviewer", "reviewer_id"),
    )
