# backend/timebank/models/profile.py
"""
Profile model for the time-bank.

A profile carries the user's time-credit balance (the ledger row) and the
aggregate rating recomputed from reviews. Balances are only mutated by the
settlement engine and by account creation.
"""

from datetime import datetime, timezone
import logging

from sqlalchemy import CheckConstraint, Column, Float, Integer, String, Text
import ulid

from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class Profile(Base):
    """Marketplace member with an integer time-credit balance."""

    __tablename__ = "profiles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    bio = Column(Text, nullable=True)

    time_credits = Column(Integer, nullable=False, default=0)

    # Aggregates over reviews where this user is the reviewee
    rating = Column(Float, nullable=False, default=0.0)
    total_reviews = Column(Integer, nullable=False, default=0)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("time_credits >= 0", name="ck_profiles_time_credits_non_negative"),
        CheckConstraint("total_reviews >= 0", name="ck_profiles_total_reviews_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Profile {self.user_id}: credits={self.time_credits}>"
