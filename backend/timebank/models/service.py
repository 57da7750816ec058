# backend/timebank/models/service.py
"""
Service listing model.

A service is priced as ``duration_hours × credits_per_hour``. Bookings snapshot
that total at creation, so later edits never touch settled amounts.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, Integer, String, Text
import ulid

from ..database import Base
from .types import UTCDateTime


class Service(Base):
    """A skill offered by a provider, priced in time credits."""

    __tablename__ = "services"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    provider_id = Column(
        String(26), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, default="general")
    duration_hours = Column(Integer, nullable=False, default=1)
    credits_per_hour = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("duration_hours > 0", name="ck_services_duration_positive"),
        CheckConstraint("credits_per_hour > 0", name="ck_services_rate_positive"),
        Index("idx_services_provider", "provider_id"),
    )

    @property
    def total_cost(self) -> int:
        """Canonical price of one booking of this service."""
        return int(self.duration_hours) * int(self.credits_per_hour)

    def __repr__(self) -> str:
        return f"<Service {self.id}: {self.title!r} {self.total_cost} credits>"
