# backend/timebank/models/availability.py
"""
Availability slot model.

A slot is a discrete bookable window for one provider's service. ``is_available``
flips to False when a booking for the slot is confirmed and back to True when
that booking is declined or cancelled.
"""

from datetime import datetime, timezone
import logging

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, String
import ulid

from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class AvailabilitySlot(Base):
    """Provider time window that a learner can request"""

    __tablename__ = "availability_slots"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    provider_id = Column(
        String(26), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    service_id = Column(String(26), ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_availability_slots_time_range"),
        Index("idx_availability_slots_provider_service", "provider_id", "service_id"),
        Index("idx_availability_slots_time_range", "start_time", "end_time"),
    )

    def __repr__(self) -> str:
        state = "open" if self.is_available else "booked"
        return f"<AvailabilitySlot {self.id} {self.start_time}-{self.end_time} {state}>"
