# backend/timebank/models/booking.py
"""
Booking request model for the time-bank.

A booking request moves through:

    pending ──confirm──> confirmed ──(both parties confirm, no dispute)──> completed
       │                    │
       ├──decline──> declined
       └──cancel───> cancelled <──cancel──┘

The price is snapshotted into ``credits_amount`` at creation. ``credits_transferred``
is the exactly-once settlement guard: it is only ever read and written while the
booking row and both profile rows are locked in the same transaction.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Awaiting provider decision
    CONFIRMED = "confirmed"  # Slot held, session scheduled
    DECLINED = "declined"  # Provider rejected the request
    CANCELLED = "cancelled"  # Either party withdrew
    COMPLETED = "completed"  # Both parties confirmed, credits settled


class DisputeStatus(str, Enum):
    """Post-session dispute state."""

    NONE = "none"
    OPEN = "open"
    RESOLVED = "resolved"


class BookingParty(str, Enum):
    """Role a user plays on a booking."""

    PROVIDER = "provider"
    LEARNER = "learner"


CANCELLABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class BookingRequest(Base):
    """
    A learner's request to consume one provider availability slot.

    Design: the booking references its slot but snapshots the price, so the
    settled amount never depends on later service edits.
    """

    __tablename__ = "booking_requests"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Core relationships
    availability_slot_id = Column(
        String(26), ForeignKey("availability_slots.id", ondelete="CASCADE"), nullable=False
    )
    service_id = Column(String(26), ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    provider_id = Column(
        String(26), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    learner_id = Column(
        String(26), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False, index=True
    )

    requested_start_time = Column(UTCDateTime, nullable=False)
    requested_end_time = Column(UTCDateTime, nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    # Settlement
    credits_amount = Column(Integer, nullable=False)
    credits_transferred = Column(Boolean, nullable=False, default=False)

    # Post-session dual confirmation
    provider_confirmed = Column(Boolean, nullable=False, default=False)
    learner_confirmed = Column(Boolean, nullable=False, default=False)
    provider_confirmed_at = Column(UTCDateTime, nullable=True)
    learner_confirmed_at = Column(UTCDateTime, nullable=True)

    # Disputes
    dispute_status = Column(String(20), nullable=False, default=DisputeStatus.NONE.value)
    dispute_reason = Column(Text, nullable=True)
    dispute_opened_by = Column(String(26), nullable=True)
    admin_resolution = Column(Text, nullable=True)

    # Session details
    meeting_link = Column(Text, nullable=True)
    learner_notes = Column(Text, nullable=True)
    provider_notes = Column(Text, nullable=True)

    # Reviews
    review_submitted = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    confirmed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)
    cancelled_by = Column(String(26), nullable=True)

    # Relationships
    service = relationship("Service", lazy="joined")
    availability_slot = relationship("AvailabilitySlot")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'declined', 'cancelled', 'completed')",
            name="ck_booking_requests_status",
        ),
        CheckConstraint(
            "dispute_status IN ('none', 'open', 'resolved')",
            name="ck_booking_requests_dispute_status",
        ),
        CheckConstraint("credits_amount > 0", name="ck_booking_requests_credits_positive"),
        CheckConstraint(
            "requested_end_time > requested_start_time",
            name="ck_booking_requests_time_range",
        ),
        CheckConstraint("learner_id <> provider_id", name="ck_booking_requests_distinct_parties"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.PENDING.value
        if not self.dispute_status:
            self.dispute_status = DisputeStatus.NONE.value

    def __repr__(self) -> str:
        return (
            f"<BookingRequest {self.id}: learner={self.learner_id}, "
            f"provider={self.provider_id}, status={self.status}, "
            f"credits={self.credits_amount}, transferred={self.credits_transferred}>"
        )

    @property
    def is_cancellable(self) -> bool:
        """Check if booking can be cancelled."""
        return self.status in {s.value for s in CANCELLABLE_STATUSES}

    @property
    def holds_slot(self) -> bool:
        """Only a confirmed booking owns its slot."""
        return self.status == BookingStatus.CONFIRMED.value

    @property
    def has_open_dispute(self) -> bool:
        return self.dispute_status == DisputeStatus.OPEN.value

    @property
    def ready_to_complete(self) -> bool:
        """Both parties confirmed and nothing blocks automatic completion."""
        return bool(
            self.provider_confirmed
            and self.learner_confirmed
            and self.dispute_status == DisputeStatus.NONE.value
            and self.status == BookingStatus.CONFIRMED.value
        )

    def party_of(self, user_id: str) -> Optional[BookingParty]:
        """Return the role ``user_id`` plays on this booking, if any."""
        if user_id == self.provider_id:
            return BookingParty.PROVIDER
        if user_id == self.learner_id:
            return BookingParty.LEARNER
        return None

    def counterparty_of(self, user_id: str) -> Optional[str]:
        if user_id == self.provider_id:
            return str(self.learner_id)
        if user_id == self.learner_id:
            return str(self.provider_id)
        return None

    def session_ended(self, now: datetime) -> bool:
        return self.requested_end_time <= now


Index(
    "ix_booking_requests_slot_status",
    BookingRequest.availability_slot_id,
    BookingRequest.status,
)

Index(
    "ix_booking_requests_start_status",
    BookingRequest.requested_start_time,
    BookingRequest.status,
)
