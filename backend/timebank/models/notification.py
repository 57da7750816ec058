"""
Notification model.

Rows are appended by the core on every booking transition and consumed by an
external delivery surface (in-app inbox, push, email). Reminders carry a
``scheduled_for`` time and are picked up once due.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, String, Text
import ulid

from ..database import Base
from .types import UTCDateTime


class NotificationType(str, Enum):
    BOOKING_REQUEST = "booking_request"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_DECLINED = "booking_declined"
    BOOKING_REMINDER = "booking_reminder"
    BOOKING_CANCELLED = "booking_cancelled"
    SESSION_STARTING = "session_starting"
    SESSION_COMPLETED = "session_completed"
    DISPUTE_OPENED = "dispute_opened"


NOTIFICATION_TYPES = tuple(t.value for t in NotificationType)


class Notification(Base):
    """In-app notification inbox entries."""

    __tablename__ = "notifications"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(
        String(26), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    booking_request_id = Column(
        String(26), ForeignKey("booking_requests.id", ondelete="CASCADE"), nullable=True
    )
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    scheduled_for = Column(UTCDateTime, nullable=True)
    sent_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint(
            "type IN ('booking_request', 'booking_confirmed', 'booking_declined', "
            "'booking_reminder', 'booking_cancelled', 'session_starting', "
            "'session_completed', 'dispute_opened')",
            name="ck_notifications_type",
        ),
        Index("ix_notifications_user_is_read", "user_id", "is_read"),
        Index("ix_notifications_scheduled_for", "scheduled_for"),
        Index("ix_notifications_booking", "booking_request_id"),
    )


__all__ = ["Notification", "NotificationType", "NOTIFICATION_TYPES"]
