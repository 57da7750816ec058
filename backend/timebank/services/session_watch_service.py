# backend/timebank/services/session_watch_service.py
"""
Session Watch Service

Read-only queries an external poller (cron, worker, or client refresh) calls to
surface time-based prompts. The core runs no timers of its own.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import SESSION_WATCH_LIMIT
from ..models.booking import BookingRequest
from ..models.notification import Notification, NotificationType
from ..repositories.factory import RepositoryFactory
from ..utils.time_helpers import ensure_utc, utc_now
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class SessionWatchService(BaseService):
    """Windows over confirmed and completed bookings for one user."""

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        window_before_minutes: Optional[int] = None,
        window_after_minutes: Optional[int] = None,
    ):
        super().__init__(db)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.notification_service = notification_service or NotificationService(db)
        self.window_before = timedelta(
            minutes=(
                settings.session_window_before_minutes
                if window_before_minutes is None
                else window_before_minutes
            )
        )
        self.window_after = timedelta(
            minutes=(
                settings.session_window_after_minutes
                if window_after_minutes is None
                else window_after_minutes
            )
        )

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else utc_now()

    def sessions_starting(
        self, user_id: str, now: Optional[datetime] = None, limit: int = SESSION_WATCH_LIMIT
    ) -> List[BookingRequest]:
        """Confirmed sessions starting within [now - before, now + after]."""
        current = self._now(now)
        return self.repository.get_confirmed_starting_between(
            user_id, current - self.window_before, current + self.window_after, limit
        )

    def todays_sessions(self, user_id: str, now: Optional[datetime] = None) -> List[BookingRequest]:
        """Pending and confirmed sessions starting on the current UTC day."""
        current = self._now(now)
        day_start = current.replace(hour=0, minute=0, second=0, microsecond=0)
        return self.repository.get_for_user_between(
            user_id, day_start, day_start + timedelta(days=1)
        )

    def awaiting_confirmation(
        self, user_id: str, now: Optional[datetime] = None, limit: int = SESSION_WATCH_LIMIT
    ) -> List[BookingRequest]:
        """Ended sessions that still need this user's post-session confirmation."""
        return self.repository.get_confirmed_awaiting_confirmation(user_id, self._now(now), limit)

    def awaiting_review(
        self, user_id: str, limit: int = SESSION_WATCH_LIMIT
    ) -> List[BookingRequest]:
        return self.repository.get_completed_awaiting_review(user_id, limit)

    @BaseService.measure_operation("announce_starting_sessions")
    def announce_starting_sessions(
        self, user_id: str, now: Optional[datetime] = None
    ) -> List[Notification]:
        """
        Append one session_starting notification per starting session.

        Sessions already announced to the user are skipped, so pollers can
        call this on every tick.
        """
        created: List[Notification] = []
        with self.transaction():
            for booking in self.sessions_starting(user_id, now):
                if self.notification_service.has_notification(
                    user_id, booking.id, NotificationType.SESSION_STARTING
                ):
                    continue
                created.append(self.notification_service.notify_session_starting(booking, user_id))
        return created
