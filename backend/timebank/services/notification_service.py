# backend/timebank/services/notification_service.py
"""
Notification Service

Appends user-facing notifications for booking transitions and serves the
inbox and due-delivery queries. Emitters flush but never commit: they run
inside the transition's transaction so a rolled-back transition leaves no
notifications behind.
"""

from datetime import datetime, timedelta
import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException
from ..models.booking import BookingRequest
from ..models.notification import Notification, NotificationType
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..utils.time_helpers import format_slot_end, format_slot_start, utc_now
from .base import BaseService

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """Notification emitter and inbox queries."""

    def __init__(self, db: Session, reminder_lead_minutes: Optional[int] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_notification_repository(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)
        self.reminder_lead = timedelta(
            minutes=(
                settings.reminder_lead_minutes
                if reminder_lead_minutes is None
                else reminder_lead_minutes
            )
        )

    # Emitters

    def _service_title(self, booking: BookingRequest) -> Optional[str]:
        service = booking.service
        if service is None and booking.service_id:
            service = self.service_repository.get_by_id(booking.service_id)
        return service.title if service is not None else None

    @staticmethod
    def _window(booking: BookingRequest) -> str:
        return (
            f"{format_slot_start(booking.requested_start_time)} - "
            f"{format_slot_end(booking.requested_end_time)}"
        )

    def _add(
        self,
        user_id: str,
        booking: Optional[BookingRequest],
        notification_type: NotificationType,
        title: str,
        message: str,
        scheduled_for: Optional[datetime] = None,
    ) -> Notification:
        notification = self.repository.create(
            user_id=user_id,
            booking_request_id=booking.id if booking is not None else None,
            type=notification_type.value,
            title=title,
            message=message,
            is_read=False,
            scheduled_for=scheduled_for,
        )
        prometheus_metrics.record_notification(notification_type.value)
        return notification

    def notify_booking_requested(self, booking: BookingRequest) -> List[Notification]:
        title = self._service_title(booking)
        if title:
            heading = f"New Booking Request • {title}"
            message = f'New request for "{title}" on {self._window(booking)}.'
        else:
            heading = "New Booking Request"
            message = "You have received a new booking request for your service."
        return [
            self._add(booking.provider_id, booking, NotificationType.BOOKING_REQUEST, heading, message)
        ]

    def notify_booking_confirmed(self, booking: BookingRequest) -> List[Notification]:
        """Confirmation notices for both parties plus their reminders."""
        title = self._service_title(booking)
        window = self._window(booking)
        if title:
            heading = f"Booking Confirmed • {title}"
            learner_msg = f'Your booking for "{title}" on {window} has been confirmed.'
            provider_msg = f'You confirmed a booking for "{title}" on {window}.'
            reminder_heading = f"Reminder • {title}"
            reminder_msg = (
                f'Your session for "{title}" starts at '
                f"{format_slot_start(booking.requested_start_time)}. Please be ready."
            )
        else:
            heading = "Booking Confirmed"
            learner_msg = "Your booking has been confirmed."
            provider_msg = "You confirmed a booking request."
            reminder_heading = "Session Reminder"
            reminder_msg = "Your session starts soon."

        remind_at = booking.requested_start_time - self.reminder_lead
        created = [
            self._add(booking.learner_id, booking, NotificationType.BOOKING_CONFIRMED, heading, learner_msg),
            self._add(booking.provider_id, booking, NotificationType.BOOKING_CONFIRMED, heading, provider_msg),
        ]
        for user_id in (booking.learner_id, booking.provider_id):
            created.append(
                self._add(
                    user_id,
                    booking,
                    NotificationType.BOOKING_REMINDER,
                    reminder_heading,
                    reminder_msg,
                    scheduled_for=remind_at,
                )
            )
        return created

    def notify_booking_declined(self, booking: BookingRequest) -> List[Notification]:
        title = self._service_title(booking)
        if title:
            heading = f"Booking Declined • {title}"
            message = f'Your booking for "{title}" on {self._window(booking)} was declined.'
        else:
            heading = "Booking Declined"
            message = "Your booking request has been declined by the provider."
        return [
            self._add(booking.learner_id, booking, NotificationType.BOOKING_DECLINED, heading, message)
        ]

    def notify_booking_cancelled(self, booking: BookingRequest) -> List[Notification]:
        title = self._service_title(booking)
        window = self._window(booking)
        if title:
            heading = f"Booking Cancelled • {title}"
            learner_msg = f'Your booking for "{title}" on {window} was cancelled.'
            provider_msg = f'The booking for "{title}" on {window} was cancelled.'
        else:
            heading = "Booking Cancelled"
            learner_msg = provider_msg = "The booking has been cancelled."
        return [
            self._add(booking.learner_id, booking, NotificationType.BOOKING_CANCELLED, heading, learner_msg),
            self._add(booking.provider_id, booking, NotificationType.BOOKING_CANCELLED, heading, provider_msg),
        ]

    def notify_session_completed(self, booking: BookingRequest) -> List[Notification]:
        title = self._service_title(booking)
        heading = f"Session Completed • {title}" if title else "Session Completed"
        message = "Credits have been transferred."
        return [
            self._add(user_id, booking, NotificationType.SESSION_COMPLETED, heading, message)
            for user_id in (booking.learner_id, booking.provider_id)
        ]

    def notify_dispute_opened(self, booking: BookingRequest, opened_by: str) -> List[Notification]:
        """Tell the other party a dispute now blocks completion."""
        counterparty = booking.counterparty_of(opened_by)
        if counterparty is None:
            return []
        title = self._service_title(booking)
        heading = f"Dispute Opened • {title}" if title else "Dispute Opened"
        message = (
            "The other participant reported a problem with this session. "
            "Credits stay on hold until the dispute is resolved."
        )
        return [self._add(counterparty, booking, NotificationType.DISPUTE_OPENED, heading, message)]

    def notify_session_starting(self, booking: BookingRequest, user_id: str) -> Notification:
        title = self._service_title(booking)
        heading = f"Session Starting • {title}" if title else "Session Starting"
        if booking.meeting_link:
            message = "Your session is about to start. Join using the meeting link."
        else:
            message = "Meeting link not available yet. Please check your booking details."
        return self._add(user_id, booking, NotificationType.SESSION_STARTING, heading, message)

    def has_notification(
        self, user_id: str, booking_id: str, notification_type: NotificationType
    ) -> bool:
        return self.repository.exists(
            user_id=user_id, booking_request_id=booking_id, type=notification_type.value
        )

    # Inbox and delivery queries

    def list_for_user(
        self, user_id: str, *, unread_only: bool = False, limit: int = 50, offset: int = 0
    ) -> List[Notification]:
        return self.repository.list_for_user(
            user_id, unread_only=unread_only, limit=limit, offset=offset
        )

    def count_unread(self, user_id: str) -> int:
        return self.repository.count_unread(user_id)

    @BaseService.measure_operation("mark_read")
    def mark_read(self, notification_id: str, user_id: str) -> Notification:
        with self.transaction():
            notification = self.repository.get_for_user(notification_id, user_id)
            if notification is None:
                raise NotFoundException(
                    "Notification not found", details={"notification_id": notification_id}
                )
            notification.is_read = True
            self.repository.flush()
        return notification

    @BaseService.measure_operation("mark_all_read")
    def mark_all_read(self, user_id: str) -> int:
        with self.transaction():
            count = self.repository.mark_all_read(user_id)
        return count

    def get_due_notifications(
        self, now: Optional[datetime] = None, limit: int = 100
    ) -> List[Notification]:
        """Unsent notifications ready for delivery (reminders once their time arrives)."""
        return self.repository.get_due(now or utc_now(), limit=limit)

    @BaseService.measure_operation("mark_sent")
    def mark_sent(self, notification_ids: Iterable[str], now: Optional[datetime] = None) -> int:
        """Stamp delivered notifications; already-sent ones keep their first timestamp."""
        sent_at = now or utc_now()
        updated = 0
        with self.transaction():
            for notification_id in notification_ids:
                notification = self.repository.get_by_id(notification_id)
                if notification is None or notification.sent_at is not None:
                    continue
                notification.sent_at = sent_at
                updated += 1
            self.repository.flush()
        return updated
