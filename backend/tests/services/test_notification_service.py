"""Notification inbox and delivery bookkeeping."""

from datetime import timedelta

import pytest

from tests.constants import SLOT_START
from timebank.core.exceptions import NotFoundException
from timebank.models.notification import NotificationType


@pytest.fixture
def confirmed_booking(booking_service, request_booking, provider):
    booking = request_booking(booking_service)
    return booking_service.confirm_booking(booking.id, provider.user_id)


class TestInbox:
    def test_unread_count_and_mark_read(self, notification_service, confirmed_booking, learner):
        # booking_confirmed + booking_reminder for the learner
        assert notification_service.count_unread(learner.user_id) == 2

        first = notification_service.list_for_user(learner.user_id)[0]
        marked = notification_service.mark_read(first.id, learner.user_id)

        assert marked.is_read is True
        assert notification_service.count_unread(learner.user_id) == 1
        assert len(notification_service.list_for_user(learner.user_id, unread_only=True)) == 1

    def test_mark_read_rejects_other_users_notification(
        self, notification_service, confirmed_booking, learner, provider
    ):
        theirs = notification_service.list_for_user(provider.user_id)[0]
        with pytest.raises(NotFoundException):
            notification_service.mark_read(theirs.id, learner.user_id)

    def test_mark_all_read(self, notification_service, confirmed_booking, provider):
        # booking_request + booking_confirmed + booking_reminder
        assert notification_service.mark_all_read(provider.user_id) == 3
        assert notification_service.count_unread(provider.user_id) == 0


class TestDelivery:
    def test_reminders_are_due_only_once_their_time_comes(
        self, notification_service, confirmed_booking
    ):
        remind_at = SLOT_START - timedelta(minutes=60)

        early = notification_service.get_due_notifications(now=remind_at - timedelta(minutes=1))
        assert NotificationType.BOOKING_REMINDER.value not in {n.type for n in early}

        due = notification_service.get_due_notifications(now=remind_at)
        assert sum(n.type == NotificationType.BOOKING_REMINDER.value for n in due) == 2

    def test_mark_sent_is_idempotent(self, notification_service, confirmed_booking):
        due = notification_service.get_due_notifications(now=SLOT_START)
        ids = [n.id for n in due]

        assert notification_service.mark_sent(ids) == len(ids)
        assert notification_service.mark_sent(ids) == 0
        assert notification_service.get_due_notifications(now=SLOT_START) == []


class TestEmitters:
    def test_dispute_notice_goes_to_counterparty(
        self, db, notification_service, confirmed_booking, learner, provider
    ):
        created = notification_service.notify_dispute_opened(confirmed_booking, learner.user_id)
        db.commit()

        assert [n.user_id for n in created] == [provider.user_id]
        assert created[0].title == "Dispute Opened • Guitar Basics"

    def test_dispute_notice_ignores_outsiders(self, notification_service, confirmed_booking):
        assert notification_service.notify_dispute_opened(confirmed_booking, "nobody") == []

    def test_session_starting_mentions_missing_link(
        self, db, notification_service, confirmed_booking, learner
    ):
        confirmed_booking.meeting_link = None
        notification = notification_service.notify_session_starting(
            confirmed_booking, learner.user_id
        )
        db.commit()

        assert notification.type == NotificationType.SESSION_STARTING.value
        assert notification.message.startswith("Meeting link not available yet")
