"""Booking lifecycle: creation, provider decisions, cancellation, completion."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from tests.constants import AFTER_SESSION, OUTSIDER_ID, SLOT_END, SLOT_START
from timebank.core.exceptions import (
    ExternalServiceUnavailableException,
    ForbiddenException,
    InsufficientCreditsException,
    InvalidTimeRangeException,
    InvalidTransitionException,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from timebank.database import with_db_retry
from timebank.models.availability import AvailabilitySlot
from timebank.models.booking import BookingRequest, BookingStatus, DisputeStatus
from timebank.models.credit_transaction import CreditTransaction
from timebank.models.notification import Notification, NotificationType
from timebank.models.profile import Profile


def _balance(db, user_id: str) -> int:
    db.expire_all()
    return db.query(Profile).filter(Profile.user_id == user_id).one().time_credits


def _slot_available(db, slot_id: str) -> bool:
    db.expire_all()
    return db.get(AvailabilitySlot, slot_id).is_available


def _types_for(db, user_id: str) -> list[str]:
    return [
        n.type
        for n in db.query(Notification).filter(Notification.user_id == user_id).all()
    ]


class TestCreateBooking:
    def test_creates_pending_booking_with_snapshotted_price(
        self, db, booking_service, request_booking, learner, provider, slot
    ):
        booking = request_booking(booking_service)

        assert booking.status == BookingStatus.PENDING.value
        assert booking.credits_amount == 6
        assert booking.credits_transferred is False
        assert booking.dispute_status == DisputeStatus.NONE.value
        # pay-on-complete: nothing moves at creation, slot stays open
        assert _balance(db, learner.user_id) == 10
        assert _slot_available(db, slot.id) is True

    def test_notifies_provider_of_new_request(
        self, db, booking_service, request_booking, provider
    ):
        booking = request_booking(booking_service)

        notification = (
            db.query(Notification).filter(Notification.booking_request_id == booking.id).one()
        )
        assert notification.user_id == provider.user_id
        assert notification.type == NotificationType.BOOKING_REQUEST.value
        assert notification.title == "New Booking Request • Guitar Basics"
        assert notification.message == (
            'New request for "Guitar Basics" on 2030-01-10 10:00 UTC - 13:00 UTC.'
        )

    def test_insufficient_credits_persists_nothing(
        self, db, booking_service, request_booking, learner, slot
    ):
        learner.time_credits = 3
        db.commit()

        with pytest.raises(InsufficientCreditsException) as exc_info:
            request_booking(booking_service)

        assert exc_info.value.details["required"] == 6
        assert exc_info.value.details["available"] == 3
        assert db.query(BookingRequest).count() == 0
        assert db.query(Notification).count() == 0
        assert _slot_available(db, slot.id) is True

    def test_rejects_self_booking(self, booking_service, request_booking, provider):
        with pytest.raises(ValidationException) as exc_info:
            request_booking(
                booking_service, actor_id=provider.user_id, learner_id=provider.user_id
            )
        assert exc_info.value.code == "SELF_BOOKING"

    def test_rejects_booking_on_behalf_of_someone_else(self, booking_service, request_booking):
        with pytest.raises(ForbiddenException):
            request_booking(booking_service, actor_id=OUTSIDER_ID)

    def test_rejects_inverted_window(self, booking_service, request_booking):
        with pytest.raises(InvalidTimeRangeException):
            request_booking(
                booking_service,
                requested_start_time=SLOT_END,
                requested_end_time=SLOT_START,
            )

    def test_rejects_window_outside_slot(self, booking_service, request_booking):
        with pytest.raises(SlotUnavailableException):
            request_booking(
                booking_service,
                requested_end_time=SLOT_END + timedelta(hours=1),
            )

    def test_rejects_unavailable_slot(self, db, booking_service, request_booking, slot):
        slot.is_available = False
        db.commit()

        with pytest.raises(SlotUnavailableException):
            request_booking(booking_service)

    def test_rejects_inactive_service(self, db, booking_service, request_booking, service):
        service.is_active = False
        db.commit()

        with pytest.raises(SlotUnavailableException):
            request_booking(booking_service)

    def test_rejects_overlong_notes(self, booking_service, request_booking):
        with pytest.raises(ValidationException):
            request_booking(booking_service, learner_notes="x" * 1001)


class TestProviderDecisions:
    def test_confirm_holds_slot_and_attaches_meeting_link(
        self, db, booking_service, request_booking, slot, meeting_link_client
    ):
        booking = request_booking(booking_service)

        confirmed = booking_service.confirm_booking(booking.id, slot.provider_id)

        assert confirmed.status == BookingStatus.CONFIRMED.value
        assert confirmed.confirmed_at is not None
        assert confirmed.meeting_link == "https://meet.example.com/timebank-room"
        assert _slot_available(db, slot.id) is False
        meeting_link_client.create_link.assert_called_once_with(
            booking.id, SLOT_START, SLOT_END
        )

    def test_confirm_schedules_reminders_before_start(
        self, db, booking_service, request_booking, learner, provider
    ):
        booking = request_booking(booking_service)
        booking_service.confirm_booking(booking.id, provider.user_id)

        reminders = (
            db.query(Notification)
            .filter(Notification.type == NotificationType.BOOKING_REMINDER.value)
            .all()
        )
        assert {r.user_id for r in reminders} == {learner.user_id, provider.user_id}
        assert all(r.scheduled_for == SLOT_START - timedelta(minutes=60) for r in reminders)
        assert reminders[0].message == (
            'Your session for "Guitar Basics" starts at 2030-01-10 10:00 UTC. Please be ready.'
        )
        assert NotificationType.BOOKING_CONFIRMED.value in _types_for(db, learner.user_id)

    def test_confirm_survives_meeting_provider_outage(
        self, db, booking_service, request_booking, provider, meeting_link_client
    ):
        meeting_link_client.create_link.side_effect = ExternalServiceUnavailableException(
            "meeting_provider", "down"
        )
        booking = request_booking(booking_service)

        confirmed = booking_service.confirm_booking(booking.id, provider.user_id)

        assert confirmed.status == BookingStatus.CONFIRMED.value
        assert confirmed.meeting_link is None
        db.expire_all()
        assert db.get(BookingRequest, booking.id).status == BookingStatus.CONFIRMED.value

    def test_confirm_survives_failure_while_storing_meeting_link(
        self, db, booking_service, request_booking, provider
    ):
        booking = request_booking(booking_service)
        lock_booking = booking_service.repository.get_for_update
        calls = []

        def lock_fails_after_commit(booking_id):
            calls.append(booking_id)
            if len(calls) > 1:
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return lock_booking(booking_id)

        with patch.object(
            booking_service.repository, "get_for_update", side_effect=lock_fails_after_commit
        ):
            confirmed = with_db_retry(
                "confirm_booking",
                lambda: booking_service.confirm_booking(booking.id, provider.user_id),
            )

        assert len(calls) == 2
        assert confirmed.status == BookingStatus.CONFIRMED.value
        db.expire_all()
        stored = db.get(BookingRequest, booking.id)
        assert stored.status == BookingStatus.CONFIRMED.value
        assert stored.meeting_link is None

    def test_only_provider_can_confirm(self, booking_service, request_booking, learner):
        booking = request_booking(booking_service)
        with pytest.raises(ForbiddenException):
            booking_service.confirm_booking(booking.id, learner.user_id)

    def test_confirm_unknown_booking(self, booking_service, provider):
        with pytest.raises(NotFoundException):
            booking_service.confirm_booking("01UNKNOWN00000000000000000", provider.user_id)

    def test_confirm_twice_is_invalid_transition(
        self, booking_service, request_booking, provider
    ):
        booking = request_booking(booking_service)
        booking_service.confirm_booking(booking.id, provider.user_id)

        with pytest.raises(InvalidTransitionException):
            booking_service.confirm_booking(booking.id, provider.user_id)

    def test_confirm_fails_when_slot_taken_by_another_request(
        self, db, booking_service, request_booking, create_profile, provider, slot
    ):
        other = create_profile("01SECONDLEARNER00000000000", credits=10)
        first = request_booking(booking_service)
        second = request_booking(
            booking_service, actor_id=other.user_id, learner_id=other.user_id
        )
        booking_service.confirm_booking(first.id, provider.user_id)

        with pytest.raises(SlotUnavailableException):
            booking_service.confirm_booking(second.id, provider.user_id)

        db.expire_all()
        assert db.get(BookingRequest, second.id).status == BookingStatus.PENDING.value

    def test_decline_keeps_slot_and_balances(
        self, db, booking_service, request_booking, learner, provider, slot
    ):
        booking = request_booking(booking_service)

        declined = booking_service.decline_booking(
            booking.id, provider.user_id, provider_notes="Fully booked that week"
        )

        assert declined.status == BookingStatus.DECLINED.value
        assert declined.provider_notes == "Fully booked that week"
        assert _slot_available(db, slot.id) is True
        assert _balance(db, learner.user_id) == 10
        assert NotificationType.BOOKING_DECLINED.value in _types_for(db, learner.user_id)

    def test_decline_twice_is_invalid_transition(
        self, booking_service, request_booking, provider
    ):
        booking = request_booking(booking_service)
        booking_service.decline_booking(booking.id, provider.user_id)

        with pytest.raises(InvalidTransitionException):
            booking_service.decline_booking(booking.id, provider.user_id)

    def test_declining_a_losing_request_does_not_free_the_held_slot(
        self, db, booking_service, request_booking, create_profile, provider, slot
    ):
        other = create_profile("01SECONDLEARNER00000000000", credits=10)
        winner = request_booking(booking_service)
        loser = request_booking(booking_service, actor_id=other.user_id, learner_id=other.user_id)
        booking_service.confirm_booking(winner.id, provider.user_id)

        booking_service.decline_booking(loser.id, provider.user_id)

        assert _slot_available(db, slot.id) is False


class TestCancellation:
    def test_learner_cancels_pending(self, db, booking_service, request_booking, learner):
        booking = request_booking(booking_service)

        cancelled = booking_service.cancel_booking(booking.id, learner.user_id)

        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.cancelled_by == learner.user_id
        assert cancelled.cancelled_at is not None

    def test_cancel_confirmed_releases_slot_and_notifies_both(
        self, db, booking_service, request_booking, learner, provider, slot
    ):
        booking = request_booking(booking_service)
        booking_service.confirm_booking(booking.id, provider.user_id)

        booking_service.cancel_booking(booking.id, provider.user_id)

        assert _slot_available(db, slot.id) is True
        assert NotificationType.BOOKING_CANCELLED.value in _types_for(db, learner.user_id)
        assert NotificationType.BOOKING_CANCELLED.value in _types_for(db, provider.user_id)

    def test_outsider_cannot_cancel(self, booking_service, request_booking):
        booking = request_booking(booking_service)
        with pytest.raises(ForbiddenException):
            booking_service.cancel_booking(booking.id, OUTSIDER_ID)

    def test_cancel_terminal_booking_fails(self, booking_service, request_booking, learner):
        booking = request_booking(booking_service)
        booking_service.cancel_booking(booking.id, learner.user_id)

        with pytest.raises(InvalidTransitionException):
            booking_service.cancel_booking(booking.id, learner.user_id)


class TestSessionCompletion:
    def _confirmed(self, booking_service, request_booking, provider):
        booking = request_booking(booking_service)
        return booking_service.confirm_booking(booking.id, provider.user_id)

    def test_both_confirmations_complete_and_transfer(
        self, db, booking_service, request_booking, learner, provider
    ):
        booking = self._confirmed(booking_service, request_booking, provider)

        after_provider = booking_service.confirm_session(
            booking.id, provider.user_id, now=AFTER_SESSION
        )
        assert after_provider.status == BookingStatus.CONFIRMED.value
        assert _balance(db, learner.user_id) == 10

        completed = booking_service.confirm_session(booking.id, learner.user_id, now=AFTER_SESSION)

        assert completed.status == BookingStatus.COMPLETED.value
        assert completed.credits_transferred is True
        assert completed.meeting_link is None
        assert completed.completed_at is not None
        assert _balance(db, learner.user_id) == 4
        assert _balance(db, provider.user_id) == 6
        ledger = db.query(CreditTransaction).filter(CreditTransaction.booking_id == booking.id).all()
        assert [(t.kind, t.amount) for t in ledger] == [("transfer", 6)]
        assert NotificationType.SESSION_COMPLETED.value in _types_for(db, learner.user_id)

    def test_repeat_confirmation_is_a_no_op(
        self, booking_service, request_booking, learner, provider
    ):
        booking = self._confirmed(booking_service, request_booking, provider)
        first = booking_service.confirm_session(booking.id, learner.user_id, now=AFTER_SESSION)
        stamped_at = first.learner_confirmed_at

        again = booking_service.confirm_session(
            booking.id, learner.user_id, now=AFTER_SESSION + timedelta(hours=1)
        )

        assert again.status == BookingStatus.CONFIRMED.value
        assert again.learner_confirmed_at == stamped_at

    def test_confirm_before_session_ends_is_rejected(
        self, booking_service, request_booking, learner, provider
    ):
        booking = self._confirmed(booking_service, request_booking, provider)
        with pytest.raises(InvalidTransitionException):
            booking_service.confirm_session(
                booking.id, learner.user_id, now=SLOT_END - timedelta(minutes=5)
            )

    def test_confirm_after_completion_is_rejected(
        self, booking_service, request_booking, learner, provider
    ):
        booking = self._confirmed(booking_service, request_booking, provider)
        booking_service.confirm_session(booking.id, provider.user_id, now=AFTER_SESSION)
        booking_service.confirm_session(booking.id, learner.user_id, now=AFTER_SESSION)

        with pytest.raises(InvalidTransitionException) as exc_info:
            booking_service.confirm_session(booking.id, learner.user_id, now=AFTER_SESSION)
        assert "already been completed" in exc_info.value.message

    def test_completion_fails_when_learner_spent_credits_meanwhile(
        self, db, booking_service, request_booking, learner, provider
    ):
        booking = self._confirmed(booking_service, request_booking, provider)
        learner.time_credits = 2
        db.commit()
        booking_service.confirm_session(booking.id, provider.user_id, now=AFTER_SESSION)

        with pytest.raises(InsufficientCreditsException):
            booking_service.confirm_session(booking.id, learner.user_id, now=AFTER_SESSION)

        db.expire_all()
        stored = db.get(BookingRequest, booking.id)
        assert stored.status == BookingStatus.CONFIRMED.value
        assert stored.learner_confirmed is False
        assert stored.credits_transferred is False


class TestDisputes:
    def _ended(self, booking_service, request_booking, provider):
        booking = request_booking(booking_service)
        return booking_service.confirm_booking(booking.id, provider.user_id)

    def test_open_dispute_blocks_completion(
        self, db, booking_service, request_booking, learner, provider
    ):
        booking = self._ended(booking_service, request_booking, provider)

        disputed = booking_service.open_dispute(
            booking.id, learner.user_id, "  Provider never joined  ", now=AFTER_SESSION
        )
        assert disputed.dispute_status == DisputeStatus.OPEN.value
        assert disputed.dispute_reason == "Provider never joined"
        assert NotificationType.DISPUTE_OPENED.value in _types_for(db, provider.user_id)

        booking_service.confirm_session(booking.id, provider.user_id, now=AFTER_SESSION)
        result = booking_service.confirm_session(booking.id, learner.user_id, now=AFTER_SESSION)

        assert result.status == BookingStatus.CONFIRMED.value
        assert result.credits_transferred is False
        assert _balance(db, learner.user_id) == 10

    def test_second_dispute_rejected(self, booking_service, request_booking, learner, provider):
        booking = self._ended(booking_service, request_booking, provider)
        booking_service.open_dispute(booking.id, learner.user_id, "No show", now=AFTER_SESSION)

        with pytest.raises(InvalidTransitionException):
            booking_service.open_dispute(booking.id, provider.user_id, "I was there", now=AFTER_SESSION)

    def test_dispute_requires_reason(self, booking_service, request_booking, learner, provider):
        booking = self._ended(booking_service, request_booking, provider)
        with pytest.raises(ValidationException):
            booking_service.open_dispute(booking.id, learner.user_id, "   ", now=AFTER_SESSION)

    def test_resolve_with_complete_settles(
        self, db, booking_service, request_booking, learner, provider
    ):
        booking = self._ended(booking_service, request_booking, provider)
        booking_service.open_dispute(booking.id, learner.user_id, "Late start", now=AFTER_SESSION)

        resolved = booking_service.resolve_dispute(
            booking.id, "Session took place", "complete", now=AFTER_SESSION
        )

        assert resolved.status == BookingStatus.COMPLETED.value
        assert resolved.dispute_status == DisputeStatus.RESOLVED.value
        assert resolved.admin_resolution == "Session took place"
        assert _balance(db, provider.user_id) == 6

    def test_resolve_with_cancel_frees_slot_without_transfer(
        self, db, booking_service, request_booking, learner, provider, slot
    ):
        booking = self._ended(booking_service, request_booking, provider)
        booking_service.open_dispute(booking.id, learner.user_id, "No show", now=AFTER_SESSION)

        resolved = booking_service.resolve_dispute(booking.id, "Provider absent", "cancel")

        assert resolved.status == BookingStatus.CANCELLED.value
        assert resolved.cancelled_by is None
        assert _balance(db, learner.user_id) == 10
        assert _slot_available(db, slot.id) is True

    def test_resolve_without_open_dispute(self, booking_service, request_booking, provider):
        booking = self._ended(booking_service, request_booking, provider)
        with pytest.raises(InvalidTransitionException):
            booking_service.resolve_dispute(booking.id, "n/a", "complete")

    def test_resolve_rejects_unknown_outcome(self, booking_service, request_booking, provider):
        booking = self._ended(booking_service, request_booking, provider)
        with pytest.raises(ValidationException):
            booking_service.resolve_dispute(booking.id, "n/a", "refund")


class TestPayOnBook:
    def test_transfer_at_creation_and_reversal_on_cancel(
        self, db, pay_on_book_service, request_booking, learner, provider
    ):
        booking = request_booking(pay_on_book_service)
        assert booking.credits_transferred is True
        assert _balance(db, learner.user_id) == 4
        assert _balance(db, provider.user_id) == 6

        cancelled = pay_on_book_service.cancel_booking(booking.id, learner.user_id)

        assert cancelled.credits_transferred is False
        assert _balance(db, learner.user_id) == 10
        assert _balance(db, provider.user_id) == 0
        kinds = sorted(
            t.kind
            for t in db.query(CreditTransaction).filter(CreditTransaction.booking_id == booking.id)
        )
        assert kinds == ["reversal", "transfer"]

    def test_completion_does_not_transfer_twice(
        self, db, pay_on_book_service, request_booking, learner, provider
    ):
        booking = request_booking(pay_on_book_service)
        pay_on_book_service.confirm_booking(booking.id, provider.user_id)
        pay_on_book_service.confirm_session(booking.id, provider.user_id, now=AFTER_SESSION)

        completed = pay_on_book_service.confirm_session(
            booking.id, learner.user_id, now=AFTER_SESSION
        )

        assert completed.status == BookingStatus.COMPLETED.value
        assert _balance(db, learner.user_id) == 4
        assert _balance(db, provider.user_id) == 6
        assert db.query(CreditTransaction).count() == 1

    def test_decline_reverses(self, db, pay_on_book_service, request_booking, learner, provider):
        booking = request_booking(pay_on_book_service)

        pay_on_book_service.decline_booking(booking.id, provider.user_id)

        assert _balance(db, learner.user_id) == 10
        assert _balance(db, provider.user_id) == 0


class TestQueries:
    def test_get_booking_hidden_from_outsiders(self, booking_service, request_booking, learner):
        booking = request_booking(booking_service)

        assert booking_service.get_booking_for_user(booking.id, learner.user_id).id == booking.id
        with pytest.raises(NotFoundException):
            booking_service.get_booking_for_user(booking.id, OUTSIDER_ID)

    def test_list_bookings_filters_by_status(
        self, booking_service, request_booking, learner, provider
    ):
        booking = request_booking(booking_service)
        booking_service.cancel_booking(booking.id, learner.user_id)

        assert [b.id for b in booking_service.list_bookings(provider.user_id)] == [booking.id]
        assert booking_service.list_bookings(learner.user_id, status=BookingStatus.PENDING) == []
