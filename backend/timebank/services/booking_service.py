# backend/timebank/services/booking_service.py
"""
Booking Service

Drives a booking request through its lifecycle:

    create (learner) -> confirm | decline (provider) -> confirm_session x2 -> completed
    pending or confirmed -> cancel (either party)

Every transition is one unit of work: lock the booking row, validate the
precondition, mutate the booking, then the slot, then balances, then append
notifications. Any exception rolls the whole step back.

The meeting link is requested after the confirm transaction commits so the
network call never holds row locks; a failure there leaves the link empty.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import MAX_DISPUTE_REASON_LENGTH, MAX_NOTES_LENGTH
from ..core.exceptions import (
    DomainException,
    ExternalServiceUnavailableException,
    ForbiddenException,
    InvalidTimeRangeException,
    InvalidTransitionException,
    NotFoundException,
    ProfileNotFoundException,
    RepositoryException,
    SlotUnavailableException,
    ValidationException,
)
from ..integrations.meeting_link_client import MeetingLinkClient
from ..models.booking import BookingRequest, BookingStatus, DisputeStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..utils.time_helpers import ensure_utc, utc_now
from .base import BaseService
from .notification_service import NotificationService
from .settlement_service import SettlementService

logger = logging.getLogger(__name__)

DISPUTE_OUTCOMES = ("complete", "cancel")


class BookingService(BaseService):
    """
    Service layer for the booking lifecycle and its settlement.
    """

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        settlement_service: Optional[SettlementService] = None,
        meeting_link_client: Optional[MeetingLinkClient] = None,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            notification_service: Optional notification service instance
            settlement_service: Optional settlement engine (policy comes from settings otherwise)
            meeting_link_client: Optional meeting-link client
        """
        super().__init__(db)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)
        self.profile_repository = RepositoryFactory.create_profile_repository(db)
        self.notification_service = notification_service or NotificationService(db)
        self.settlement_service = settlement_service or SettlementService(db)
        self.meeting_link_client = meeting_link_client or MeetingLinkClient.from_settings()

    # Helpers

    def _lock_booking(self, booking_id: str) -> BookingRequest:
        booking = self.repository.get_for_update(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @staticmethod
    def _require_provider(booking: BookingRequest, user_id: str, action: str) -> None:
        if booking.provider_id != user_id:
            raise ForbiddenException(
                f"Only the provider can {action} this booking",
                details={"booking_id": booking.id},
            )

    @staticmethod
    def _require_party(booking: BookingRequest, user_id: str) -> None:
        if booking.party_of(user_id) is None:
            raise ForbiddenException(
                "You are not a participant in this booking",
                details={"booking_id": booking.id},
            )

    @staticmethod
    def _require_status(booking: BookingRequest, expected: BookingStatus, action: str) -> None:
        if booking.status != expected.value:
            raise InvalidTransitionException(booking.id, booking.status, action)

    def _release_slot(self, booking: BookingRequest, held: bool) -> None:
        """Free the slot, but only when this booking was the one holding it."""
        if not held:
            return
        slot = self.availability_repository.get_slot_for_update(booking.availability_slot_id)
        if slot is not None:
            slot.is_available = True
            self.availability_repository.flush()

    def _record_transition(self, booking: BookingRequest) -> None:
        prometheus_metrics.record_booking_transition(booking.status)
        self.log_operation(
            "booking_transition", booking_id=booking.id, status=booking.status
        )

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        actor_id: str,
        availability_slot_id: str,
        service_id: str,
        provider_id: str,
        learner_id: str,
        requested_start_time: datetime,
        requested_end_time: datetime,
        learner_notes: Optional[str] = None,
    ) -> BookingRequest:
        """
        Create a pending booking request for an available slot.

        Raises:
            ForbiddenException: actor is not the learner
            ValidationException: learner is the provider, or notes too long
            InvalidTimeRangeException: end not after start
            SlotUnavailableException: slot missing, mismatched, or taken
            ProfileNotFoundException: learner has no profile
            InsufficientCreditsException: balance below the service price
        """
        if actor_id != learner_id:
            raise ForbiddenException("You can only create bookings for yourself")
        if learner_id == provider_id:
            raise ValidationException("You cannot book your own service", code="SELF_BOOKING")

        requested_start_time = ensure_utc(requested_start_time)
        requested_end_time = ensure_utc(requested_end_time)
        if requested_end_time <= requested_start_time:
            raise InvalidTimeRangeException(requested_start_time, requested_end_time)
        if learner_notes is not None and len(learner_notes) > MAX_NOTES_LENGTH:
            raise ValidationException(
                f"Notes must be at most {MAX_NOTES_LENGTH} characters", code="NOTES_TOO_LONG"
            )

        with self.transaction():
            if self.profile_repository.get_by_user_id(learner_id) is None:
                raise ProfileNotFoundException(learner_id)

            service = self.service_repository.get_by_id(service_id)
            if service is None or not service.is_active or service.provider_id != provider_id:
                raise SlotUnavailableException(
                    availability_slot_id, "This service is not available for booking"
                )

            slot = self.availability_repository.get_slot_for_update(availability_slot_id)
            if (
                slot is None
                or slot.service_id != service_id
                or slot.provider_id != provider_id
                or not slot.is_available
            ):
                raise SlotUnavailableException(availability_slot_id)
            if requested_start_time < slot.start_time or requested_end_time > slot.end_time:
                raise SlotUnavailableException(
                    availability_slot_id, "Requested time is outside the selected slot"
                )

            booking = self.repository.create(
                availability_slot_id=availability_slot_id,
                service_id=service_id,
                provider_id=provider_id,
                learner_id=learner_id,
                requested_start_time=requested_start_time,
                requested_end_time=requested_end_time,
                status=BookingStatus.PENDING.value,
                credits_amount=service.total_cost,
                learner_notes=learner_notes,
            )
            self.settlement_service.settle_on_create(booking)
            self.notification_service.notify_booking_requested(booking)

        self._record_transition(booking)
        logger.info(
            f"Booking {booking.id} requested by {learner_id} for slot {availability_slot_id} "
            f"({booking.credits_amount} credits)"
        )
        return booking

    # Provider decisions

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(
        self, booking_id: str, provider_id: str, now: Optional[datetime] = None
    ) -> BookingRequest:
        """
        Accept a pending request: hold the slot, notify, schedule reminders.

        Raises:
            NotFoundException, ForbiddenException, InvalidTransitionException,
            SlotUnavailableException
        """
        now = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            booking = self._lock_booking(booking_id)
            self._require_provider(booking, provider_id, "confirm")
            self._require_status(booking, BookingStatus.PENDING, "confirm")

            slot = self.availability_repository.get_slot_for_update(booking.availability_slot_id)
            if slot is None or not slot.is_available:
                raise SlotUnavailableException(
                    booking.availability_slot_id, "This time slot has already been booked"
                )
            slot.is_available = False

            booking.status = BookingStatus.CONFIRMED.value
            booking.confirmed_at = now
            self.repository.flush()
            self.notification_service.notify_booking_confirmed(booking)

        self._record_transition(booking)
        self._attach_meeting_link(booking)
        return booking

    def _attach_meeting_link(self, booking: BookingRequest) -> None:
        """Best-effort: runs after the confirm commit and never raises."""
        booking_id = booking.id
        try:
            link = self.meeting_link_client.create_link(
                booking_id, booking.requested_start_time, booking.requested_end_time
            )
        except ExternalServiceUnavailableException as exc:
            logger.warning(f"Meeting link unavailable for booking {booking_id}: {exc.message}")
            return

        try:
            with self.transaction():
                locked = self._lock_booking(booking_id)
                if locked.status == BookingStatus.CONFIRMED.value and not locked.meeting_link:
                    locked.meeting_link = link
                    self.repository.flush()
        except (DomainException, RepositoryException) as exc:
            logger.warning(f"Could not store meeting link for booking {booking_id}: {exc}")
            return
        booking.meeting_link = locked.meeting_link

    @BaseService.measure_operation("decline_booking")
    def decline_booking(
        self, booking_id: str, provider_id: str, provider_notes: Optional[str] = None
    ) -> BookingRequest:
        if provider_notes is not None and len(provider_notes) > MAX_NOTES_LENGTH:
            raise ValidationException(
                f"Notes must be at most {MAX_NOTES_LENGTH} characters", code="NOTES_TOO_LONG"
            )

        with self.transaction():
            booking = self._lock_booking(booking_id)
            self._require_provider(booking, provider_id, "decline")
            self._require_status(booking, BookingStatus.PENDING, "decline")

            held = booking.holds_slot
            booking.status = BookingStatus.DECLINED.value
            if provider_notes is not None:
                booking.provider_notes = provider_notes
            self.repository.flush()

            self._release_slot(booking, held)
            self.settlement_service.settle_on_abort(booking)
            self.notification_service.notify_booking_declined(booking)

        self._record_transition(booking)
        return booking

    # Either party

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, booking_id: str, user_id: str, now: Optional[datetime] = None
    ) -> BookingRequest:
        """
        Withdraw a pending or confirmed booking.

        Raises:
            NotFoundException: unknown booking
            ForbiddenException: caller is not a participant
            InvalidTransitionException: booking already terminal
        """
        now = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            booking = self._lock_booking(booking_id)
            self._require_party(booking, user_id)
            if not booking.is_cancellable:
                raise InvalidTransitionException(booking.id, booking.status, "cancel")

            self._cancel(booking, now, cancelled_by=user_id)

        self._record_transition(booking)
        return booking

    def _cancel(self, booking: BookingRequest, now: datetime, cancelled_by: Optional[str]) -> None:
        held = booking.holds_slot
        booking.status = BookingStatus.CANCELLED.value
        booking.cancelled_at = now
        booking.cancelled_by = cancelled_by
        self.repository.flush()

        self._release_slot(booking, held)
        self.settlement_service.settle_on_abort(booking)
        self.notification_service.notify_booking_cancelled(booking)

    # Post-session

    def _require_ended_session(self, booking: BookingRequest, now: datetime, action: str) -> None:
        if booking.status == BookingStatus.COMPLETED.value:
            raise InvalidTransitionException(
                booking.id, booking.status, action, "This session has already been completed"
            )
        self._require_status(booking, BookingStatus.CONFIRMED, action)
        if not booking.session_ended(now):
            raise InvalidTransitionException(
                booking.id, booking.status, action, "The session has not ended yet"
            )

    @BaseService.measure_operation("confirm_session")
    def confirm_session(
        self, booking_id: str, user_id: str, now: Optional[datetime] = None
    ) -> BookingRequest:
        """
        Record one party's post-session confirmation.

        Repeating a confirmation is a no-op. When the second party confirms and
        no dispute is open the booking completes and credits settle in the same
        transaction.
        """
        now = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            booking = self._lock_booking(booking_id)
            self._require_party(booking, user_id)
            self._require_ended_session(booking, now, "confirm session for")

            if booking.provider_id == user_id and not booking.provider_confirmed:
                booking.provider_confirmed = True
                booking.provider_confirmed_at = now
            elif booking.learner_id == user_id and not booking.learner_confirmed:
                booking.learner_confirmed = True
                booking.learner_confirmed_at = now
            self.repository.flush()

            completed = self._evaluate_completion(booking, now)

        if completed:
            self._record_transition(booking)
        return booking

    @BaseService.measure_operation("open_dispute")
    def open_dispute(
        self, booking_id: str, user_id: str, reason: str, now: Optional[datetime] = None
    ) -> BookingRequest:
        """
        Flag a problem with an ended session; blocks completion until resolved.
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationException("A dispute reason is required", code="DISPUTE_REASON_REQUIRED")
        if len(reason) > MAX_DISPUTE_REASON_LENGTH:
            raise ValidationException(
                f"Reason must be at most {MAX_DISPUTE_REASON_LENGTH} characters",
                code="DISPUTE_REASON_TOO_LONG",
            )

        now = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            booking = self._lock_booking(booking_id)
            self._require_party(booking, user_id)
            self._require_ended_session(booking, now, "dispute")
            if booking.dispute_status != DisputeStatus.NONE.value:
                raise InvalidTransitionException(
                    booking.id,
                    booking.status,
                    "dispute",
                    "A dispute has already been raised for this booking",
                )

            booking.dispute_status = DisputeStatus.OPEN.value
            booking.dispute_opened_by = user_id
            booking.dispute_reason = reason
            self.repository.flush()
            self.notification_service.notify_dispute_opened(booking, user_id)

        logger.warning(f"Dispute opened on booking {booking.id} by {user_id}")
        return booking

    @BaseService.measure_operation("resolve_dispute")
    def resolve_dispute(
        self,
        booking_id: str,
        resolution: str,
        outcome: str,
        now: Optional[datetime] = None,
    ) -> BookingRequest:
        """
        Close an open dispute from back-office tooling.

        Args:
            booking_id: Disputed booking
            resolution: Free-text note stored as ``admin_resolution``
            outcome: "complete" settles the booking, "cancel" aborts it
        """
        if outcome not in DISPUTE_OUTCOMES:
            raise ValidationException(
                "Outcome must be 'complete' or 'cancel'",
                code="INVALID_OUTCOME",
                details={"outcome": outcome},
            )
        if not resolution or not resolution.strip():
            raise ValidationException("A resolution note is required", code="RESOLUTION_REQUIRED")

        now = ensure_utc(now) if now is not None else utc_now()
        with self.transaction():
            booking = self._lock_booking(booking_id)
            if not booking.has_open_dispute or booking.status != BookingStatus.CONFIRMED.value:
                raise InvalidTransitionException(
                    booking.id, booking.status, "resolve dispute for", "No open dispute on this booking"
                )

            booking.admin_resolution = resolution.strip()
            booking.dispute_status = DisputeStatus.RESOLVED.value
            if outcome == "complete":
                self._complete(booking, now)
            else:
                self._cancel(booking, now, cancelled_by=None)

        self._record_transition(booking)
        logger.info(f"Dispute on booking {booking.id} resolved with outcome {outcome}")
        return booking

    def _evaluate_completion(self, booking: BookingRequest, now: datetime) -> bool:
        if not booking.ready_to_complete:
            return False
        self._complete(booking, now)
        return True

    def _complete(self, booking: BookingRequest, now: datetime) -> None:
        booking.status = BookingStatus.COMPLETED.value
        booking.completed_at = now
        booking.meeting_link = None
        self.repository.flush()

        self.settlement_service.settle_on_complete(booking)
        self.notification_service.notify_session_completed(booking)

    # Queries

    def get_booking_for_user(self, booking_id: str, user_id: str) -> BookingRequest:
        booking = self.repository.get_by_id(booking_id)
        if booking is None or booking.party_of(user_id) is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    def list_bookings(
        self, user_id: str, status: Optional[BookingStatus] = None, limit: int = 100
    ) -> List[BookingRequest]:
        return self.repository.list_for_user(user_id, status=status, limit=limit)
