# backend/timebank/services/settlement_service.py
"""
Settlement Engine

Moves time credits between the two parties of a booking exactly once.

Callers invoke these methods inside their own ``transaction()`` with the
booking row already locked. The engine then:

1. Locks both profiles in ascending user_id order
2. Re-validates the debited balance under the lock
3. Mutates both balances, flips ``credits_transferred`` and appends a ledger row

Any failure raises and the caller's transaction rolls back the whole transition.
"""

import logging
from typing import Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import SettlementPolicy, settings
from ..core.exceptions import (
    ConflictException,
    InsufficientCreditsException,
    ProfileNotFoundException,
)
from ..models.booking import BookingRequest
from ..models.credit_transaction import CreditTransactionKind
from ..models.profile import Profile
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class SettlementService(BaseService):
    """Exactly-once credit transfer and reversal for bookings."""

    def __init__(self, db: Session, policy: SettlementPolicy | None = None):
        super().__init__(db)
        self.policy: SettlementPolicy = policy or settings.settlement_policy
        self.profile_repository = RepositoryFactory.create_profile_repository(db)
        self.credit_transaction_repository = (
            RepositoryFactory.create_credit_transaction_repository(db)
        )

    @property
    def pays_on_book(self) -> bool:
        return self.policy == "pay_on_book"

    def _lock_parties(self, booking: BookingRequest) -> Dict[str, Profile]:
        profiles = self.profile_repository.lock_profiles([booking.learner_id, booking.provider_id])
        for user_id in (booking.learner_id, booking.provider_id):
            if user_id not in profiles:
                raise ProfileNotFoundException(user_id)
        return profiles

    def ensure_balance(self, user_id: str, amount: int) -> Profile:
        """
        Lock one profile and check it can cover ``amount``.

        Raises:
            ProfileNotFoundException: no profile row for the user
            InsufficientCreditsException: balance below amount
        """
        profile = self.profile_repository.lock_profiles([user_id]).get(user_id)
        if profile is None:
            raise ProfileNotFoundException(user_id)
        if profile.time_credits < amount:
            raise InsufficientCreditsException(user_id, amount, int(profile.time_credits))
        return profile

    def _record(self, booking: BookingRequest, kind: CreditTransactionKind, from_id: str, to_id: str) -> None:
        # Nothing on ``booking`` is readable once a failed flush poisons the session.
        booking_id = booking.id
        amount = int(booking.credits_amount)
        try:
            self.credit_transaction_repository.record(
                booking_id=booking_id,
                from_user_id=from_id,
                to_user_id=to_id,
                amount=amount,
                kind=kind,
            )
        except IntegrityError as exc:
            logger.error(f"Duplicate {kind.value} of {amount} credits rejected for booking {booking_id}")
            raise ConflictException(
                "Credits for this booking have already been settled",
                code="ALREADY_SETTLED",
                details={"booking_id": booking_id, "kind": kind.value},
            ) from exc

    def transfer(self, booking: BookingRequest) -> bool:
        """
        Move ``credits_amount`` from learner to provider.

        Returns:
            True if credits moved, False if the booking was already settled
        """
        if booking.credits_transferred:
            logger.info(f"Booking {booking.id} already transferred; skipping")
            return False

        profiles = self._lock_parties(booking)
        learner = profiles[booking.learner_id]
        provider = profiles[booking.provider_id]
        amount = int(booking.credits_amount)

        if learner.time_credits < amount:
            raise InsufficientCreditsException(learner.user_id, amount, int(learner.time_credits))

        learner.time_credits = learner.time_credits - amount
        provider.time_credits = provider.time_credits + amount
        booking.credits_transferred = True
        self._record(booking, CreditTransactionKind.TRANSFER, learner.user_id, provider.user_id)
        self.profile_repository.flush()

        prometheus_metrics.record_credit_movement(CreditTransactionKind.TRANSFER.value, amount)
        logger.info(
            f"Transferred {amount} credits {learner.user_id} -> {provider.user_id} "
            f"for booking {booking.id}"
        )
        return True

    def reverse(self, booking: BookingRequest) -> bool:
        """
        Undo a prior transfer: credit the learner, debit the provider.

        Returns:
            True if credits moved back, False if nothing had been transferred
        """
        if not booking.credits_transferred:
            return False

        profiles = self._lock_parties(booking)
        learner = profiles[booking.learner_id]
        provider = profiles[booking.provider_id]
        amount = int(booking.credits_amount)

        if provider.time_credits < amount:
            raise InsufficientCreditsException(provider.user_id, amount, int(provider.time_credits))

        provider.time_credits = provider.time_credits - amount
        learner.time_credits = learner.time_credits + amount
        booking.credits_transferred = False
        self._record(booking, CreditTransactionKind.REVERSAL, provider.user_id, learner.user_id)
        self.profile_repository.flush()

        prometheus_metrics.record_credit_movement(CreditTransactionKind.REVERSAL.value, amount)
        logger.info(
            f"Reversed {amount} credits {provider.user_id} -> {learner.user_id} "
            f"for booking {booking.id}"
        )
        return True

    def settle_on_create(self, booking: BookingRequest) -> None:
        """Creation hook: pay-on-book moves credits now, pay-on-complete only checks."""
        if self.pays_on_book:
            self.transfer(booking)
        else:
            self.ensure_balance(booking.learner_id, int(booking.credits_amount))

    def settle_on_complete(self, booking: BookingRequest) -> None:
        # Under pay-on-book the guard makes this a no-op.
        self.transfer(booking)

    def settle_on_abort(self, booking: BookingRequest) -> None:
        """Decline/cancel hook: return any credits the booking moved."""
        self.reverse(booking)
