"""Settlement engine: exactly-once transfer, reversal, and the ledger guard."""

import pytest

from tests.constants import OUTSIDER_ID
from timebank.core.exceptions import (
    ConflictException,
    InsufficientCreditsException,
    ProfileNotFoundException,
)
from timebank.models.credit_transaction import CreditTransaction, CreditTransactionKind
from timebank.models.profile import Profile
from timebank.services.settlement_service import SettlementService


@pytest.fixture
def pending_booking(booking_service, request_booking):
    return request_booking(booking_service)


def _balances(db, *user_ids):
    db.expire_all()
    rows = db.query(Profile).filter(Profile.user_id.in_(user_ids)).all()
    by_id = {p.user_id: p.time_credits for p in rows}
    return tuple(by_id[u] for u in user_ids)


class TestTransfer:
    def test_moves_credits_and_writes_ledger_row(self, db, pending_booking, learner, provider):
        engine = SettlementService(db, policy="pay_on_complete")

        assert engine.transfer(pending_booking) is True
        db.commit()

        assert _balances(db, learner.user_id, provider.user_id) == (4, 6)
        row = db.query(CreditTransaction).one()
        assert row.kind == CreditTransactionKind.TRANSFER.value
        assert (row.from_user_id, row.to_user_id, row.amount) == (
            learner.user_id,
            provider.user_id,
            6,
        )

    def test_second_transfer_is_skipped(self, db, pending_booking, learner, provider):
        engine = SettlementService(db)
        engine.transfer(pending_booking)

        assert engine.transfer(pending_booking) is False
        db.commit()

        assert _balances(db, learner.user_id, provider.user_id) == (4, 6)
        assert db.query(CreditTransaction).count() == 1

    def test_ledger_rejects_double_settlement_when_flag_is_stale(
        self, db, pending_booking, learner
    ):
        engine = SettlementService(db)
        engine.transfer(pending_booking)
        db.commit()

        # Simulate a second writer that never saw the flag flip
        pending_booking.credits_transferred = False
        learner.time_credits = 20
        db.commit()
        booking_id = pending_booking.id
        with pytest.raises(ConflictException) as exc_info:
            engine.transfer(pending_booking)
        assert exc_info.value.code == "ALREADY_SETTLED"
        assert exc_info.value.details == {"booking_id": booking_id, "kind": "transfer"}
        db.rollback()

        assert db.query(CreditTransaction).count() == 1
        assert _balances(db, learner.user_id) == (20,)

    def test_insufficient_balance_under_lock(self, db, pending_booking, learner):
        learner.time_credits = 5
        db.commit()

        with pytest.raises(InsufficientCreditsException):
            SettlementService(db).transfer(pending_booking)
        db.rollback()

        assert pending_booking.credits_transferred is False

    def test_missing_profile(self, db):
        with pytest.raises(ProfileNotFoundException):
            SettlementService(db).ensure_balance(OUTSIDER_ID, 1)


class TestReverse:
    def test_reverse_restores_balances(self, db, pending_booking, learner, provider):
        engine = SettlementService(db)
        engine.transfer(pending_booking)

        assert engine.reverse(pending_booking) is True
        db.commit()

        assert _balances(db, learner.user_id, provider.user_id) == (10, 0)
        assert pending_booking.credits_transferred is False
        kinds = sorted(t.kind for t in db.query(CreditTransaction).all())
        assert kinds == ["reversal", "transfer"]

    def test_reverse_without_transfer_is_noop(self, db, pending_booking):
        assert SettlementService(db).reverse(pending_booking) is False
        assert db.query(CreditTransaction).count() == 0

    def test_reverse_fails_if_provider_spent_credits(self, db, pending_booking, provider):
        engine = SettlementService(db)
        engine.transfer(pending_booking)
        db.commit()
        provider.time_credits = 1
        db.commit()

        with pytest.raises(InsufficientCreditsException):
            engine.reverse(pending_booking)
        db.rollback()


class TestPolicyHooks:
    def test_pay_on_complete_only_checks_at_creation(self, db, pending_booking, learner):
        engine = SettlementService(db, policy="pay_on_complete")
        engine.settle_on_create(pending_booking)
        db.commit()

        assert engine.pays_on_book is False
        assert _balances(db, learner.user_id) == (10,)

    def test_pay_on_book_transfers_at_creation(self, db, pending_booking, learner):
        engine = SettlementService(db, policy="pay_on_book")
        engine.settle_on_create(pending_booking)
        db.commit()

        assert engine.pays_on_book is True
        assert _balances(db, learner.user_id) == (4,)
