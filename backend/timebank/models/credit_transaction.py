# backend/timebank/models/credit_transaction.py
"""
Append-only record of every credit movement made by the settlement engine.

At most one ``transfer`` and at most one ``reversal`` may exist per booking; the
unique constraint backs the ``credits_transferred`` guard at the database level.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
import ulid

from ..database import Base
from .types import UTCDateTime


class CreditTransactionKind(str, Enum):
    TRANSFER = "transfer"  # learner -> provider
    REVERSAL = "reversal"  # provider -> learner, undoing a transfer


class CreditTransaction(Base):
    """One integer credit movement between the two parties of a booking."""

    __tablename__ = "credit_transactions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26), ForeignKey("booking_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_user_id = Column(String(26), ForeignKey("profiles.user_id"), nullable=False)
    to_user_id = Column(String(26), ForeignKey("profiles.user_id"), nullable=False)
    amount = Column(Integer, nullable=False)
    kind = Column(String(20), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("booking_id", "kind", name="uq_credit_transactions_booking_kind"),
        CheckConstraint("amount > 0", name="ck_credit_transactions_amount_positive"),
        CheckConstraint("kind IN ('transfer', 'reversal')", name="ck_credit_transactions_kind"),
        CheckConstraint("from_user_id <> to_user_id", name="ck_credit_transactions_distinct_users"),
    )

    def __repr__(self) -> str:
        return (
            f"<CreditTransaction {self.kind} {self.amount} "
            f"{self.from_user_id}->{self.to_user_id} booking={self.booking_id}>"
        )
