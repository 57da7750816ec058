# backend/timebank/repositories/credit_transaction_repository.py
"""
Credit Transaction Repository

Append-only writes of settlement movements. Integrity errors are surfaced
unwrapped so the settlement engine can tell a duplicate movement apart from
other data failures.
"""

import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.credit_transaction import CreditTransaction, CreditTransactionKind
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CreditTransactionRepository(BaseRepository[CreditTransaction]):
    """Repository for the credit movement ledger."""

    def __init__(self, db: Session):
        super().__init__(db, CreditTransaction)
        self.logger = logging.getLogger(__name__)

    def record(
        self,
        *,
        booking_id: str,
        from_user_id: str,
        to_user_id: str,
        amount: int,
        kind: CreditTransactionKind,
    ) -> CreditTransaction:
        try:
            return self.create(
                booking_id=booking_id,
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                amount=amount,
                kind=kind.value,
            )
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exc.__cause__
            raise

    def list_for_user(self, user_id: str, limit: int = 100) -> List[CreditTransaction]:
        query = (
            self._build_query()
            .filter(
                (CreditTransaction.from_user_id == user_id)
                | (CreditTransaction.to_user_id == user_id)
            )
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
            .limit(limit)
        )
        return self._execute_query(query)
