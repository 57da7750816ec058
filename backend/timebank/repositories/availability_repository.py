# backend/timebank/repositories/availability_repository.py
"""
Availability Repository

Slot lookups plus the row lock taken before a slot is flipped.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import AvailabilitySlot
from ..models.booking import BookingRequest
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[AvailabilitySlot]):
    """Repository for provider availability slots."""

    def __init__(self, db: Session):
        super().__init__(db, AvailabilitySlot)
        self.logger = logging.getLogger(__name__)

    def get_slot_for_update(self, slot_id: str) -> Optional[AvailabilitySlot]:
        return self.get_by_id_for_update(slot_id)

    def list_open_slots(self, service_id: str, now: datetime) -> List[AvailabilitySlot]:
        """Future, still-available slots for a service in start order."""
        query = (
            self._build_query()
            .filter(
                AvailabilitySlot.service_id == service_id,
                AvailabilitySlot.is_available.is_(True),
                AvailabilitySlot.start_time > now,
            )
            .order_by(AvailabilitySlot.start_time.asc(), AvailabilitySlot.id.asc())
        )
        return self._execute_query(query)

    def is_referenced(self, slot_id: str) -> bool:
        """Whether any booking, in any status, points at the slot."""
        try:
            return (
                self.db.query(BookingRequest.id)
                .filter(BookingRequest.availability_slot_id == slot_id)
                .first()
                is not None
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to check references for slot %s: %s", slot_id, exc)
            raise RepositoryException("Failed to check slot references") from exc
