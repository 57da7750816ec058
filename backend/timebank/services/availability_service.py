# backend/timebank/services/availability_service.py
"""
Availability Service

Providers publish discrete slots per service. Slot availability is otherwise
only flipped by booking transitions.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    InvalidTimeRangeException,
    NotFoundException,
)
from ..models.availability import AvailabilitySlot
from ..repositories.factory import RepositoryFactory
from ..utils.time_helpers import ensure_utc, utc_now
from .base import BaseService

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    """Provider slot management."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)

    @BaseService.measure_operation("create_slot")
    def create_slot(
        self, provider_id: str, service_id: str, start_time: datetime, end_time: datetime
    ) -> AvailabilitySlot:
        start_time = ensure_utc(start_time)
        end_time = ensure_utc(end_time)
        if end_time <= start_time:
            raise InvalidTimeRangeException(start_time, end_time)

        with self.transaction():
            service = self.service_repository.get_by_id(service_id)
            if service is None:
                raise NotFoundException("Service not found", details={"service_id": service_id})
            if service.provider_id != provider_id:
                raise ForbiddenException("Slots can only be added to your own services")

            slot = self.availability_repository.create(
                provider_id=provider_id,
                service_id=service_id,
                start_time=start_time,
                end_time=end_time,
                is_available=True,
            )
        return slot

    def list_open_slots(
        self, service_id: str, now: Optional[datetime] = None
    ) -> List[AvailabilitySlot]:
        """Future slots of the service that nobody holds."""
        return self.availability_repository.list_open_slots(service_id, now or utc_now())

    @BaseService.measure_operation("delete_slot")
    def delete_slot(self, slot_id: str, provider_id: str) -> None:
        """
        Remove an unbooked slot that no booking has ever referenced.

        Raises:
            NotFoundException: unknown slot
            ForbiddenException: caller does not own the slot
            BusinessRuleException: slot is booked or referenced by a booking
        """
        with self.transaction():
            slot = self.availability_repository.get_slot_for_update(slot_id)
            if slot is None:
                raise NotFoundException("Slot not found", details={"availability_slot_id": slot_id})
            if slot.provider_id != provider_id:
                raise ForbiddenException("Only the provider can remove this slot")
            if not slot.is_available or self.availability_repository.is_referenced(slot_id):
                raise BusinessRuleException(
                    "Slot has bookings and cannot be removed",
                    code="SLOT_IN_USE",
                    details={"availability_slot_id": slot_id},
                )
            self.availability_repository.delete(slot_id)
        logger.info(f"Provider {provider_id} removed slot {slot_id}")
