# backend/timebank/repositories/service_repository.py
"""
Service Repository

Listings offered by providers. A listing is considered priced-in once any
booking references it.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import BookingRequest
from ..models.service import Service
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ServiceRepository(BaseRepository[Service]):
    """Repository for service listings."""

    def __init__(self, db: Session):
        super().__init__(db, Service)
        self.logger = logging.getLogger(__name__)

    def has_bookings(self, service_id: str) -> bool:
        try:
            return (
                self.db.query(BookingRequest.id)
                .filter(BookingRequest.service_id == service_id)
                .first()
                is not None
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to check bookings for service %s: %s", service_id, exc)
            raise RepositoryException("Failed to check service bookings") from exc
