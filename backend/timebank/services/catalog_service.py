# backend/timebank/services/catalog_service.py
"""
Catalog Service

Service listings offered by providers. Pricing fields freeze once the first
booking references a listing.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    ProfileNotFoundException,
    ValidationException,
)
from ..models.service import Service
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

PRICING_FIELDS = frozenset({"duration_hours", "credits_per_hour"})
EDITABLE_FIELDS = frozenset({"title", "description", "category", "is_active"}) | PRICING_FIELDS


class CatalogService(BaseService):
    """Create and edit service listings."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)
        self.profile_repository = RepositoryFactory.create_profile_repository(db)

    @staticmethod
    def _validate_pricing(duration_hours: Any, credits_per_hour: Any) -> None:
        for name, value in (("duration_hours", duration_hours), ("credits_per_hour", credits_per_hour)):
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValidationException(
                    f"{name} must be a positive integer",
                    code="INVALID_PRICING",
                    details={name: value},
                )

    @staticmethod
    def _clean_title(title: Any) -> str:
        if not isinstance(title, str) or not title.strip():
            raise ValidationException("Title is required", code="INVALID_TITLE")
        return title.strip()

    @BaseService.measure_operation("create_service")
    def create_service(
        self,
        provider_id: str,
        title: str,
        duration_hours: int,
        credits_per_hour: int,
        description: str = "",
        category: str = "general",
    ) -> Service:
        self._validate_pricing(duration_hours, credits_per_hour)
        title = self._clean_title(title)

        with self.transaction():
            if self.profile_repository.get_by_user_id(provider_id) is None:
                raise ProfileNotFoundException(provider_id)
            service = self.service_repository.create(
                provider_id=provider_id,
                title=title,
                description=description,
                category=category,
                duration_hours=duration_hours,
                credits_per_hour=credits_per_hour,
                is_active=True,
            )

        logger.info(f"Provider {provider_id} listed service {service.id} at {service.total_cost} credits")
        return service

    @BaseService.measure_operation("update_service")
    def update_service(self, service_id: str, provider_id: str, updates: Dict[str, Any]) -> Service:
        """
        Apply a partial update to a listing.

        Raises:
            NotFoundException: unknown service
            ForbiddenException: caller is not the listing's provider
            BusinessRuleException: pricing change on a listing that has bookings
        """
        unknown = set(updates) - EDITABLE_FIELDS
        if unknown:
            raise ValidationException(
                "Unsupported fields in update",
                code="INVALID_FIELDS",
                details={"fields": sorted(unknown)},
            )
        self._validate_pricing(updates.get("duration_hours"), updates.get("credits_per_hour"))
        if "title" in updates:
            updates = {**updates, "title": self._clean_title(updates["title"])}

        with self.transaction():
            service: Optional[Service] = self.service_repository.get_by_id(service_id)
            if service is None:
                raise NotFoundException("Service not found", details={"service_id": service_id})
            if service.provider_id != provider_id:
                raise ForbiddenException("Only the provider can edit this service")

            pricing_changes = {
                key for key in PRICING_FIELDS & set(updates) if updates[key] != getattr(service, key)
            }
            if pricing_changes and self.service_repository.has_bookings(service_id):
                raise BusinessRuleException(
                    "Pricing cannot change once a booking references this service",
                    code="PRICING_LOCKED",
                    details={"service_id": service_id, "fields": sorted(pricing_changes)},
                )

            for key, value in updates.items():
                setattr(service, key, value)
            self.service_repository.flush()

        return service
