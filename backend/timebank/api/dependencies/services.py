# backend/timebank/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...integrations.meeting_link_client import MeetingLinkClient
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.catalog_service import CatalogService
from ...services.notification_service import NotificationService
from ...services.profile_service import ProfileService
from ...services.review_service import ReviewService
from ...services.session_watch_service import SessionWatchService
from .database import get_db


def get_meeting_link_client() -> MeetingLinkClient:
    return MeetingLinkClient.from_settings()


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def get_booking_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
    meeting_link_client: MeetingLinkClient = Depends(get_meeting_link_client),
) -> BookingService:
    """
    Get booking service instance with all dependencies.

    Args:
        db: Database session
        notification_service: Notification emitter sharing the same session
        meeting_link_client: Meeting-link provisioning client

    Returns:
        BookingService instance
    """
    return BookingService(
        db,
        notification_service=notification_service,
        meeting_link_client=meeting_link_client,
    )


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


def get_session_watch_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> SessionWatchService:
    return SessionWatchService(db, notification_service=notification_service)


def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)
