# backend/timebank/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .auth import get_current_user_id
from .database import get_db
from .services import (
    get_availability_service,
    get_booking_service,
    get_catalog_service,
    get_meeting_link_client,
    get_notification_service,
    get_profile_service,
    get_review_service,
    get_session_watch_service,
)

__all__ = [
    # Auth
    "get_current_user_id",
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_booking_service",
    "get_catalog_service",
    "get_meeting_link_client",
    "get_notification_service",
    "get_profile_service",
    "get_review_service",
    "get_session_watch_service",
]
