# backend/timebank/repositories/__init__.py
"""
Repository layer for the time-bank core.

Repositories encapsulate data access and flush but never commit.
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .credit_transaction_repository import CreditTransactionRepository
from .factory import RepositoryFactory
from .notification_repository import NotificationRepository
from .profile_repository import ProfileRepository
from .review_repository import ReviewRepository
from .service_repository import ServiceRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "BookingRepository",
    "CreditTransactionRepository",
    "NotificationRepository",
    "ProfileRepository",
    "RepositoryFactory",
    "ReviewRepository",
    "ServiceRepository",
]
