# backend/timebank/repositories/factory.py
"""
Repository Factory

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session


# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .booking_repository import BookingRepository
    from .credit_transaction_repository import CreditTransactionRepository
    from .notification_repository import NotificationRepository
    from .profile_repository import ProfileRepository
    from .review_repository import ReviewRepository
    from .service_repository import ServiceRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services never construct them directly.
    """

    @staticmethod
    def create_profile_repository(db: Session) -> "ProfileRepository":
        """Create repository for profiles and balances."""
        from .profile_repository import ProfileRepository

        return ProfileRepository(db)

    @staticmethod
    def create_service_repository(db: Session) -> "ServiceRepository":
        """Create repository for service listings."""
        from .service_repository import ServiceRepository

        return ServiceRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for availability slots."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking requests."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_credit_transaction_repository(db: Session) -> "CreditTransactionRepository":
        """Create repository for the credit movement ledger."""
        from .credit_transaction_repository import CreditTransactionRepository

        return CreditTransactionRepository(db)

    @staticmethod
    def create_review_repository(db: Session) -> "ReviewRepository":
        """Create repository for reviews."""
        from .review_repository import ReviewRepository

        return ReviewRepository(db)

    @staticmethod
    def create_notification_repository(db: Session) -> "NotificationRepository":
        """Create repository for notifications."""
        from .notification_repository import NotificationRepository

        return NotificationRepository(db)
