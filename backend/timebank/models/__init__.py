# backend/timebank/models/__init__.py
"""
Database models for the time-bank core.

Importing this package registers every table on ``Base.metadata``.
"""

from .availability import AvailabilitySlot
from .booking import BookingParty, BookingRequest, BookingStatus, DisputeStatus
from .credit_transaction import CreditTransaction, CreditTransactionKind
from .notification import Notification, NotificationType
from .profile import Profile
from .review import Review
from .service import Service

__all__ = [
    "AvailabilitySlot",
    "BookingParty",
    "BookingRequest",
    "BookingStatus",
    "CreditTransaction",
    "CreditTransactionKind",
    "DisputeStatus",
    "Notification",
    "NotificationType",
    "Profile",
    "Review",
    "Service",
]
