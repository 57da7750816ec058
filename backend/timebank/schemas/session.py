# backend/timebank/schemas/session.py
from typing import List

from .base import StandardizedModel
from .booking import BookingResponse
from .notification import NotificationResponse


class SessionListResponse(StandardizedModel):
    sessions: List[BookingResponse]


class SessionAnnouncementResponse(StandardizedModel):
    notifications: List[NotificationResponse]
