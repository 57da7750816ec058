# backend/timebank/schemas/notification.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import StandardizedModel, StrictModel


class NotificationResponse(StandardizedModel):
    id: str
    user_id: str
    booking_request_id: Optional[str] = None
    type: str
    title: str
    message: str
    is_read: bool
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    created_at: datetime


class NotificationListResponse(StandardizedModel):
    notifications: List[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(StandardizedModel):
    updated: int


class MarkSentRequest(StrictModel):
    notification_ids: List[str] = Field(..., min_length=1)


class MarkSentResponse(StandardizedModel):
    updated: int
