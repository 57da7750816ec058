# backend/timebank/routes/v1/notifications.py
"""Notification inbox and delivery routes - API v1."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import get_notification_service
from ...core.exceptions import DomainException
from ...schemas.notification import (
    MarkAllReadResponse,
    MarkSentRequest,
    MarkSentResponse,
    NotificationListResponse,
    NotificationResponse,
)
from ...services.notification_service import NotificationService
from .errors import handle_domain_exception

router = APIRouter(tags=["notifications-v1"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False),
    current_user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    """List notifications for the current user."""
    notifications = service.list_for_user(
        current_user_id, unread_only=unread_only, limit=limit, offset=offset
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(item) for item in notifications],
        unread_count=service.count_unread(current_user_id),
    )


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_notifications_read(
    current_user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=service.mark_all_read(current_user_id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    try:
        notification = service.mark_read(notification_id, current_user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return NotificationResponse.model_validate(notification)


@router.get("/due", response_model=list[NotificationResponse])
def list_due_notifications(
    limit: int = Query(100, ge=1, le=500),
    service: NotificationService = Depends(get_notification_service),
) -> list[NotificationResponse]:
    """Unsent notifications whose delivery time has come (for the delivery worker)."""
    return [NotificationResponse.model_validate(n) for n in service.get_due_notifications(limit=limit)]


@router.post("/sent", response_model=MarkSentResponse)
def mark_notifications_sent(
    payload: MarkSentRequest = Body(...),
    service: NotificationService = Depends(get_notification_service),
) -> MarkSentResponse:
    return MarkSentResponse(updated=service.mark_sent(payload.notification_ids))
