# backend/timebank/routes/v1/sessions.py
"""
Session watch routes - API v1

Poll targets for clients and schedulers. Each endpoint is a pure read except
/starting/announce, which appends at most one session_starting notification
per booking and user.
"""

from fastapi import APIRouter, Depends

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import get_session_watch_service
from ...schemas.booking import BookingResponse
from ...schemas.notification import NotificationResponse
from ...schemas.session import SessionAnnouncementResponse, SessionListResponse
from ...services.session_watch_service import SessionWatchService

router = APIRouter(tags=["sessions-v1"])


def _sessions(bookings: list) -> SessionListResponse:
    return SessionListResponse(sessions=[BookingResponse.model_validate(b) for b in bookings])


@router.get("/starting", response_model=SessionListResponse)
def sessions_starting(
    current_user_id: str = Depends(get_current_user_id),
    service: SessionWatchService = Depends(get_session_watch_service),
) -> SessionListResponse:
    return _sessions(service.sessions_starting(current_user_id))


@router.post("/starting/announce", response_model=SessionAnnouncementResponse)
def announce_starting_sessions(
    current_user_id: str = Depends(get_current_user_id),
    service: SessionWatchService = Depends(get_session_watch_service),
) -> SessionAnnouncementResponse:
    created = service.announce_starting_sessions(current_user_id)
    return SessionAnnouncementResponse(
        notifications=[NotificationResponse.model_validate(n) for n in created]
    )


@router.get("/today", response_model=SessionListResponse)
def todays_sessions(
    current_user_id: str = Depends(get_current_user_id),
    service: SessionWatchService = Depends(get_session_watch_service),
) -> SessionListResponse:
    return _sessions(service.todays_sessions(current_user_id))


@router.get("/awaiting-confirmation", response_model=SessionListResponse)
def awaiting_confirmation(
    current_user_id: str = Depends(get_current_user_id),
    service: SessionWatchService = Depends(get_session_watch_service),
) -> SessionListResponse:
    return _sessions(service.awaiting_confirmation(current_user_id))


@router.get("/awaiting-review", response_model=SessionListResponse)
def awaiting_review(
    current_user_id: str = Depends(get_current_user_id),
    service: SessionWatchService = Depends(get_session_watch_service),
) -> SessionListResponse:
    return _sessions(service.awaiting_review(current_user_id))
