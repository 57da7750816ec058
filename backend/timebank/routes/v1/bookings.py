# backend/timebank/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    POST /                              → Create a booking request (learner)
    GET /                               → List the caller's bookings
    GET /{booking_id}                   → Get one booking (participants only)
    POST /{booking_id}/confirm          → Accept a pending request (provider)
    POST /{booking_id}/decline          → Decline a pending request (provider)
    POST /{booking_id}/cancel           → Cancel a pending or confirmed booking (either party)
    POST /{booking_id}/confirm-session  → Post-session completion confirmation (either party)
    POST /{booking_id}/dispute          → Open a dispute on an ended session (either party)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import get_booking_service
from ...core.exceptions import DomainException
from ...database import with_db_retry
from ...models.booking import BookingStatus
from ...schemas.booking import (
    BookingCreate,
    BookingDecline,
    BookingListResponse,
    BookingResponse,
    DisputeCreate,
)
from ...services.booking_service import BookingService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Create a pending booking request for an available slot."""
    try:
        booking = service.create_booking(
            actor_id=current_user_id,
            availability_slot_id=payload.availability_slot_id,
            service_id=payload.service_id,
            provider_id=payload.provider_id,
            learner_id=payload.learner_id,
            requested_start_time=payload.requested_start_time,
            requested_end_time=payload.requested_end_time,
            learner_notes=payload.learner_notes,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.get("", response_model=BookingListResponse)
def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    bookings = service.list_bookings(current_user_id, status=status_filter, limit=limit)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=len(bookings),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.get_booking_for_user(booking_id, current_user_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
def confirm_booking(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Accept a pending request.

    The meeting link is best-effort: the response may carry ``meeting_link: null``.
    """
    try:
        booking = with_db_retry(
            "confirm_booking", lambda: service.confirm_booking(booking_id, current_user_id)
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/decline", response_model=BookingResponse)
def decline_booking(
    booking_id: str,
    payload: Optional[BookingDecline] = Body(None),
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    notes = payload.provider_notes if payload else None
    try:
        booking = with_db_retry(
            "decline_booking",
            lambda: service.decline_booking(booking_id, current_user_id, provider_notes=notes),
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = with_db_retry(
            "cancel_booking", lambda: service.cancel_booking(booking_id, current_user_id)
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/confirm-session", response_model=BookingResponse)
def confirm_session(
    booking_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Record the caller's post-session confirmation; the second one completes the booking."""
    try:
        booking = with_db_retry(
            "confirm_session", lambda: service.confirm_session(booking_id, current_user_id)
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/dispute", response_model=BookingResponse)
def open_dispute(
    booking_id: str,
    payload: DisputeCreate = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = with_db_retry(
            "open_dispute",
            lambda: service.open_dispute(booking_id, current_user_id, payload.reason),
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)
