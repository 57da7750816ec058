# backend/timebank/routes/v1/admin.py
"""
Back-office routes - API v1

Mounted under /api/v1/admin. The upstream gateway only forwards these paths
for staff accounts; the core performs no role check of its own.

Endpoints:
    POST /bookings/{booking_id}/resolve-dispute → Close an open dispute
"""

import logging

from fastapi import APIRouter, Body, Depends

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import get_booking_service
from ...core.exceptions import DomainException
from ...schemas.booking import BookingResponse, DisputeResolve
from ...services.booking_service import BookingService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-v1"])


@router.post("/bookings/{booking_id}/resolve-dispute", response_model=BookingResponse)
def resolve_dispute(
    booking_id: str,
    payload: DisputeResolve = Body(...),
    current_user_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    logger.info(f"Staff user {current_user_id} resolving dispute on booking {booking_id}")
    try:
        booking = service.resolve_dispute(booking_id, payload.resolution, payload.outcome)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)
