# backend/timebank/schemas/booking.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from ..core.constants import MAX_DISPUTE_REASON_LENGTH, MAX_NOTES_LENGTH
from .base import StandardizedModel, StrictModel


class BookingCreate(StrictModel):
    availability_slot_id: str
    service_id: str
    provider_id: str
    learner_id: str
    requested_start_time: datetime
    requested_end_time: datetime
    learner_notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class BookingDecline(StrictModel):
    provider_notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class DisputeCreate(StrictModel):
    reason: str = Field(..., min_length=1, max_length=MAX_DISPUTE_REASON_LENGTH)

    @field_validator("reason")
    @classmethod
    def _strip(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("Reason cannot be blank")
        return v2


class DisputeResolve(StrictModel):
    resolution: str = Field(..., min_length=1)
    outcome: Literal["complete", "cancel"]


class BookingResponse(StandardizedModel):
    id: str
    availability_slot_id: str
    service_id: str
    provider_id: str
    learner_id: str
    requested_start_time: datetime
    requested_end_time: datetime
    status: str
    credits_amount: int
    credits_transferred: bool
    provider_confirmed: bool
    learner_confirmed: bool
    provider_confirmed_at: Optional[datetime] = None
    learner_confirmed_at: Optional[datetime] = None
    dispute_status: str
    dispute_reason: Optional[str] = None
    dispute_opened_by: Optional[str] = None
    admin_resolution: Optional[str] = None
    meeting_link: Optional[str] = None
    learner_notes: Optional[str] = None
    provider_notes: Optional[str] = None
    review_submitted: bool
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class BookingListResponse(StandardizedModel):
    bookings: List[BookingResponse]
    total: int
