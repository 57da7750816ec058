# backend/timebank/schemas/review.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.constants import MAX_REVIEW_COMMENT_LENGTH
from .base import StandardizedModel, StrictModel


class ReviewSubmitRequest(StrictModel):
    booking_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=MAX_REVIEW_COMMENT_LENGTH)

    @field_validator("comment")
    @classmethod
    def _clean_comment(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


class ReviewUpdateRequest(StrictModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=MAX_REVIEW_COMMENT_LENGTH)


class ReviewItem(StandardizedModel):
    id: str
    booking_id: str
    service_id: str
    reviewee_id: str
    reviewer_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class ReviewListResponse(StandardizedModel):
    reviews: List[ReviewItem]
