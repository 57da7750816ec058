# backend/timebank/schemas/catalog.py
"""Profiles, service listings and availability slots."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import StandardizedModel, StrictModel


class ProfileCreate(StrictModel):
    user_id: str
    full_name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    bio: Optional[str] = None


class ProfileResponse(StandardizedModel):
    user_id: str
    full_name: str
    email: str
    bio: Optional[str] = None
    time_credits: int
    rating: float
    total_reviews: int


class BalanceResponse(StandardizedModel):
    user_id: str
    time_credits: int


class ServiceCreate(StrictModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: str = "general"
    duration_hours: int = Field(..., gt=0)
    credits_per_hour: int = Field(..., gt=0)


class ServiceUpdate(StrictModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = None
    duration_hours: Optional[int] = Field(None, gt=0)
    credits_per_hour: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None


class ServiceResponse(StandardizedModel):
    id: str
    provider_id: str
    title: str
    description: str
    category: str
    duration_hours: int
    credits_per_hour: int
    total_cost: int
    is_active: bool


class SlotCreate(StrictModel):
    start_time: datetime
    end_time: datetime


class SlotResponse(StandardizedModel):
    id: str
    provider_id: str
    service_id: str
    start_time: datetime
    end_time: datetime
    is_available: bool


class SlotListResponse(StandardizedModel):
    slots: List[SlotResponse]
