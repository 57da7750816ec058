# backend/tests/conftest.py
"""
Shared fixtures for the time-bank test-suite.

Tests run against the in-memory SQLite database configured by
``TEST_DATABASE_URL`` (default ``sqlite://``). The schema is created fresh for
every test so each one starts from empty tables.
"""

from datetime import timedelta
import os
from typing import Callable, Iterator
from unittest.mock import MagicMock

os.environ.setdefault("IS_TESTING", "true")

import pytest  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from tests.constants import LEARNER_ID, PROVIDER_ID, SLOT_END, SLOT_START  # noqa: E402
from timebank.database import Base, SessionLocal, engine  # noqa: E402
from timebank.integrations.meeting_link_client import MeetingLinkClient  # noqa: E402
import timebank.models  # noqa: E402,F401
from timebank.models.availability import AvailabilitySlot  # noqa: E402
from timebank.models.booking import BookingRequest, BookingStatus  # noqa: E402
from timebank.models.profile import Profile  # noqa: E402
from timebank.models.service import Service  # noqa: E402
from timebank.services.booking_service import BookingService  # noqa: E402
from timebank.services.notification_service import NotificationService  # noqa: E402
from timebank.services.profile_service import ProfileService  # noqa: E402
from timebank.services.settlement_service import SettlementService  # noqa: E402


@pytest.fixture
def db() -> Iterator[Session]:
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def meeting_link_client() -> MagicMock:
    client = MagicMock(spec=MeetingLinkClient)
    client.create_link.return_value = "https://meet.example.com/timebank-room"
    return client


@pytest.fixture
def create_profile(db: Session) -> Callable[..., Profile]:
    def _create(user_id: str, credits: int = 10, full_name: str = "Test User") -> Profile:
        return ProfileService(db, signup_bonus=credits).create_profile(
            user_id, full_name, f"{user_id.lower()}@example.com"
        )

    return _create


@pytest.fixture
def learner(create_profile) -> Profile:
    return create_profile(LEARNER_ID, credits=10, full_name="Lena Learner")


@pytest.fixture
def provider(create_profile) -> Profile:
    return create_profile(PROVIDER_ID, credits=0, full_name="Piet Provider")


@pytest.fixture
def service(db: Session, provider: Profile) -> Service:
    # 3 hours at 2 credits/hour = 6 credits
    listing = Service(
        provider_id=provider.user_id,
        title="Guitar Basics",
        description="Chords and strumming",
        category="music",
        duration_hours=3,
        credits_per_hour=2,
        is_active=True,
    )
    db.add(listing)
    db.commit()
    return listing


@pytest.fixture
def slot(db: Session, service: Service) -> AvailabilitySlot:
    availability = AvailabilitySlot(
        provider_id=service.provider_id,
        service_id=service.id,
        start_time=SLOT_START,
        end_time=SLOT_END,
        is_available=True,
    )
    db.add(availability)
    db.commit()
    return availability


@pytest.fixture
def notification_service(db: Session) -> NotificationService:
    return NotificationService(db, reminder_lead_minutes=60)


@pytest.fixture
def booking_service(
    db: Session, notification_service: NotificationService, meeting_link_client: MagicMock
) -> BookingService:
    return BookingService(
        db,
        notification_service=notification_service,
        settlement_service=SettlementService(db, policy="pay_on_complete"),
        meeting_link_client=meeting_link_client,
    )


@pytest.fixture
def pay_on_book_service(
    db: Session, notification_service: NotificationService, meeting_link_client: MagicMock
) -> BookingService:
    return BookingService(
        db,
        notification_service=notification_service,
        settlement_service=SettlementService(db, policy="pay_on_book"),
        meeting_link_client=meeting_link_client,
    )


@pytest.fixture
def request_booking(
    learner: Profile, slot: AvailabilitySlot
) -> Callable[..., BookingRequest]:
    """Create a pending booking for the default slot through the given service."""

    def _request(service_: BookingService, **overrides) -> BookingRequest:
        params = {
            "actor_id": learner.user_id,
            "availability_slot_id": slot.id,
            "service_id": slot.service_id,
            "provider_id": slot.provider_id,
            "learner_id": learner.user_id,
            "requested_start_time": SLOT_START,
            "requested_end_time": SLOT_END,
            "learner_notes": "First lesson",
        }
        params.update(overrides)
        return service_.create_booking(**params)

    return _request


@pytest.fixture
def completed_booking_factory(db: Session, service: Service) -> Callable[..., BookingRequest]:
    """Insert an already-completed booking row (for review tests)."""

    def _create(learner_id: str, offset_days: int = 0) -> BookingRequest:
        start = SLOT_START + timedelta(days=offset_days)
        availability = AvailabilitySlot(
            provider_id=service.provider_id,
            service_id=service.id,
            start_time=start,
            end_time=start + timedelta(hours=3),
            is_available=False,
        )
        db.add(availability)
        db.flush()
        booking = BookingRequest(
            availability_slot_id=availability.id,
            service_id=service.id,
            provider_id=service.provider_id,
            learner_id=learner_id,
            requested_start_time=start,
            requested_end_time=start + timedelta(hours=3),
            status=BookingStatus.COMPLETED.value,
            credits_amount=service.total_cost,
            credits_transferred=True,
            provider_confirmed=True,
            learner_confirmed=True,
            completed_at=start + timedelta(hours=4),
        )
        db.add(booking)
        db.commit()
        return booking

    return _create
