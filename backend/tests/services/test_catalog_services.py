"""Profiles, listings and slots."""

from datetime import timedelta

import pytest

from tests.constants import SLOT_START
from timebank.core.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    InvalidTimeRangeException,
    ProfileNotFoundException,
    ValidationException,
)
from timebank.services.availability_service import AvailabilityService
from timebank.services.catalog_service import CatalogService
from timebank.services.profile_service import ProfileService


class TestProfileService:
    def test_signup_bonus_applied(self, db):
        profile = ProfileService(db, signup_bonus=10).create_profile(
            "01NEWUSER00000000000000000", "New User", "new@example.com"
        )
        assert profile.time_credits == 10
        assert profile.rating == 0.0
        assert ProfileService(db).get_balance(profile.user_id) == 10

    def test_duplicate_profile(self, db, learner):
        with pytest.raises(ConflictException):
            ProfileService(db).create_profile(learner.user_id, "Again", "again@example.com")

    def test_missing_profile(self, db):
        with pytest.raises(ProfileNotFoundException):
            ProfileService(db).get_balance("01NOBODY000000000000000000")


class TestCatalogService:
    def test_create_service_prices_listing(self, db, provider):
        listing = CatalogService(db).create_service(
            provider.user_id, "  Knitting  ", duration_hours=2, credits_per_hour=4
        )
        assert listing.title == "Knitting"
        assert listing.total_cost == 8

    @pytest.mark.parametrize("duration, rate", [(0, 2), (2, -1), (1.5, 2), (True, 2)])
    def test_rejects_invalid_pricing(self, db, provider, duration, rate):
        with pytest.raises(ValidationException):
            CatalogService(db).create_service(provider.user_id, "Knitting", duration, rate)

    def test_pricing_locked_once_booked(self, db, booking_service, request_booking, service):
        request_booking(booking_service)

        with pytest.raises(BusinessRuleException) as exc_info:
            CatalogService(db).update_service(
                service.id, service.provider_id, {"credits_per_hour": 5}
            )
        assert exc_info.value.code == "PRICING_LOCKED"

    def test_booked_price_is_a_snapshot(self, db, booking_service, request_booking, service):
        booking = request_booking(booking_service)

        CatalogService(db).update_service(service.id, service.provider_id, {"title": "Guitar 101"})

        assert booking.credits_amount == 6

    def test_only_provider_edits(self, db, service, learner):
        with pytest.raises(ForbiddenException):
            CatalogService(db).update_service(service.id, learner.user_id, {"title": "Mine now"})

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_update_rejects_blank_title(self, db, service, title):
        with pytest.raises(ValidationException) as exc_info:
            CatalogService(db).update_service(service.id, service.provider_id, {"title": title})
        assert exc_info.value.code == "INVALID_TITLE"

        db.refresh(service)
        assert service.title == "Guitar Basics"

    def test_update_strips_title(self, db, service):
        updated = CatalogService(db).update_service(
            service.id, service.provider_id, {"title": "  Guitar 101  "}
        )
        assert updated.title == "Guitar 101"


class TestAvailabilityService:
    def test_create_and_list_open_slots(self, db, service):
        slots = AvailabilityService(db)
        created = slots.create_slot(
            service.provider_id, service.id, SLOT_START, SLOT_START + timedelta(hours=3)
        )

        open_slots = slots.list_open_slots(service.id, now=SLOT_START - timedelta(days=1))
        assert [s.id for s in open_slots] == [created.id]
        assert slots.list_open_slots(service.id, now=SLOT_START + timedelta(days=1)) == []

    def test_rejects_inverted_slot(self, db, service):
        with pytest.raises(InvalidTimeRangeException):
            AvailabilityService(db).create_slot(
                service.provider_id, service.id, SLOT_START, SLOT_START - timedelta(hours=1)
            )

    def test_slot_with_bookings_cannot_be_deleted(
        self, db, booking_service, request_booking, slot
    ):
        request_booking(booking_service)

        with pytest.raises(BusinessRuleException):
            AvailabilityService(db).delete_slot(slot.id, slot.provider_id)
