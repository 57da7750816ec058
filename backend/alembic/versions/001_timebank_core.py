# backend/alembic/versions/001_timebank_core.py
"""Time-bank core - profiles, catalog, booking requests and the credit ledger

Revision ID: 001_timebank_core
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates every table the booking lifecycle touches. Two constraints carry the
settlement guarantees and must not be relaxed:

- uq_credit_transactions_booking_kind: at most one transfer and one reversal
  ledger row per booking, so a double settlement fails at commit.
- uq_reviews_booking: at most one review per booking.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_timebank_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create time-bank core tables."""
    print("Creating time-bank core tables...")

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("time_credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("time_credits >= 0", name="ck_profiles_time_credits_non_negative"),
        sa.CheckConstraint("total_reviews >= 0", name="ck_profiles_total_reviews_non_negative"),
    )
    op.create_index("ix_profiles_user_id", "profiles", ["user_id"], unique=True)

    op.create_table(
        "services",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("provider_id", sa.String(26), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(100), nullable=False, server_default="general"),
        sa.Column("duration_hours", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("credits_per_hour", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["provider_id"], ["profiles.user_id"], ondelete="CASCADE"),
        sa.CheckConstraint("duration_hours > 0", name="ck_services_duration_positive"),
        sa.CheckConstraint("credits_per_hour > 0", name="ck_services_rate_positive"),
    )
    op.create_index("idx_services_provider", "services", ["provider_id"])

    op.create_table(
        "availability_slots",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("provider_id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["provider_id"], ["profiles.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.CheckConstraint("end_time > start_time", name="ck_availability_slots_time_range"),
    )
    op.create_index(
        "idx_availability_slots_provider_service",
        "availability_slots",
        ["provider_id", "service_id"],
    )
    op.create_index(
        "idx_availability_slots_time_range", "availability_slots", ["start_time", "end_time"]
    )

    op.create_table(
        "booking_requests",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("availability_slot_id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("provider_id", sa.String(26), nullable=False),
        sa.Column("learner_id", sa.String(26), nullable=False),
        sa.Column("requested_start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("requested_end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        # Settlement
        sa.Column("credits_amount", sa.Integer(), nullable=False),
        sa.Column("credits_transferred", sa.Boolean(), nullable=False, server_default=sa.false()),
        # Post-session confirmation
        sa.Column("provider_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("learner_confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("provider_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("learner_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        # Disputes
        sa.Column("dispute_status", sa.String(20), nullable=False, server_default="none"),
        sa.Column("dispute_reason", sa.Text(), nullable=True),
        sa.Column("dispute_opened_by", sa.String(26), nullable=True),
        sa.Column("admin_resolution", sa.Text(), nullable=True),
        # Session details
        sa.Column("meeting_link", sa.Text(), nullable=True),
        sa.Column("learner_notes", sa.Text(), nullable=True),
        sa.Column("provider_notes", sa.Text(), nullable=True),
        sa.Column("review_submitted", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", sa.String(26), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["availability_slot_id"], ["availability_slots.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["provider_id"], ["profiles.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["learner_id"], ["profiles.user_id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'declined', 'cancelled', 'completed')",
            name="ck_booking_requests_status",
        ),
        sa.CheckConstraint(
            "dispute_status IN ('none', 'open', 'resolved')",
            name="ck_booking_requests_dispute_status",
        ),
        sa.CheckConstraint("credits_amount > 0", name="ck_booking_requests_credits_positive"),
        sa.CheckConstraint(
            "requested_end_time > requested_start_time",
            name="ck_booking_requests_time_range",
        ),
        sa.CheckConstraint(
            "learner_id <> provider_id", name="ck_booking_requests_distinct_parties"
        ),
    )
    op.create_index("ix_booking_requests_id", "booking_requests", ["id"])
    op.create_index("ix_booking_requests_status", "booking_requests", ["status"])
    op.create_index("ix_booking_requests_provider_id", "booking_requests", ["provider_id"])
    op.create_index("ix_booking_requests_learner_id", "booking_requests", ["learner_id"])
    op.create_index(
        "ix_booking_requests_slot_status",
        "booking_requests",
        ["availability_slot_id", "status"],
    )
    op.create_index(
        "ix_booking_requests_start_status",
        "booking_requests",
        ["requested_start_time", "status"],
    )

    op.create_table(
        "credit_transactions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("from_user_id", sa.String(26), nullable=False),
        sa.Column("to_user_id", sa.String(26), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["booking_id"], ["booking_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["from_user_id"], ["profiles.user_id"]),
        sa.ForeignKeyConstraint(["to_user_id"], ["profiles.user_id"]),
        sa.UniqueConstraint("booking_id", "kind", name="uq_credit_transactions_booking_kind"),
        sa.CheckConstraint("amount > 0", name="ck_credit_transactions_amount_positive"),
        sa.CheckConstraint(
            "kind IN ('transfer', 'reversal')", name="ck_credit_transactions_kind"
        ),
        sa.CheckConstraint(
            "from_user_id <> to_user_id", name="ck_credit_transactions_distinct_users"
        ),
    )
    op.create_index(
        "ix_credit_transactions_booking_id", "credit_transactions", ["booking_id"]
    )

    op.create_table(
        "reviews",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("service_id", sa.String(26), nullable=False),
        sa.Column("reviewee_id", sa.String(26), nullable=False),
        sa.Column("reviewer_id", sa.String(26), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["booking_id"], ["booking_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reviewee_id"], ["profiles.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reviewer_id"], ["profiles.user_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("booking_id", name="uq_reviews_booking"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )
    op.create_index("idx_reviews_reviewee", "reviews", ["reviewee_id"])
    op.create_index("idx_reviews_service", "reviews", ["service_id"])
    op.create_index("idx_reviews_reviewer", "reviews", ["reviewer_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("user_id", sa.String(26), nullable=False),
        sa.Column("booking_request_id", sa.String(26), nullable=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.user_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["booking_request_id"], ["booking_requests.id"], ondelete="CASCADE"
        ),
        sa.CheckConstraint(
            "type IN ('booking_request', 'booking_confirmed', 'booking_declined', "
            "'booking_reminder', 'booking_cancelled', 'session_starting', "
            "'session_completed', 'dispute_opened')",
            name="ck_notifications_type",
        ),
    )
    op.create_index("ix_notifications_user_is_read", "notifications", ["user_id", "is_read"])
    op.create_index("ix_notifications_scheduled_for", "notifications", ["scheduled_for"])
    op.create_index("ix_notifications_booking", "notifications", ["booking_request_id"])

    print("Time-bank core tables created successfully!")


def downgrade() -> None:
    """Drop time-bank core tables."""
    print("Dropping time-bank core tables...")

    op.drop_index("ix_notifications_booking", table_name="notifications")
    op.drop_index("ix_notifications_scheduled_for", table_name="notifications")
    op.drop_index("ix_notifications_user_is_read", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("idx_reviews_reviewer", table_name="reviews")
    op.drop_index("idx_reviews_service", table_name="reviews")
    op.drop_index("idx_reviews_reviewee", table_name="reviews")
    op.drop_table("reviews")

    op.drop_index("ix_credit_transactions_booking_id", table_name="credit_transactions")
    op.drop_table("credit_transactions")

    op.drop_index("ix_booking_requests_start_status", table_name="booking_requests")
    op.drop_index("ix_booking_requests_slot_status", table_name="booking_requests")
    op.drop_index("ix_booking_requests_learner_id", table_name="booking_requests")
    op.drop_index("ix_booking_requests_provider_id", table_name="booking_requests")
    op.drop_index("ix_booking_requests_status", table_name="booking_requests")
    op.drop_index("ix_booking_requests_id", table_name="booking_requests")
    op.drop_table("booking_requests")

    op.drop_index("idx_availability_slots_time_range", table_name="availability_slots")
    op.drop_index("idx_availability_slots_provider_service", table_name="availability_slots")
    op.drop_table("availability_slots")

    op.drop_index("idx_services_provider", table_name="services")
    op.drop_table("services")

    op.drop_index("ix_profiles_user_id", table_name="profiles")
    op.drop_table("profiles")

    print("Time-bank core tables dropped successfully!")
