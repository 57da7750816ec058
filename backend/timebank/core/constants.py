"""Application-wide constants for the time-bank core."""

from __future__ import annotations

BRAND_NAME = "TimeBank"

# Credits granted to every new profile
DEFAULT_SIGNUP_BONUS_CREDITS = 10

# Text constraints
MAX_NOTES_LENGTH = 1000
MAX_DISPUTE_REASON_LENGTH = 1000
MAX_REVIEW_COMMENT_LENGTH = 1000

# Query limits
DEFAULT_QUERY_LIMIT = 100
SESSION_WATCH_LIMIT = 5

# API metadata
API_TITLE = f"{BRAND_NAME} Core API"
API_DESCRIPTION = "Booking lifecycle and time-credit settlement for skill bartering"
API_VERSION = "1.0.0"
