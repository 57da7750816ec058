# backend/timebank/core/config.py
import logging
import os
from pathlib import Path
from typing import List, Literal, Optional, Set

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME, DEFAULT_SIGNUP_BONUS_CREDITS


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


SettlementPolicy = Literal["pay_on_complete", "pay_on_book"]

PRODUCTION_ENVIRONMENTS: Set[str] = {"prod", "production", "live"}


class Settings(BaseSettings):
    app_name: str = BRAND_NAME
    environment: str = Field(default="development", description="Deployment environment")
    log_level: str = Field(default="INFO", description="Root log level for the API process")
    is_testing: bool = False  # Set to True when running tests
    cors_allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./timebank.db",
        description="SQLAlchemy URL of the primary database",
    )
    test_database_url: str = Field(
        default="sqlite://",
        description="SQLAlchemy URL used by the test-suite (in-memory SQLite by default)",
    )
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=5, ge=0)
    db_statement_timeout_ms: int = Field(default=15000, ge=0)

    # Credits & settlement
    signup_bonus_credits: int = Field(
        default=DEFAULT_SIGNUP_BONUS_CREDITS,
        ge=0,
        description="Time credits granted to a freshly created profile",
    )
    settlement_policy: SettlementPolicy = Field(
        default="pay_on_complete",
        description=(
            "pay_on_complete transfers credits when both parties confirm the session; "
            "pay_on_book transfers at booking creation and reverses on decline/cancel"
        ),
    )

    # Reminders and session watch windows
    reminder_lead_minutes: int = Field(default=60, ge=0)
    session_window_before_minutes: int = Field(default=5, ge=0)
    session_window_after_minutes: int = Field(default=15, ge=0)

    # Meeting-link provisioning
    meeting_provider_url: Optional[str] = Field(
        default=None,
        description="Endpoint that creates a meeting and returns {'link': ...}; unset uses the fallback",
    )
    meeting_provider_token: SecretStr = Field(default=SecretStr(""))
    meeting_link_timeout: float = Field(default=10.0, gt=0)
    meeting_fallback_base_url: str = Field(default="https://meet.jit.si")
    meeting_room_prefix: str = Field(default="timebank")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = (v or "INFO").strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("meeting_fallback_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in PRODUCTION_ENVIRONMENTS

    def get_database_url(self) -> str:
        """Return the database URL for the current context."""
        if self.is_testing or is_running_tests():
            return self.test_database_url
        return self.database_url


settings = Settings()
