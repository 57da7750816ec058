"""Meeting-link provisioning client.

When a meeting provider endpoint is configured the client POSTs the booking
window to it and expects ``{"link": "..."}`` back. Without one it builds a
random Jitsi room URL locally, which needs no external account.
"""

from __future__ import annotations

from datetime import datetime
import logging
import re
from typing import Any
import uuid

import httpx
from pydantic import SecretStr

from ..core.config import settings
from ..core.exceptions import ExternalServiceUnavailableException

logger = logging.getLogger(__name__)

SERVICE_NAME = "meeting_provider"


class MeetingLinkError(RuntimeError):
    """Raised when the meeting provider responds with an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _safe_slug(value: str) -> str:
    slug = re.sub(r"[^a-z0-9-]", "-", value.lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class MeetingLinkClient:
    """HTTP client for the configured meeting provider."""

    def __init__(
        self,
        *,
        provider_url: str | None = None,
        token: str | SecretStr | None = None,
        timeout: float = 10.0,
        fallback_base_url: str = "https://meet.jit.si",
        room_prefix: str = "timebank",
    ) -> None:
        self._provider_url = provider_url
        self._token = token.get_secret_value() if isinstance(token, SecretStr) else token
        self._timeout = timeout
        self._fallback_base_url = fallback_base_url.rstrip("/")
        self._room_prefix = room_prefix

    @classmethod
    def from_settings(cls) -> "MeetingLinkClient":
        return cls(
            provider_url=settings.meeting_provider_url,
            token=settings.meeting_provider_token,
            timeout=settings.meeting_link_timeout,
            fallback_base_url=settings.meeting_fallback_base_url,
            room_prefix=settings.meeting_room_prefix,
        )

    def generate_room_link(self, booking_id: str | None = None) -> str:
        """Build a random room URL on the fallback host."""
        rand = uuid.uuid4().hex[:8]
        base = f"booking-{_safe_slug(booking_id[:12])}" if booking_id else "session"
        return f"{self._fallback_base_url}/{self._room_prefix}-{base}-{rand}"

    def create_link(self, booking_id: str, start: datetime, end: datetime) -> str:
        """
        Return a join URL for the booking's session.

        Raises:
            ExternalServiceUnavailableException: provider unreachable, erroring,
                or returning a body without a link
        """
        if not self._provider_url:
            return self.generate_room_link(booking_id)

        body: dict[str, Any] = {
            "booking_id": booking_id,
            "start_time": start.isoformat(),
            "end_time": end.isoformat(),
        }
        try:
            payload = self._request(body)
        except MeetingLinkError as exc:
            raise ExternalServiceUnavailableException(SERVICE_NAME, exc.message) from exc

        link = payload.get("link")
        if not isinstance(link, str) or not link:
            logger.error("Meeting provider returned no link for booking %s", booking_id)
            raise ExternalServiceUnavailableException(
                SERVICE_NAME, "Meeting provider returned no link"
            )
        return link

    def _request(self, body: dict[str, Any]) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(str(self._provider_url), headers=headers, json=body)
        except httpx.HTTPError as exc:
            logger.error("Meeting provider request failed: %s", exc)
            raise MeetingLinkError(f"Meeting provider request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error(
                "Meeting provider error %s: %s", response.status_code, response.text[:500]
            )
            raise MeetingLinkError(
                f"Meeting provider returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            parsed = response.json()
        except ValueError as exc:
            raise MeetingLinkError("Meeting provider returned invalid JSON") from exc
        if not isinstance(parsed, dict):
            raise MeetingLinkError("Meeting provider returned an unexpected body")
        return parsed
