"""External collaborators called by the core."""

from .meeting_link_client import MeetingLinkClient, MeetingLinkError

__all__ = ["MeetingLinkClient", "MeetingLinkError"]
