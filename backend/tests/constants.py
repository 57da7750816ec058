"""Fixed identities and times shared by fixtures and tests."""

from datetime import datetime, timedelta, timezone

LEARNER_ID = "01LEARNER00000000000000000"
PROVIDER_ID = "01PROVIDER0000000000000000"
OUTSIDER_ID = "01OUTSIDER0000000000000000"

# Sessions are scheduled well in the future; "after the session" is simulated by passing now=
SLOT_START = datetime(2030, 1, 10, 10, 0, tzinfo=timezone.utc)
SLOT_END = SLOT_START + timedelta(hours=3)
AFTER_SESSION = SLOT_END + timedelta(minutes=30)
