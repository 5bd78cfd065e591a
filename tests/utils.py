"""Helpers shared by the test modules."""
from datetime import datetime, timezone

from gatepass.core.credentials import AttendeeIdentity
from gatepass.db.models import Attendee

TEST_SECRET = "test-secret-key-for-credentials-0123456789"


def identity_of(attendee: Attendee, issued_at: int = 1_700_000_000) -> AttendeeIdentity:
    return AttendeeIdentity(
        attendee_id=attendee.id,
        registration_code=attendee.registration_code,
        event_id=attendee.event_id,
        issued_at=issued_at,
    )


def ts(minute: int) -> datetime:
    """A fixed, ordered point in time for presence tests."""
    return datetime(2026, 10, 19, 9, minute, tzinfo=timezone.utc)
