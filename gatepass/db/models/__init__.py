"""Database models."""
from gatepass.db.models.event import Event
from gatepass.db.models.attendee import Attendee, PresenceState
from gatepass.db.models.credential import Credential

__all__ = ["Event", "Attendee", "PresenceState", "Credential"]
