"""Attendee model."""
import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship, validates

from gatepass.db.base import Base
from gatepass.core.sanitization import is_registration_code
from gatepass.core.utils import make_registration_code


class PresenceState(str, enum.Enum):
    """Derived from the two presence timestamps; never stored."""
    NOT_PRESENT = "NOT_PRESENT"
    PRESENT = "PRESENT"
    DEPARTED = "DEPARTED"

    @classmethod
    def from_timestamps(cls, checked_in_at, checked_out_at) -> "PresenceState":
        if checked_in_at is None:
            return cls.NOT_PRESENT
        if checked_out_at is None:
            return cls.PRESENT
        return cls.DEPARTED


class Attendee(Base):
    __tablename__ = "attendees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    registration_code = Column(String(20), unique=True, nullable=False, default=make_registration_code)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)

    # Presence; written only by the presence state machine
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_by = Column(String(100), nullable=True)
    checked_out_at = Column(DateTime(timezone=True), nullable=True)
    checked_out_by = Column(String(100), nullable=True)

    # Relationships
    event = relationship("Event", back_populates="attendees")
    credential = relationship(
        "Credential", back_populates="attendee", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_attendees_event", "event_id"),
        CheckConstraint(
            "checked_out_at IS NULL OR (checked_in_at IS NOT NULL AND checked_out_at >= checked_in_at)",
            name="ck_attendees_checkout_after_checkin",
        ),
    )

    @validates("registration_code")
    def validate_registration_code(self, key, value):
        if not is_registration_code(value):
            raise ValueError(f"Invalid registration code: {value!r}")
        return value

    @property
    def presence_state(self) -> PresenceState:
        return PresenceState.from_timestamps(self.checked_in_at, self.checked_out_at)
