"""Credential model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from gatepass.db.base import Base


class Credential(Base):
    __tablename__ = "credentials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # unique: at most one live credential per attendee
    attendee_id = Column(Integer, ForeignKey("attendees.id", ondelete="CASCADE"), nullable=False, unique=True)
    payload = Column(Text, nullable=False)  # Sealed text, byte-for-byte what the QR code carries
    image_path = Column(String(255), nullable=False)
    is_placeholder = Column(Boolean, nullable=False, default=False)
    consumed = Column(Boolean, nullable=False, default=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    attendee = relationship("Attendee", back_populates="credential")
