"""Event model."""
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from gatepass.db.base import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=False, index=True)

    # Relationships
    attendees = relationship("Attendee", back_populates="event", cascade="all, delete-orphan")
