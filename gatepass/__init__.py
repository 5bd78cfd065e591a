"""Gatepass: tamper-evident check-in credentials and attendee presence tracking."""

__version__ = "1.0.0"
