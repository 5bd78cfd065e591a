"""General utility functions."""
import secrets
from datetime import datetime, timezone
from typing import Optional

from gatepass.core.constants import (
    REGISTRATION_CODE_ALPHABET,
    REGISTRATION_CODE_LENGTH,
    REGISTRATION_CODE_PREFIX,
)


def make_registration_code(length: int = REGISTRATION_CODE_LENGTH) -> str:
    """Generate a human-facing registration code such as ``REG-AB12CD34``."""
    body = "".join(secrets.choice(REGISTRATION_CODE_ALPHABET) for _ in range(length))
    return f"{REGISTRATION_CODE_PREFIX}{body}"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert datetime to UTC timezone (naive values are assumed UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
