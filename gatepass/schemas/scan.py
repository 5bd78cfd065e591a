"""Scan schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from gatepass.core.constants import MAX_SCANNED_TEXT_LENGTH
from gatepass.core.sanitization import sanitize_scanned_text


class ScanRequest(BaseModel):
    # Raw text from the camera decoder or pasted by staff
    qr_data: str = Field(..., min_length=1, max_length=MAX_SCANNED_TEXT_LENGTH + 64)

    @field_validator('qr_data')
    @classmethod
    def sanitize_qr_data(cls, v: str) -> str:
        """Trim scanner noise and reject control characters."""
        return sanitize_scanned_text(v)


class AttendeeSummary(BaseModel):
    id: int
    registration_code: str
    event_id: int
    name: str
    email: str


class PresenceDetail(BaseModel):
    state: str
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    checked_out_at: Optional[datetime] = None
    checked_out_by: Optional[str] = None


class ScanResponse(BaseModel):
    outcome: str
    message: str
    attendee: AttendeeSummary
    presence: PresenceDetail
    credential_consumed: bool
