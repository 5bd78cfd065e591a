"""Credential schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from gatepass.schemas.scan import PresenceDetail


class ReissueRequest(BaseModel):
    rotate_registration_code: bool = True


class CredentialResponse(BaseModel):
    credential_id: int
    attendee_id: int
    registration_code: str
    image_url: str
    is_placeholder: bool
    consumed: bool
    consumed_at: Optional[datetime] = None
    created_at: datetime
    created: bool = False
    generation_failed: bool = False


class AttendeeCredentialDetail(BaseModel):
    credential: Optional[CredentialResponse] = None
    presence: PresenceDetail
