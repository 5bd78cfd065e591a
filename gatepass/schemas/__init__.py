"""Pydantic schemas for request/response validation."""
from gatepass.schemas.scan import ScanRequest, ScanResponse, AttendeeSummary, PresenceDetail
from gatepass.schemas.credential import ReissueRequest, CredentialResponse, AttendeeCredentialDetail
from gatepass.schemas.common import ErrorResponse, ErrorDetail

__all__ = [
    "ScanRequest",
    "ScanResponse",
    "AttendeeSummary",
    "PresenceDetail",
    "ReissueRequest",
    "CredentialResponse",
    "AttendeeCredentialDetail",
    "ErrorResponse",
    "ErrorDetail",
]
