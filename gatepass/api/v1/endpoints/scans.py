"""Scan endpoints."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from gatepass.api.deps import get_db, get_verifier, get_presence_machine, verify_staff_token
from gatepass.core.exceptions import PresenceConflictError
from gatepass.core.rate_limit import limiter, RATE_LIMITS
from gatepass.schemas import ScanRequest, ScanResponse, AttendeeSummary, PresenceDetail, ErrorResponse
from gatepass.services import (
    CredentialVerifier,
    PresenceStateMachine,
    ScanOutcome,
    ScanResult,
    VerificationError,
)

logger = logging.getLogger(__name__)
router = APIRouter()

# status code and user-facing message per verification failure
VERIFICATION_ERRORS = {
    VerificationError.MALFORMED: (422, "Invalid QR code"),
    VerificationError.TAMPERED: (422, "QR code failed integrity check"),
    VerificationError.UNKNOWN_ATTENDEE: (404, "Attendee not found"),
}

OUTCOME_MESSAGES = {
    ScanOutcome.CHECKED_IN: "Check-in successful",
    ScanOutcome.CHECKED_OUT: "Check-out successful",
    ScanOutcome.ALREADY_CHECKED_OUT: "Attendee already checked out",
}


def presence_detail(result: ScanResult) -> PresenceDetail:
    presence = result.presence
    return PresenceDetail(
        state=presence.state.value,
        checked_in_at=presence.checked_in_at,
        checked_in_by=presence.checked_in_by,
        checked_out_at=presence.checked_out_at,
        checked_out_by=presence.checked_out_by,
    )


@router.post(
    "",
    response_model=ScanResponse,
    responses={
        404: {"model": ErrorResponse, "description": "UNKNOWN_ATTENDEE"},
        409: {"model": ErrorResponse, "description": "PRESENCE_CONFLICT"},
        422: {"model": ErrorResponse, "description": "MALFORMED or TAMPERED"},
    },
)
@limiter.limit(RATE_LIMITS["scan"])
def scan_endpoint(
    request: Request,
    scan_request: ScanRequest,
    db: Session = Depends(get_db),
    staff: dict = Depends(verify_staff_token),
    verifier: CredentialVerifier = Depends(get_verifier),
    machine: PresenceStateMachine = Depends(get_presence_machine),
):
    """
    Verify a scanned credential and apply it to the attendee's presence.

    The first scan checks the attendee in, the second checks them out, and
    later scans report ALREADY_CHECKED_OUT without changing anything. The
    staff member in the token's ``sub`` claim is recorded as the actor.

    Args:
        request: FastAPI Request (for rate limiting)
        scan_request: ScanRequest with the raw ``qr_data`` text
        db: Database session (injected)
        staff: Verified staff token payload (injected)

    Returns:
        ScanResponse with the outcome, attendee and presence after the scan

    Raises:
        HTTPException: 422 MALFORMED if the text is not a credential
        HTTPException: 422 TAMPERED if the integrity check fails
        HTTPException: 404 UNKNOWN_ATTENDEE if no live attendee matches
        HTTPException: 409 PRESENCE_CONFLICT if the attendee kept changing concurrently

    Example:
        Request:
            POST /api/v1/scans
            Authorization: Bearer eyJhbGc...
            {"qr_data": "gAAAAABl..."}

        Response (200):
            {
                "outcome": "CHECKED_IN",
                "message": "Check-in successful",
                "attendee": {"id": 42, "registration_code": "REG-AB12CD34", ...},
                "presence": {"state": "PRESENT", "checked_in_at": "...", ...},
                "credential_consumed": true
            }

    Note:
        Defined as a sync function so FastAPI runs it in its thread pool;
        each scan holds its own session for the read-modify-write.
    """
    verification = verifier.verify(db, scan_request.qr_data)
    if not verification.ok:
        status_code, message = VERIFICATION_ERRORS[verification.error]
        raise HTTPException(
            status_code=status_code,
            detail={"code": verification.error.value, "message": message},
        )

    attendee = verification.attendee
    summary = AttendeeSummary(
        id=attendee.id,
        registration_code=attendee.registration_code,
        event_id=attendee.event_id,
        name=attendee.name,
        email=attendee.email,
    )

    try:
        result = machine.scan(db, verification.identity, actor_id=str(staff["sub"]))
    except LookupError:
        # Deleted between verification and transition
        raise HTTPException(
            status_code=404,
            detail={"code": VerificationError.UNKNOWN_ATTENDEE.value, "message": "Attendee not found"},
        )
    except PresenceConflictError as e:
        logger.warning(f"Scan conflict for attendee {attendee.id}: {e}")
        raise HTTPException(
            status_code=409,
            detail={"code": "PRESENCE_CONFLICT", "message": "Attendee is being scanned elsewhere, retry"},
        )

    return ScanResponse(
        outcome=result.outcome.value,
        message=OUTCOME_MESSAGES[result.outcome],
        attendee=summary,
        presence=presence_detail(result),
        credential_consumed=result.credential_consumed,
    )
