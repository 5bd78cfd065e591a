"""Attendee endpoints."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from gatepass.api.deps import get_db, get_presence_machine, verify_staff_token
from gatepass.api.v1.endpoints.scans import OUTCOME_MESSAGES, presence_detail
from gatepass.core.exceptions import PresenceConflictError
from gatepass.core.rate_limit import limiter, RATE_LIMITS
from gatepass.core.utils import utcnow
from gatepass.db.models import Attendee
from gatepass.schemas import ScanResponse, AttendeeSummary, ErrorResponse
from gatepass.services import PresenceStateMachine, VerificationError
from gatepass.services.issuance import identity_for

logger = logging.getLogger(__name__)
router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": VerificationError.UNKNOWN_ATTENDEE.value, "message": "Attendee not found"},
    )


@router.post(
    "/{attendee_id}/checkin",
    response_model=ScanResponse,
    responses={
        404: {"model": ErrorResponse, "description": "UNKNOWN_ATTENDEE"},
        409: {"model": ErrorResponse, "description": "PRESENCE_CONFLICT"},
    },
)
@limiter.limit(RATE_LIMITS["scan"])
def manual_checkin_endpoint(
    request: Request,
    attendee_id: int,
    db: Session = Depends(get_db),
    staff: dict = Depends(verify_staff_token),
    machine: PresenceStateMachine = Depends(get_presence_machine),
):
    """
    Apply a scan to an attendee looked up by id instead of by credential.

    For badges that will not scan at the door. The transition is the same
    one a credential scan makes: in, then out, then ALREADY_CHECKED_OUT.

    Args:
        request: FastAPI Request (for rate limiting)
        attendee_id: ID of the attendee
        db: Database session (injected)
        staff: Verified staff token payload (injected)

    Returns:
        ScanResponse with the outcome, attendee and presence after the scan

    Raises:
        HTTPException: 404 UNKNOWN_ATTENDEE if the attendee doesn't exist
        HTTPException: 409 PRESENCE_CONFLICT if the attendee kept changing concurrently

    Example:
        Request:
            POST /api/v1/attendees/42/checkin
            Authorization: Bearer eyJhbGc...

        Response (200):
            {"outcome": "CHECKED_IN", "message": "Check-in successful", ...}
    """
    attendee = db.get(Attendee, attendee_id)
    if attendee is None:
        raise _not_found()

    summary = AttendeeSummary(
        id=attendee.id,
        registration_code=attendee.registration_code,
        event_id=attendee.event_id,
        name=attendee.name,
        email=attendee.email,
    )
    actor_id = str(staff["sub"])

    try:
        result = machine.scan(db, identity_for(attendee, utcnow()), actor_id=actor_id)
    except LookupError:
        raise _not_found()
    except PresenceConflictError as e:
        logger.warning(f"Manual check-in conflict for attendee {attendee_id}: {e}")
        raise HTTPException(
            status_code=409,
            detail={"code": "PRESENCE_CONFLICT", "message": "Attendee is being scanned elsewhere, retry"},
        )

    logger.info(f"Manual {result.outcome.value} for attendee {attendee_id} by {actor_id}")
    return ScanResponse(
        outcome=result.outcome.value,
        message=OUTCOME_MESSAGES[result.outcome],
        attendee=summary,
        presence=presence_detail(result),
        credential_consumed=result.credential_consumed,
    )
