"""Credential issuance and download endpoints."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from gatepass.api.deps import (
    get_db,
    get_codec,
    get_credential_store,
    get_presence_machine,
    verify_admin_token,
    verify_staff_token,
)
from gatepass.core.config import settings
from gatepass.core.credentials import CredentialCodec
from gatepass.core.exceptions import CredentialGenerationError
from gatepass.core.rate_limit import limiter, RATE_LIMITS
from gatepass.db.models import Attendee, Credential
from gatepass.schemas import (
    AttendeeCredentialDetail,
    CredentialResponse,
    PresenceDetail,
    ReissueRequest,
)
from gatepass.services import (
    CredentialStore,
    IssuedCredential,
    PresenceStateMachine,
    issue_credential,
    reissue_credential,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_attendee(db: Session, attendee_id: int) -> Attendee:
    attendee = db.get(Attendee, attendee_id)
    if attendee is None:
        raise HTTPException(status_code=404, detail="Attendee not found")
    return attendee


def credential_response(
    credential: Credential,
    registration_code: str,
    created: bool = False,
    generation_failed: bool = False,
) -> CredentialResponse:
    return CredentialResponse(
        credential_id=credential.id,
        attendee_id=credential.attendee_id,
        registration_code=registration_code,
        image_url=f"/api/v1/credentials/{credential.id}/image",
        is_placeholder=credential.is_placeholder,
        consumed=credential.consumed,
        consumed_at=credential.consumed_at,
        created_at=credential.created_at,
        created=created,
        generation_failed=generation_failed,
    )


def _issued_response(issued: IssuedCredential, attendee: Attendee) -> CredentialResponse:
    return credential_response(
        issued.credential,
        attendee.registration_code,
        created=issued.created,
        generation_failed=issued.generation_failed,
    )


def _generation_failed(attendee_id: int, e: CredentialGenerationError) -> HTTPException:
    logger.error(f"Credential generation failed for attendee {attendee_id}: {e}")
    return HTTPException(
        status_code=500,
        detail={"code": "CREDENTIAL_GENERATION_FAILED", "message": str(e)},
    )


@router.post(
    "/attendees/{attendee_id}/credential",
    response_model=CredentialResponse,
    dependencies=[Depends(verify_admin_token)],
)
@limiter.limit(RATE_LIMITS["credential_write"])
def issue_credential_endpoint(
    request: Request,
    attendee_id: int,
    db: Session = Depends(get_db),
    codec: CredentialCodec = Depends(get_codec),
    store: CredentialStore = Depends(get_credential_store),
):
    """
    Issue the attendee's check-in credential (admin only).

    Idempotent: when the attendee already holds a credential it is returned
    unchanged with ``created: false``. If the QR code cannot be rendered and
    placeholders are enabled, a text placeholder is stored and the response
    carries ``generation_failed: true`` so the caller can retry later.

    Raises:
        HTTPException: 404 if the attendee does not exist
        HTTPException: 500 CREDENTIAL_GENERATION_FAILED if rendering fails
            and placeholders are disabled
    """
    attendee = _get_attendee(db, attendee_id)
    try:
        issued = issue_credential(
            db, attendee, codec, store,
            placeholder_on_failure=settings.CREDENTIAL_PLACEHOLDER_ON_FAILURE,
        )
    except CredentialGenerationError as e:
        raise _generation_failed(attendee_id, e)
    return _issued_response(issued, attendee)


@router.post(
    "/attendees/{attendee_id}/credential/regenerate",
    response_model=CredentialResponse,
    dependencies=[Depends(verify_admin_token)],
)
@limiter.limit(RATE_LIMITS["credential_write"])
def regenerate_credential_endpoint(
    request: Request,
    attendee_id: int,
    reissue: Optional[ReissueRequest] = None,
    db: Session = Depends(get_db),
    codec: CredentialCodec = Depends(get_codec),
    store: CredentialStore = Depends(get_credential_store),
):
    """
    Replace the attendee's credential (admin only).

    The previous image is deleted and the previous payload stops verifying.
    By default the registration code is rotated as well, so printed badges
    carrying the old code are rejected as UNKNOWN_ATTENDEE.
    """
    reissue = reissue or ReissueRequest()
    attendee = _get_attendee(db, attendee_id)
    try:
        issued = reissue_credential(
            db, attendee, codec, store,
            rotate_code=reissue.rotate_registration_code,
            placeholder_on_failure=settings.CREDENTIAL_PLACEHOLDER_ON_FAILURE,
        )
    except CredentialGenerationError as e:
        raise _generation_failed(attendee_id, e)
    return _issued_response(issued, attendee)


@router.get(
    "/attendees/{attendee_id}/credential",
    response_model=AttendeeCredentialDetail,
    dependencies=[Depends(verify_staff_token)],
)
@limiter.limit(RATE_LIMITS["credential_read"])
def get_credential_endpoint(
    request: Request,
    attendee_id: int,
    db: Session = Depends(get_db),
    store: CredentialStore = Depends(get_credential_store),
    machine: PresenceStateMachine = Depends(get_presence_machine),
):
    """Return the attendee's credential (if any) and current presence."""
    attendee = _get_attendee(db, attendee_id)
    credential = store.get_by_attendee(db, attendee.id)
    presence = machine.read_presence(db, attendee.id)
    return AttendeeCredentialDetail(
        credential=credential_response(credential, attendee.registration_code) if credential else None,
        presence=PresenceDetail(
            state=presence.state.value,
            checked_in_at=presence.checked_in_at,
            checked_in_by=presence.checked_in_by,
            checked_out_at=presence.checked_out_at,
            checked_out_by=presence.checked_out_by,
        ),
    )


@router.get("/credentials/{credential_id}/image")
@limiter.limit(RATE_LIMITS["credential_read"])
def download_credential_image(
    request: Request,
    credential_id: int,
    db: Session = Depends(get_db),
    store: CredentialStore = Depends(get_credential_store),
):
    """
    Download the credential image as ``<REG-CODE>-qr-code.png``.

    Public, like the download link sent to attendees after registration.
    Placeholders are served as plain text.
    """
    credential = db.get(Credential, credential_id)
    if credential is None or not store.storage.exists(credential.image_path):
        raise HTTPException(status_code=404, detail="Credential image not found")

    code = credential.attendee.registration_code
    data = store.storage.read(credential.image_path)
    if credential.is_placeholder:
        return Response(content=data, media_type="text/plain; charset=utf-8")
    return Response(
        content=data,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{code}-qr-code.png"'},
    )
