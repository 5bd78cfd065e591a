"""Credential issuance and reissue."""
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gatepass.core.constants import CREDENTIAL_STORAGE_PREFIX
from gatepass.core.credentials import AttendeeIdentity, CredentialCodec
from gatepass.core.exceptions import CredentialExistsError, CredentialGenerationError
from gatepass.core.logging_config import get_logger
from gatepass.core.utils import make_registration_code, utcnow
from gatepass.db.models import Attendee, Credential
from gatepass.services.credential_store import CredentialStore

logger = get_logger(__name__)

MAX_CODE_ROTATION_ATTEMPTS = 5


@dataclass
class IssuedCredential:
    credential: Credential
    created: bool
    generation_failed: bool = False


def identity_for(attendee: Attendee, now: datetime, registration_code: Optional[str] = None) -> AttendeeIdentity:
    return AttendeeIdentity(
        attendee_id=attendee.id,
        registration_code=registration_code or attendee.registration_code,
        event_id=attendee.event_id,
        issued_at=int(now.timestamp()),
    )


def _write_artifact(
    attendee: Attendee,
    code: str,
    payload: str,
    codec: CredentialCodec,
    store: CredentialStore,
    placeholder_on_failure: bool,
) -> tuple[str, bool]:
    """Render and store the QR image; returns (storage key, is_placeholder).

    Raises:
        CredentialGenerationError: rendering failed and placeholders are disabled
    """
    try:
        image = codec.render_image(payload)
    except CredentialGenerationError as e:
        logger.error(
            "credential_generation_failed",
            attendee_id=attendee.id,
            registration_code=code,
            error=str(e),
            placeholder=placeholder_on_failure,
        )
        if not placeholder_on_failure:
            raise
        placeholder = (
            f"QR Code for: {attendee.name}\n"
            f"Registration: {code}\n"
            f"Event ID: {attendee.event_id}\n"
        )
        key = f"{CREDENTIAL_STORAGE_PREFIX}/placeholder-{code}.txt"
        store.storage.put(key, placeholder.encode("utf-8"))
        return key, True

    key = f"{CREDENTIAL_STORAGE_PREFIX}/{code}-{secrets.token_hex(4)}.png"
    store.storage.put(key, image)
    return key, False


def _discard_artifact(store: CredentialStore, image_ref: str, keep: Optional[str]) -> None:
    """Delete an artifact written for a credential that was never stored."""
    if image_ref != keep:
        store.storage.delete(image_ref)
        logger.info("credential_artifact_discarded", image_path=image_ref)


def issue_credential(
    db: Session,
    attendee: Attendee,
    codec: CredentialCodec,
    store: CredentialStore,
    placeholder_on_failure: bool = True,
    now: Optional[datetime] = None,
) -> IssuedCredential:
    """Issue the attendee's credential, or return the one they already hold.

    Args:
        db: SQLAlchemy session
        attendee: Attendee to issue for
        codec: Codec holding the shared secret
        store: Credential store (and its image storage)
        placeholder_on_failure: Store a text placeholder instead of failing when
            the payload cannot be rendered
        now: Issuance time (defaults to now)

    Returns:
        IssuedCredential; ``created`` is False when a credential already existed

    Raises:
        CredentialGenerationError: rendering failed and placeholders are disabled
    """
    existing = store.get_by_attendee(db, attendee.id)
    if existing is not None:
        return IssuedCredential(credential=existing, created=False)

    now = now or utcnow()
    code = attendee.registration_code
    payload = codec.seal(identity_for(attendee, now))
    image_ref, is_placeholder = _write_artifact(attendee, code, payload, codec, store, placeholder_on_failure)

    try:
        credential = store.put(db, attendee.id, payload, image_ref, is_placeholder=is_placeholder)
    except CredentialExistsError:
        # A concurrent request issued first; its credential is the live one
        winner = store.get_by_attendee(db, attendee.id)
        _discard_artifact(store, image_ref, keep=winner.image_path if winner is not None else None)
        if winner is None:
            raise
        logger.info("credential_issue_race_lost", attendee_id=attendee.id, credential_id=winner.id)
        return IssuedCredential(credential=winner, created=False)

    logger.info(
        "credential_issued",
        attendee_id=attendee.id,
        credential_id=credential.id,
        placeholder=is_placeholder,
    )
    return IssuedCredential(credential=credential, created=True, generation_failed=is_placeholder)


def reissue_credential(
    db: Session,
    attendee: Attendee,
    codec: CredentialCodec,
    store: CredentialStore,
    rotate_code: bool = True,
    placeholder_on_failure: bool = True,
    now: Optional[datetime] = None,
    _retry_count: int = 0,
) -> IssuedCredential:
    """Replace the attendee's credential, deleting the previous artifact.

    With ``rotate_code`` the attendee gets a new registration code in the same
    commit as the new credential, so the old payload no longer matches any
    attendee. Without it the old payload still carries a valid tag but no
    longer equals the live credential, which the verifier rejects.

    Nothing is committed until the new credential has been sealed and
    rendered; on any failure the attendee keeps their code and credential.

    Raises:
        CredentialGenerationError: rendering failed and placeholders are disabled
        ValueError: no unused registration code was found
    """
    if _retry_count >= MAX_CODE_ROTATION_ATTEMPTS:
        raise ValueError("Failed to generate a unique registration code after multiple attempts")

    now = now or utcnow()
    old_code = attendee.registration_code
    code = make_registration_code() if rotate_code else old_code
    previous = store.get_by_attendee(db, attendee.id)
    previous_image = previous.image_path if previous is not None else None

    payload = codec.seal(identity_for(attendee, now, registration_code=code))
    image_ref, is_placeholder = _write_artifact(attendee, code, payload, codec, store, placeholder_on_failure)

    attendee.registration_code = code
    try:
        credential = store.replace(db, attendee.id, payload, image_ref, is_placeholder=is_placeholder)
    except IntegrityError:
        db.rollback()
        _discard_artifact(store, image_ref, keep=previous_image)
        if not rotate_code:
            raise
        # Collision unlikely but possible, retry with counter
        logger.warning("registration_code_collision", attendee_id=attendee.id, registration_code=code)
        return reissue_credential(
            db, attendee, codec, store,
            rotate_code=rotate_code,
            placeholder_on_failure=placeholder_on_failure,
            now=now,
            _retry_count=_retry_count + 1,
        )
    except SQLAlchemyError:
        db.rollback()
        _discard_artifact(store, image_ref, keep=previous_image)
        raise

    if rotate_code:
        logger.info(
            "registration_code_rotated",
            attendee_id=attendee.id,
            old_registration_code=old_code,
            registration_code=code,
        )
    logger.info(
        "credential_reissued",
        attendee_id=attendee.id,
        credential_id=credential.id,
        placeholder=is_placeholder,
        code_rotated=rotate_code,
    )
    return IssuedCredential(credential=credential, created=True, generation_failed=is_placeholder)
