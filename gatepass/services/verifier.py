"""Credential verification: scanned text in, resolved attendee or typed error out."""
import enum
import hmac
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from gatepass.core.credentials import SCHEME_SEALED, AttendeeIdentity, CredentialCodec
from gatepass.core.logging_config import get_logger
from gatepass.db.models import Attendee, Credential

logger = get_logger(__name__)

REQUIRED_CLAIMS = ("attendee_id", "registration_code", "tag")


class VerificationError(str, enum.Enum):
    MALFORMED = "MALFORMED"
    TAMPERED = "TAMPERED"
    UNKNOWN_ATTENDEE = "UNKNOWN_ATTENDEE"


@dataclass(frozen=True)
class VerificationResult:
    identity: Optional[AttendeeIdentity] = None
    attendee: Optional[Attendee] = None
    error: Optional[VerificationError] = None
    scheme: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: VerificationError, scheme: Optional[str] = None) -> "VerificationResult":
        return cls(error=error, scheme=scheme)


def _as_int(value: Any) -> Optional[int]:
    # bool is an int subclass; a claim of `true` is not an id
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    # isdigit() alone accepts non-ASCII digits that int() rejects
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    return None


class CredentialVerifier:
    """Checks scanned credentials against the integrity tag and the live attendee record."""

    def __init__(self, codec: CredentialCodec):
        self.codec = codec

    def verify(self, db: Session, raw: str) -> VerificationResult:
        decoded = self.codec.parse_scanned_text(raw)
        if decoded is None:
            logger.info("credential_malformed", reason="undecodable", length=len(raw))
            return VerificationResult.failure(VerificationError.MALFORMED)

        claims = decoded.claims
        scheme = decoded.scheme
        if any(claims.get(key) in (None, "") for key in REQUIRED_CLAIMS):
            logger.info("credential_malformed", reason="missing_claims", scheme=scheme)
            return VerificationResult.failure(VerificationError.MALFORMED, scheme)

        attendee_id = _as_int(claims["attendee_id"])
        registration_code = claims["registration_code"]
        tag = claims["tag"]
        if attendee_id is None or not isinstance(registration_code, str) or not isinstance(tag, str):
            logger.info("credential_malformed", reason="bad_claim_types", scheme=scheme)
            return VerificationResult.failure(VerificationError.MALFORMED, scheme)

        # Tag is recomputed from the claims as written, the same way it was sealed
        expected = self.codec.integrity_tag(claims["attendee_id"], registration_code)
        if not hmac.compare_digest(expected.encode("utf-8"), tag.encode("utf-8")):
            logger.warning(
                "credential_tampered",
                scheme=scheme,
                attendee_id=attendee_id,
                registration_code=registration_code,
            )
            return VerificationResult.failure(VerificationError.TAMPERED, scheme)

        attendee = db.execute(
            select(Attendee).where(
                Attendee.id == attendee_id,
                Attendee.registration_code == registration_code,
            )
        ).scalar_one_or_none()
        if attendee is None:
            logger.info(
                "credential_unknown_attendee",
                scheme=scheme,
                attendee_id=attendee_id,
                registration_code=registration_code,
            )
            return VerificationResult.failure(VerificationError.UNKNOWN_ATTENDEE, scheme)

        if scheme == SCHEME_SEALED:
            live_payload = db.execute(
                select(Credential.payload).where(Credential.attendee_id == attendee.id)
            ).scalar_one_or_none()
            if live_payload is None or not hmac.compare_digest(
                live_payload.encode("utf-8"), raw.strip().encode("utf-8")
            ):
                logger.warning(
                    "credential_superseded",
                    attendee_id=attendee_id,
                    registration_code=registration_code,
                )
                return VerificationResult.failure(VerificationError.TAMPERED, scheme)

        identity = AttendeeIdentity(
            attendee_id=attendee.id,
            registration_code=attendee.registration_code,
            event_id=attendee.event_id,
            issued_at=_as_int(claims.get("issued_at")) or 0,
        )
        return VerificationResult(identity=identity, attendee=attendee, scheme=scheme)
