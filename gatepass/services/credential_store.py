"""Persistence for check-in credentials (one live credential per attendee)."""
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gatepass.core.exceptions import CredentialExistsError
from gatepass.core.logging_config import get_logger
from gatepass.core.storage import ImageStorage
from gatepass.db.models import Credential

logger = get_logger(__name__)


class CredentialStore:
    """Reads and writes ``Credential`` rows and owns their image artifacts."""

    def __init__(self, storage: ImageStorage):
        self.storage = storage

    def get_by_attendee(self, db: Session, attendee_id: int) -> Optional[Credential]:
        return db.execute(
            select(Credential).where(Credential.attendee_id == attendee_id)
        ).scalar_one_or_none()

    def put(
        self,
        db: Session,
        attendee_id: int,
        payload: str,
        image_ref: str,
        is_placeholder: bool = False,
    ) -> Credential:
        """Store the first credential for an attendee.

        Raises:
            CredentialExistsError: the attendee already has a live credential
        """
        credential = Credential(
            attendee_id=attendee_id,
            payload=payload,
            image_path=image_ref,
            is_placeholder=is_placeholder,
        )
        try:
            db.add(credential)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise CredentialExistsError(f"Attendee {attendee_id} already has a credential")
        db.refresh(credential)
        return credential

    def replace(
        self,
        db: Session,
        attendee_id: int,
        payload: str,
        image_ref: str,
        is_placeholder: bool = False,
    ) -> Credential:
        """Swap the attendee's credential for a new one and discard the old artifact.

        The old row is deleted in the same transaction that inserts the new
        one, so the previous payload stops resolving the moment this commits.
        """
        previous = self.get_by_attendee(db, attendee_id)
        previous_image = previous.image_path if previous is not None else None

        try:
            if previous is not None:
                db.delete(previous)
                db.flush()
            credential = Credential(
                attendee_id=attendee_id,
                payload=payload,
                image_path=image_ref,
                is_placeholder=is_placeholder,
            )
            db.add(credential)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(credential)

        if previous_image and previous_image != image_ref:
            if self.storage.delete(previous_image):
                logger.info("credential_artifact_deleted", attendee_id=attendee_id, image_path=previous_image)
            else:
                logger.warning("credential_artifact_missing", attendee_id=attendee_id, image_path=previous_image)
        return credential

    def mark_consumed(self, db: Session, credential_id: int, when: datetime) -> bool:
        """Flag the credential as scanned at least once.

        Conditional on ``consumed`` still being false, so repeat calls are
        no-ops. Returns True only for the call that flipped the flag.
        """
        result = db.execute(
            update(Credential)
            .where(Credential.id == credential_id, Credential.consumed.is_(False))
            .values(consumed=True, consumed_at=when)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount == 1
