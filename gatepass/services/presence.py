"""Presence state machine: NOT_PRESENT -> PRESENT -> DEPARTED.

Every transition is a single conditional UPDATE on the attendee row that
only matches if the row is still in the state we read. When a concurrent
scan gets there first the UPDATE matches nothing, and we re-read and apply
the scan to the new state instead. Two devices scanning the same attendee
at once therefore produce one check-in and one check-out, never two
check-ins.
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gatepass.core.credentials import AttendeeIdentity
from gatepass.core.exceptions import PresenceConflictError
from gatepass.core.logging_config import get_logger
from gatepass.core.utils import to_utc, utcnow
from gatepass.db.models import Attendee, PresenceState
from gatepass.services.credential_store import CredentialStore

logger = get_logger(__name__)

MAX_TRANSITION_ATTEMPTS = 5


class ScanOutcome(str, enum.Enum):
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"


@dataclass(frozen=True)
class PresenceSnapshot:
    checked_in_at: Optional[datetime]
    checked_in_by: Optional[str]
    checked_out_at: Optional[datetime]
    checked_out_by: Optional[str]

    @property
    def state(self) -> PresenceState:
        return PresenceState.from_timestamps(self.checked_in_at, self.checked_out_at)


@dataclass(frozen=True)
class ScanResult:
    outcome: ScanOutcome
    attendee_id: int
    presence: PresenceSnapshot
    credential_consumed: bool = False

    @property
    def state(self) -> PresenceState:
        return self.presence.state


class PresenceStateMachine:
    """Applies scans to an attendee's persisted presence.

    Args:
        store: Credential store, used to flag the credential as consumed
        allow_reentry: Treat a scan of a DEPARTED attendee as a new check-in
            instead of the terminal ALREADY_CHECKED_OUT outcome
    """

    def __init__(self, store: CredentialStore, allow_reentry: bool = False):
        self.store = store
        self.allow_reentry = allow_reentry

    def read_presence(self, db: Session, attendee_id: int) -> Optional[PresenceSnapshot]:
        """Read the presence columns straight from the database, bypassing the identity map."""
        row = db.execute(
            select(
                Attendee.checked_in_at,
                Attendee.checked_in_by,
                Attendee.checked_out_at,
                Attendee.checked_out_by,
            ).where(Attendee.id == attendee_id)
        ).one_or_none()
        if row is None:
            return None
        return PresenceSnapshot(
            checked_in_at=to_utc(row.checked_in_at),
            checked_in_by=row.checked_in_by,
            checked_out_at=to_utc(row.checked_out_at),
            checked_out_by=row.checked_out_by,
        )

    def scan(
        self,
        db: Session,
        identity: AttendeeIdentity,
        actor_id: str,
        now: Optional[datetime] = None,
    ) -> ScanResult:
        """Apply one scan to the attendee identified by ``identity``.

        Raises:
            LookupError: the attendee row no longer exists
            PresenceConflictError: the row kept changing under us
        """
        now = to_utc(now) or utcnow()
        attendee_id = identity.attendee_id

        for attempt in range(MAX_TRANSITION_ATTEMPTS):
            observed = self.read_presence(db, attendee_id)
            if observed is None:
                raise LookupError(f"Attendee {attendee_id} not found")

            outcome = self._try_transition(db, attendee_id, observed, actor_id, now)
            if outcome is None:
                logger.info(
                    "presence_cas_conflict",
                    attendee_id=attendee_id,
                    observed_state=observed.state.value,
                    attempt=attempt + 1,
                )
                continue

            presence = self.read_presence(db, attendee_id) or observed
            if outcome is ScanOutcome.ALREADY_CHECKED_OUT:
                return ScanResult(outcome=outcome, attendee_id=attendee_id, presence=presence)

            logger.info(
                "presence_transition",
                attendee_id=attendee_id,
                outcome=outcome.value,
                from_state=observed.state.value,
                actor_id=actor_id,
            )
            consumed = self._consume_credential(db, attendee_id, now)
            return ScanResult(
                outcome=outcome,
                attendee_id=attendee_id,
                presence=presence,
                credential_consumed=consumed,
            )

        raise PresenceConflictError(
            f"Presence of attendee {attendee_id} changed on every one of {MAX_TRANSITION_ATTEMPTS} attempts"
        )

    def _try_transition(
        self,
        db: Session,
        attendee_id: int,
        observed: PresenceSnapshot,
        actor_id: str,
        now: datetime,
    ) -> Optional[ScanOutcome]:
        """Attempt the transition out of ``observed``; None when the row moved first."""
        state = observed.state
        stmt = update(Attendee).where(Attendee.id == attendee_id)

        if state is PresenceState.NOT_PRESENT:
            stmt = stmt.where(Attendee.checked_in_at.is_(None)).values(
                checked_in_at=now, checked_in_by=actor_id,
            )
            outcome = ScanOutcome.CHECKED_IN
        elif state is PresenceState.PRESENT:
            stmt = stmt.where(
                Attendee.checked_in_at == observed.checked_in_at,
                Attendee.checked_out_at.is_(None),
            ).values(
                checked_out_at=max(now, observed.checked_in_at),
                checked_out_by=actor_id,
            )
            outcome = ScanOutcome.CHECKED_OUT
        elif self.allow_reentry:
            stmt = stmt.where(Attendee.checked_out_at == observed.checked_out_at).values(
                checked_in_at=max(now, observed.checked_out_at),
                checked_in_by=actor_id,
                checked_out_at=None,
                checked_out_by=None,
            )
            outcome = ScanOutcome.CHECKED_IN
        else:
            return ScanOutcome.ALREADY_CHECKED_OUT

        try:
            result = db.execute(stmt.execution_options(synchronize_session=False))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        if result.rowcount != 1:
            return None
        return outcome

    def _consume_credential(self, db: Session, attendee_id: int, now: datetime) -> bool:
        """Flag the credential as used; a failure here leaves presence as committed."""
        credential = self.store.get_by_attendee(db, attendee_id)
        if credential is None:
            return False
        if credential.consumed:
            return True
        try:
            if self.store.mark_consumed(db, credential.id, now):
                logger.info("credential_consumed", attendee_id=attendee_id, credential_id=credential.id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("credential_consume_failed", attendee_id=attendee_id, error=str(e))
            return False
        return True
