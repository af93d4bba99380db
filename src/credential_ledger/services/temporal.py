"""Temporal commitment workflow: issuance, reveal, status and expiry sweep.

Each credential gets one public commitment per epoch at issuance. The issuer
proves continued liveness by revealing each epoch's secret once its deadline
has passed; a credential whose commitment stays unrevealed past the grace
period is revoked by the sweep.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from credential_ledger.core.errors import (
    AlreadyRevealedError,
    NotFoundError,
    NotYetDueError,
    ScheduleExistsError,
    StorageFailureError,
    TemporalError,
    VerificationFailedError,
)
from credential_ledger.core.settings import settings
from credential_ledger.core.temporal_chain import (
    CommitmentStatus,
    calculate_deadline,
    can_reveal,
    commitment_status,
    generate_chain,
    is_expired,
    sha256_hex,
    validate_periods,
    verify_reveal,
)
from credential_ledger.db.time import ensure_utc, utcnow
from credential_ledger.models import TemporalCommitment, TemporalRevealEvent
from credential_ledger.services.credentials import CredentialLifecycleService
from credential_ledger.services.secret_store import SecretBundle, SecretBundleStore

# Configure logger for this module
logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

SECONDS_PER_DAY = 86_400
COMMITMENT_PREVIEW_LENGTH = 16
SIMULATED_DEADLINE_OFFSET = timedelta(minutes=1)


@dataclass
class ScheduledCommitment:
    epoch: int
    commitment: str
    reveal_deadline: datetime


@dataclass
class IssuedSchedule:
    """Public view of a freshly issued schedule. Secrets are never included."""

    credential_id: str
    periods: int
    commitments: list[ScheduledCommitment]
    next_deadline: datetime


@dataclass
class RevealOutcome:
    credential_id: str
    epoch: int
    secret: str
    commitment: str
    revealed_at: datetime
    verification: str
    audit_handle: str


@dataclass
class TimelineEntry:
    epoch: int
    commitment: str
    commitment_preview: str
    reveal_deadline: datetime
    revealed: bool
    revealed_at: datetime | None
    status: CommitmentStatus
    days_until_reveal: int


@dataclass
class TimelineSummary:
    """Read-only diagnostic view of a credential's schedule."""

    credential_id: str
    total: int
    revealed: int
    pending: int
    expired: int
    auto_revoke_risk: bool
    credential_revoked: bool
    revoked_at: datetime | None
    revocation_reason: str | None
    timeline: list[TimelineEntry]


@dataclass
class RevokedCredential:
    credential_id: str
    student_name: str
    epoch: int
    reveal_deadline: datetime
    reason: str


@dataclass
class SweepFailure:
    credential_id: str
    epoch: int
    error: str


@dataclass
class RevocationBatch:
    """Result of one expiry sweep. Failures are reported per item."""

    checked_at: datetime
    grace_period_days: int
    expired_commitments: int
    revoked: list[RevokedCredential] = field(default_factory=list)
    skipped: int = 0
    failures: list[SweepFailure] = field(default_factory=list)


@dataclass
class SimulatedDeadline:
    epoch: int
    old_deadline: datetime
    new_deadline: datetime


def _days_until(deadline: datetime, now: datetime) -> int:
    return math.ceil((deadline - now).total_seconds() / SECONDS_PER_DAY)


def _audit_handle(credential_id: str, epoch: int, secret: str, at: datetime) -> str:
    """Return a deterministic stand-in for an anchoring transaction hash."""
    return "0x" + sha256_hex(f"{credential_id}:{epoch}:{secret}:{at.isoformat()}")


class TemporalService:
    """Orchestrates chain generation into durable per-epoch commitments.

    The service re-reads state for every operation and holds nothing between
    calls, so one instance per request is the expected usage.
    """

    def __init__(
        self,
        db: Session,
        secret_store: SecretBundleStore,
        clock: Clock = utcnow,
        credentials: CredentialLifecycleService | None = None,
    ) -> None:
        self.db = db
        self.secret_store = secret_store
        self.clock = clock
        self.credentials = credentials or CredentialLifecycleService(db)

    # --- Issuance -------------------------------------------------------------------
    def issue_schedule(
        self,
        credential_id: str,
        issue_date: datetime,
        periods: int,
        base_secret: str | None = None,
    ) -> IssuedSchedule:
        """Create one commitment row per epoch and store the secrets separately.

        Args:
            credential_id: Existing credential to attach the schedule to.
            issue_date: Start of the schedule; epoch ``i`` is due ``i + 1`` intervals later.
            periods: Number of epochs, 1 to 20 inclusive.
            base_secret: Optional root secret; random when omitted.

        Returns:
            The public commitments and their deadlines.

        Raises:
            InvalidArgumentError: If ``periods`` is out of range.
            NotFoundError: If the credential does not exist.
            ScheduleExistsError: If the credential already has a schedule.
            StorageFailureError: If the rows or the secret bundle cannot be persisted.
        """
        validate_periods(periods)
        self.credentials.get_credential(credential_id)

        existing = self.db.scalar(
            select(func.count())
            .select_from(TemporalCommitment)
            .where(TemporalCommitment.credential_id == credential_id)
        )
        if existing:
            raise ScheduleExistsError(credential_id)

        chain = generate_chain(periods, base_secret)
        start = ensure_utc(issue_date)
        rows = [
            TemporalCommitment(
                credential_id=credential_id,
                epoch=epoch,
                commitment=commitment,
                reveal_deadline=calculate_deadline(
                    start, epoch, settings.temporal_interval_months
                ),
                revealed=False,
                revealed_secret=None,
                revealed_at=None,
            )
            for epoch, commitment in enumerate(chain.commitments)
        ]
        self.db.add_all(rows)
        try:
            self.db.flush()
        except IntegrityError as err:
            self.db.rollback()
            raise ScheduleExistsError(credential_id) from err

        bundle = SecretBundle(
            credential_id=credential_id,
            secrets=chain.secrets,
            base_secret=chain.base_secret,
        )
        try:
            self.secret_store.put_secrets(credential_id, bundle)
        except TemporalError:
            self.db.rollback()
            raise

        scheduled = [
            ScheduledCommitment(
                epoch=row.epoch,
                commitment=row.commitment,
                reveal_deadline=row.reveal_deadline,
            )
            for row in rows
        ]
        try:
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            self.secret_store.discard(credential_id)
            raise StorageFailureError(f"Could not persist temporal schedule: {err}") from err

        logger.info(
            "Issued %d-period temporal schedule for credential %s", periods, credential_id
        )
        return IssuedSchedule(
            credential_id=credential_id,
            periods=periods,
            commitments=scheduled,
            next_deadline=scheduled[0].reveal_deadline,
        )

    # --- Reveal ---------------------------------------------------------------------
    def _load_commitment(self, credential_id: str, epoch: int) -> TemporalCommitment | None:
        return self.db.scalars(
            select(TemporalCommitment)
            .where(
                TemporalCommitment.credential_id == credential_id,
                TemporalCommitment.epoch == epoch,
            )
            .execution_options(populate_existing=True)
        ).first()

    def reveal(self, credential_id: str, epoch: int) -> RevealOutcome:
        """Disclose the secret for one epoch after its deadline.

        Raises:
            NotFoundError: If no commitment exists for the pair.
            AlreadyRevealedError: If the epoch was revealed before, including by a
                concurrent request that won the race.
            NotYetDueError: If the deadline has not been reached.
            VerificationFailedError: If the stored secret does not open the commitment.
            StorageFailureError: If the update or its audit record cannot be written.
        """
        commitment = self._load_commitment(credential_id, epoch)
        if commitment is None:
            raise NotFoundError(
                f"No temporal commitment for credential {credential_id} epoch {epoch}"
            )
        if commitment.revealed:
            raise AlreadyRevealedError(credential_id, epoch, commitment.revealed_at)

        now = self.clock()
        if not can_reveal(commitment.reveal_deadline, now):
            logger.warning(
                "Early reveal rejected for credential %s epoch %d (deadline %s)",
                credential_id,
                epoch,
                commitment.reveal_deadline.isoformat(),
            )
            raise NotYetDueError(credential_id, epoch, commitment.reveal_deadline, now)

        secret = self.secret_store.get_secret(credential_id, epoch)
        verification = verify_reveal(secret, commitment.commitment, epoch)
        if not verification.valid or secret is None:
            logger.critical(
                "Temporal secret verification FAILED for credential %s epoch %d: %s",
                credential_id,
                epoch,
                verification.message,
            )
            raise VerificationFailedError(credential_id, epoch, verification.message)

        commitment_id = commitment.id
        stored_commitment = commitment.commitment
        try:
            result = self.db.execute(
                update(TemporalCommitment)
                .where(
                    TemporalCommitment.id == commitment_id,
                    TemporalCommitment.revealed.is_(False),
                )
                .values(revealed=True, revealed_secret=secret, revealed_at=now)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as err:
            self.db.rollback()
            raise StorageFailureError(f"Could not mark commitment revealed: {err}") from err

        if result.rowcount != 1:
            # Another request revealed this epoch between our read and the update.
            self.db.rollback()
            current = self._load_commitment(credential_id, epoch)
            raise AlreadyRevealedError(
                credential_id, epoch, current.revealed_at if current else None
            )

        audit_handle = _audit_handle(credential_id, epoch, secret, now)
        try:
            self._append_reveal_event(commitment_id, secret, audit_handle, now)
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error(
                "Reveal of credential %s epoch %d rolled back; audit record not written",
                credential_id,
                epoch,
                exc_info=True,
            )
            raise StorageFailureError(f"Could not record reveal event: {err}") from err

        logger.info("Revealed epoch %d of credential %s", epoch, credential_id)
        return RevealOutcome(
            credential_id=credential_id,
            epoch=epoch,
            secret=secret,
            commitment=stored_commitment,
            revealed_at=now,
            verification=verification.message,
            audit_handle=audit_handle,
        )

    def _write_reveal_event(
        self, commitment_id: int, secret: str, audit_handle: str, at: datetime
    ) -> None:
        with self.db.begin_nested():
            self.db.add(
                TemporalRevealEvent(
                    commitment_id=commitment_id,
                    revealed_secret=secret,
                    audit_handle=audit_handle,
                    created_at=at,
                )
            )

    def _append_reveal_event(
        self, commitment_id: int, secret: str, audit_handle: str, at: datetime
    ) -> None:
        """Write the audit record, retrying only this write with backoff.

        Runs inside a savepoint so a failed attempt does not undo the
        commitment update already issued in the enclosing transaction.
        """
        attempts = max(1, settings.reveal_event_max_retries)
        for attempt in range(1, attempts + 1):
            try:
                self._write_reveal_event(commitment_id, secret, audit_handle, at)
                return
            except SQLAlchemyError as err:
                if attempt == attempts:
                    raise
                delay = settings.reveal_event_retry_backoff_seconds * 2 ** (attempt - 1)
                logger.warning(
                    "Reveal event write for commitment %s failed (attempt %d/%d): %s",
                    commitment_id,
                    attempt,
                    attempts,
                    err,
                )
                time.sleep(delay)

    # --- Status ---------------------------------------------------------------------
    def get_status(self, credential_id: str) -> TimelineSummary:
        """Summarise a credential's schedule without mutating anything.

        Raises:
            NotFoundError: If the credential has no temporal commitments.
        """
        rows = list(
            self.db.scalars(
                select(TemporalCommitment)
                .where(TemporalCommitment.credential_id == credential_id)
                .order_by(TemporalCommitment.epoch.asc())
                .execution_options(populate_existing=True)
            )
        )
        if not rows:
            raise NotFoundError(f"No temporal commitments found for credential {credential_id}")

        now = self.clock()
        grace = settings.temporal_grace_period_days
        timeline: list[TimelineEntry] = []
        for row in rows:
            timeline.append(
                TimelineEntry(
                    epoch=row.epoch,
                    commitment=row.commitment,
                    commitment_preview=row.commitment[:COMMITMENT_PREVIEW_LENGTH] + "...",
                    reveal_deadline=row.reveal_deadline,
                    revealed=row.revealed,
                    revealed_at=row.revealed_at,
                    status=commitment_status(row.revealed, row.reveal_deadline, now),
                    days_until_reveal=0 if row.revealed else _days_until(row.reveal_deadline, now),
                )
            )

        revealed = sum(1 for row in rows if row.revealed)
        expired = sum(
            1 for row in rows if not row.revealed and is_expired(row.reveal_deadline, grace, now)
        )
        credential = self.credentials.get_credential(credential_id)
        return TimelineSummary(
            credential_id=credential_id,
            total=len(rows),
            revealed=revealed,
            pending=len(rows) - revealed,
            expired=expired,
            auto_revoke_risk=expired > 0,
            credential_revoked=credential.revoked_at is not None,
            revoked_at=credential.revoked_at,
            revocation_reason=credential.revocation_reason,
            timeline=timeline,
        )

    # --- Expiry sweep ---------------------------------------------------------------
    def sweep_expired(
        self,
        now: datetime | None = None,
        grace_period_days: int | None = None,
    ) -> RevocationBatch:
        """Revoke credentials whose commitments lapsed past the grace period.

        Each candidate is handled in its own savepoint; a failure is recorded
        in the batch and the remaining candidates are still processed.
        Running twice with the same ``now`` revokes nothing the second time.

        Raises:
            StorageFailureError: If the batch cannot be committed.
        """
        current = ensure_utc(now) if now is not None else self.clock()
        grace = settings.temporal_grace_period_days if grace_period_days is None else grace_period_days
        cutoff = current - timedelta(days=grace)

        candidates = self.db.execute(
            select(
                TemporalCommitment.id,
                TemporalCommitment.credential_id,
                TemporalCommitment.epoch,
                TemporalCommitment.reveal_deadline,
            )
            .where(
                TemporalCommitment.revealed.is_(False),
                TemporalCommitment.reveal_deadline < cutoff,
            )
            .order_by(TemporalCommitment.credential_id, TemporalCommitment.epoch)
        ).all()

        batch = RevocationBatch(
            checked_at=current,
            grace_period_days=grace,
            expired_commitments=len(candidates),
        )
        for candidate in candidates:
            try:
                with self.db.begin_nested():
                    revoked = self._revoke_for_lapse(
                        candidate.id,
                        candidate.credential_id,
                        candidate.epoch,
                        candidate.reveal_deadline,
                        current,
                    )
            except (SQLAlchemyError, TemporalError) as err:
                logger.error(
                    "Expiry sweep failed for credential %s epoch %d: %s",
                    candidate.credential_id,
                    candidate.epoch,
                    err,
                    exc_info=True,
                )
                batch.failures.append(
                    SweepFailure(
                        credential_id=candidate.credential_id,
                        epoch=candidate.epoch,
                        error=str(err),
                    )
                )
                continue

            if revoked is None:
                batch.skipped += 1
            else:
                batch.revoked.append(revoked)

        try:
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            raise StorageFailureError(f"Could not commit expiry sweep: {err}") from err

        logger.info(
            "Expiry sweep checked %d lapsed commitments: %d revoked, %d skipped, %d failed",
            batch.expired_commitments,
            len(batch.revoked),
            batch.skipped,
            len(batch.failures),
        )
        return batch

    def _revoke_for_lapse(
        self,
        commitment_id: int,
        credential_id: str,
        epoch: int,
        deadline: datetime,
        at: datetime,
    ) -> RevokedCredential | None:
        # A reveal that landed after the scan wins over the sweep.
        revealed = self.db.scalar(
            select(TemporalCommitment.revealed).where(TemporalCommitment.id == commitment_id)
        )
        if revealed:
            logger.info(
                "Skipping revocation of %s: epoch %d was revealed during the sweep",
                credential_id,
                epoch,
            )
            return None

        credential = self.credentials.get_credential(credential_id)
        if credential.revoked_at is not None:
            return None

        reason = (
            f"Temporal commitment expired: epoch {epoch} not revealed by {deadline.isoformat()}"
        )
        if not self.credentials.revoke_credential(credential_id, reason, at):
            return None

        return RevokedCredential(
            credential_id=credential_id,
            student_name=credential.student_name,
            epoch=epoch,
            reveal_deadline=deadline,
            reason=reason,
        )

    # --- Demo support ---------------------------------------------------------------
    def simulate_elapsed(self, credential_id: str) -> list[SimulatedDeadline]:
        """Move every unrevealed deadline of a credential to just before now.

        Raises:
            NotFoundError: If the credential has no temporal commitments.
        """
        rows = list(
            self.db.scalars(
                select(TemporalCommitment)
                .where(TemporalCommitment.credential_id == credential_id)
                .order_by(TemporalCommitment.epoch.asc())
                .execution_options(populate_existing=True)
            )
        )
        if not rows:
            raise NotFoundError(f"No temporal commitments found for credential {credential_id}")

        new_deadline = self.clock() - SIMULATED_DEADLINE_OFFSET
        changes: list[SimulatedDeadline] = []
        for row in rows:
            if row.revealed:
                continue
            changes.append(
                SimulatedDeadline(
                    epoch=row.epoch,
                    old_deadline=row.reveal_deadline,
                    new_deadline=new_deadline,
                )
            )
            row.reveal_deadline = new_deadline

        try:
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            raise StorageFailureError(f"Could not update deadlines: {err}") from err

        logger.warning(
            "Simulated elapsed time for credential %s: %d deadlines moved",
            credential_id,
            len(changes),
        )
        return changes

