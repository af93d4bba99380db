"""Forward-secure temporal hash chains.

Pure functions that derive a chain of per-epoch secrets from a base secret,
publish a commitment for each epoch, and verify later reveals. Nothing here
performs I/O or keeps state, so callers can use the functions from any request.

Derivation, for ``i`` in ``0..periods-1``::

    secrets[i]     = current
    commitments[i] = sha256^(i+1)(current)
    current        = sha256(current + str(i))

Knowing ``secrets[i]`` lets anyone recompute ``commitments[i]`` but never a
later secret, because the next secret hashes the raw secret tagged with the
epoch index rather than continuing the commitment hash. The hash function and
the exact formula must not change; doing so invalidates every stored
commitment.
"""

from __future__ import annotations

import calendar
import hashlib
import secrets as _secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Final

from credential_ledger.core.errors import InvalidArgumentError

MIN_PERIODS: Final[int] = 1
MAX_PERIODS: Final[int] = 20
BASE_SECRET_BYTES: Final[int] = 32
DEFAULT_INTERVAL_MONTHS: Final[int] = 12
DEFAULT_GRACE_PERIOD_DAYS: Final[int] = 30


class CommitmentStatus(str, Enum):
    """Display status of one epoch."""

    REVEALED = "revealed"
    CAN_REVEAL = "can_reveal"
    LOCKED = "locked"


@dataclass(frozen=True)
class TemporalChain:
    """Generator output. Never persisted as a whole."""

    commitments: list[str]
    secrets: list[str]
    base_secret: str

    @property
    def periods(self) -> int:
        return len(self.commitments)


@dataclass(frozen=True)
class RevealResult:
    """Outcome of checking a revealed secret against its commitment."""

    valid: bool
    message: str


def sha256_hex(data: str) -> str:
    """Return the hex SHA-256 digest of ``data`` encoded as UTF-8."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def validate_periods(periods: int) -> None:
    """Raise InvalidArgumentError unless ``periods`` is an int in [1, 20]."""
    if isinstance(periods, bool) or not isinstance(periods, int):
        raise InvalidArgumentError(f"Periods must be an integer, got {periods!r}")
    if periods < MIN_PERIODS or periods > MAX_PERIODS:
        raise InvalidArgumentError(
            f"Periods must be between {MIN_PERIODS} and {MAX_PERIODS}, got {periods}"
        )


def generate_chain(periods: int, base_secret: str | None = None) -> TemporalChain:
    """Derive ``periods`` secrets and their commitments from a base secret.

    Args:
        periods: Number of epochs in the schedule, 1 to 20 inclusive.
        base_secret: Root secret. A random 32-byte hex secret is drawn when omitted.

    Returns:
        The commitments, the secrets and the base secret used.

    Raises:
        InvalidArgumentError: If ``periods`` is out of range.
    """
    validate_periods(periods)

    base = base_secret or _secrets.token_hex(BASE_SECRET_BYTES)
    chain_secrets: list[str] = []
    commitments: list[str] = []

    current = base
    for epoch in range(periods):
        chain_secrets.append(current)
        commitments.append(create_commitment(current, epoch))
        # Tag with the current epoch, not the next one.
        current = sha256_hex(current + str(epoch))

    return TemporalChain(commitments=commitments, secrets=chain_secrets, base_secret=base)


def create_commitment(secret: str, epoch: int) -> str:
    """Hash ``secret`` exactly ``epoch + 1`` times."""
    if epoch < 0:
        raise InvalidArgumentError(f"Epoch must be non-negative, got {epoch}")
    digest = secret
    for _ in range(epoch + 1):
        digest = sha256_hex(digest)
    return digest


def verify_reveal(secret: str | None, commitment: str, epoch: int) -> RevealResult:
    """Check that ``secret`` opens ``commitment`` for ``epoch``.

    Never raises: a missing or malformed secret is reported as an invalid
    result so the caller can treat it as a verification failure.
    """
    try:
        computed = create_commitment(secret, epoch)  # type: ignore[arg-type]
    except Exception as exc:  # noqa: BLE001 - reported through the result
        return RevealResult(valid=False, message=f"Verification error: {exc}")

    if computed == commitment:
        return RevealResult(valid=True, message=f"Secret verified for epoch {epoch}")
    return RevealResult(
        valid=False,
        message=f"Secret does not match commitment for epoch {epoch}",
    )


def can_reveal(deadline: datetime, now: datetime | None = None) -> bool:
    """Return True once ``deadline`` has been reached. No early reveals."""
    current = now if now is not None else datetime.now(UTC)
    return current >= deadline


def is_expired(
    deadline: datetime,
    grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS,
    now: datetime | None = None,
) -> bool:
    """Return True when ``now`` is past ``deadline`` plus the grace period."""
    current = now if now is not None else datetime.now(UTC)
    return current > deadline + timedelta(days=grace_period_days)


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the end of the target month.

    ``2024-01-31 + 1 month`` is ``2024-02-29``; the time of day and tzinfo are kept.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def calculate_deadline(
    issue_date: datetime,
    epoch: int,
    interval_months: int = DEFAULT_INTERVAL_MONTHS,
) -> datetime:
    """Return the reveal deadline for ``epoch``.

    Computed directly from ``issue_date`` as ``(epoch + 1) * interval_months``
    months later so repeated month additions never accumulate drift.
    """
    if epoch < 0:
        raise InvalidArgumentError(f"Epoch must be non-negative, got {epoch}")
    if interval_months < 1:
        raise InvalidArgumentError(f"Interval must be at least one month, got {interval_months}")
    return add_months(issue_date, (epoch + 1) * interval_months)


def commitment_status(revealed: bool, deadline: datetime, now: datetime | None = None) -> CommitmentStatus:
    """Classify an epoch as revealed, open for reveal, or still locked."""
    if revealed:
        return CommitmentStatus.REVEALED
    if can_reveal(deadline, now):
        return CommitmentStatus.CAN_REVEAL
    return CommitmentStatus.LOCKED
