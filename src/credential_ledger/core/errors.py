"""Exceptions raised by the temporal commitment workflow."""

from __future__ import annotations

import math
from datetime import datetime, timedelta

SECONDS_PER_DAY = 86_400


class TemporalError(Exception):
    """Base exception for temporal commitment failures."""


class InvalidArgumentError(TemporalError, ValueError):
    """Raised for caller-fixable input, before any side effect."""


class ScheduleExistsError(InvalidArgumentError):
    """Raised when a credential already has a temporal schedule."""

    def __init__(self, credential_id: str) -> None:
        super().__init__(f"Temporal schedule already exists for credential {credential_id}")
        self.credential_id = credential_id


class NotFoundError(TemporalError, LookupError):
    """Raised when a referenced credential or commitment does not exist."""


class AlreadyRevealedError(TemporalError):
    """Raised when a reveal is replayed for an epoch that is already revealed."""

    def __init__(self, credential_id: str, epoch: int, revealed_at: datetime | None) -> None:
        super().__init__(f"Epoch {epoch} of credential {credential_id} already revealed")
        self.credential_id = credential_id
        self.epoch = epoch
        self.revealed_at = revealed_at


class NotYetDueError(TemporalError):
    """Raised when a reveal is attempted before its deadline.

    Carries the deadline and the remaining time so callers can back off.
    """

    def __init__(self, credential_id: str, epoch: int, deadline: datetime, now: datetime) -> None:
        super().__init__(f"Epoch {epoch} of credential {credential_id} cannot be revealed yet")
        self.credential_id = credential_id
        self.epoch = epoch
        self.deadline = deadline
        self.remaining: timedelta = deadline - now

    @property
    def remaining_days(self) -> int:
        """Whole days left until the deadline, rounded up."""
        return math.ceil(self.remaining.total_seconds() / SECONDS_PER_DAY)


class VerificationFailedError(TemporalError):
    """Raised when a stored secret does not open its commitment.

    Indicates tampering or data corruption; never retried automatically.
    """

    def __init__(self, credential_id: str, epoch: int, message: str) -> None:
        super().__init__(message)
        self.credential_id = credential_id
        self.epoch = epoch


class StorageFailureError(TemporalError):
    """Raised when the commitment database or secret store fails."""
