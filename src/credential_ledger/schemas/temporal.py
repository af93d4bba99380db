# src/credential_ledger/schemas/temporal.py
"""Temporal commitment Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from credential_ledger.core.temporal_chain import CommitmentStatus


class ScheduleCreate(BaseModel):
    """Schema for attaching a temporal schedule to an existing credential."""

    credential_id: str
    periods: int | None = Field(None, description="Number of epochs (1-20)")
    issue_date: datetime | None = Field(
        None,
        description="Schedule start; defaults to the credential's issue time",
    )


class ScheduledCommitmentResponse(BaseModel):
    epoch: int
    commitment: str
    reveal_deadline: datetime

    model_config = ConfigDict(from_attributes=True)


class ScheduleResponse(BaseModel):
    """Public view of an issued schedule. Secrets are never returned."""

    credential_id: str
    periods: int
    commitments: list[ScheduledCommitmentResponse]
    next_deadline: datetime

    model_config = ConfigDict(from_attributes=True)


class RevealRequest(BaseModel):
    credential_id: str
    epoch: int = Field(..., ge=0)


class RevealResponse(BaseModel):
    """Result of a successful reveal."""

    credential_id: str
    epoch: int
    secret: str
    commitment: str
    revealed_at: datetime
    verification: str
    audit_handle: str = Field(..., description="Deterministic stand-in for an anchoring tx hash")

    model_config = ConfigDict(from_attributes=True)


class TimelineEntryResponse(BaseModel):
    epoch: int
    commitment_preview: str
    reveal_deadline: datetime
    revealed: bool
    revealed_at: datetime | None
    status: CommitmentStatus
    days_until_reveal: int

    model_config = ConfigDict(from_attributes=True)


class TemporalStatusResponse(BaseModel):
    """Diagnostic view of a credential's temporal schedule."""

    credential_id: str
    total: int
    revealed: int
    pending: int
    expired: int
    auto_revoke_risk: bool
    credential_revoked: bool
    revoked_at: datetime | None
    revocation_reason: str | None
    timeline: list[TimelineEntryResponse]

    model_config = ConfigDict(from_attributes=True)


class SweepRequest(BaseModel):
    grace_period_days: int | None = Field(None, ge=0)


class RevokedCredentialResponse(BaseModel):
    credential_id: str
    student_name: str
    epoch: int
    reveal_deadline: datetime
    reason: str

    model_config = ConfigDict(from_attributes=True)


class SweepFailureResponse(BaseModel):
    credential_id: str
    epoch: int
    error: str

    model_config = ConfigDict(from_attributes=True)


class SweepResponse(BaseModel):
    """Outcome of an expiry sweep."""

    checked_at: datetime
    grace_period_days: int
    expired_commitments: int
    revoked: list[RevokedCredentialResponse]
    skipped: int
    failures: list[SweepFailureResponse]

    model_config = ConfigDict(from_attributes=True)


class SimulatedDeadlineResponse(BaseModel):
    epoch: int
    old_deadline: datetime
    new_deadline: datetime

    model_config = ConfigDict(from_attributes=True)


class SimulationResponse(BaseModel):
    credential_id: str
    updated: int
    deadlines: list[SimulatedDeadlineResponse]
