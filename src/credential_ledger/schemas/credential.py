# src/credential_ledger/schemas/credential.py
"""Credential-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .temporal import ScheduleResponse, TemporalStatusResponse


class CredentialCreate(BaseModel):
    """Schema for issuing a new credential with its temporal schedule."""

    student_name: str = Field(..., min_length=1, max_length=255)
    degree: str = Field(..., min_length=1, max_length=255)
    university: str = Field(..., min_length=1, max_length=255)
    graduation_date: str = Field(..., description="Graduation date as printed on the degree")
    student_id: str | None = Field(None, max_length=128)
    vc_cid: str | None = Field(None, description="Content id of the signed credential")
    attestation_uid: str | None = Field(None, description="On-chain attestation id")
    temporal_periods: int | None = Field(
        None,
        description="Number of yearly commitments; defaults to the configured value",
    )


class RevokeRequest(BaseModel):
    """Schema for manually revoking a credential."""

    reason: str = Field(..., min_length=1, max_length=1000)


class CredentialResponse(BaseModel):
    """Schema for credential information returned by the API."""

    id: str
    student_name: str
    degree: str
    university: str
    graduation_date: str
    student_id: str | None
    issuer_did: str
    vc_cid: str | None
    attestation_uid: str | None
    issued_at: datetime
    revoked: bool
    revoked_at: datetime | None
    revocation_reason: str | None

    model_config = ConfigDict(from_attributes=True)


class CredentialIssueResponse(BaseModel):
    """A newly issued credential together with its public temporal schedule."""

    credential: CredentialResponse
    temporal: ScheduleResponse


class CredentialVerifyRequest(BaseModel):
    """Look a credential up by the identifiers a verifier holds."""

    vc_cid: str | None = None
    attestation_uid: str | None = None


class CredentialVerifyResponse(BaseModel):
    """Verifier-facing answer; `is_valid` is false once revoked."""

    is_valid: bool
    error: str | None = None
    credential: CredentialResponse | None = None
    temporal: TemporalStatusResponse | None = None


class UniversityCountResponse(BaseModel):
    university: str
    count: int

    model_config = ConfigDict(from_attributes=True)


class CredentialStatsResponse(BaseModel):
    total: int
    active: int
    revoked: int
    revocation_rate: float = Field(..., description="Revoked share of all credentials, in percent")
    top_universities: list[UniversityCountResponse]

    model_config = ConfigDict(from_attributes=True)
