# src/credential_ledger/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .credential import (
    CredentialCreate,
    CredentialIssueResponse,
    CredentialResponse,
    CredentialStatsResponse,
    CredentialVerifyRequest,
    CredentialVerifyResponse,
    RevokeRequest,
)
from .temporal import (
    RevealRequest,
    RevealResponse,
    ScheduleCreate,
    ScheduleResponse,
    SimulationResponse,
    SweepRequest,
    SweepResponse,
    TemporalStatusResponse,
)

__all__ = [
    "CredentialCreate", "CredentialIssueResponse", "CredentialResponse", "RevokeRequest",
    "CredentialStatsResponse", "CredentialVerifyRequest", "CredentialVerifyResponse",
    "RevealRequest", "RevealResponse",
    "ScheduleCreate", "ScheduleResponse",
    "SimulationResponse",
    "SweepRequest", "SweepResponse",
    "TemporalStatusResponse",
]
