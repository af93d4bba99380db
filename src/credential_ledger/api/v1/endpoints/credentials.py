"""Credential endpoints for the Credential Ledger API."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError

from credential_ledger.core.errors import NotFoundError, TemporalError
from credential_ledger.core.settings import settings
from credential_ledger.core.temporal_chain import validate_periods
from credential_ledger.models import Credential
from credential_ledger.schemas.credential import (
    CredentialCreate,
    CredentialIssueResponse,
    CredentialResponse,
    CredentialStatsResponse,
    CredentialVerifyRequest,
    CredentialVerifyResponse,
    RevokeRequest,
)
from credential_ledger.schemas.temporal import ScheduleResponse, TemporalStatusResponse
from credential_ledger.services.credentials import CredentialLifecycleService

from ..dependencies import (
    ClockDep,
    CredentialServiceDep,
    CurrentIssuerDep,
    SessionDep,
    TemporalServiceDep,
)
from ..errors import http_error_for

router = APIRouter(prefix="/credentials", tags=["credentials"])


def _get_credential_or_404(service: CredentialLifecycleService, credential_id: str) -> Credential:
    try:
        return service.get_credential(credential_id)
    except TemporalError as err:
        raise http_error_for(err) from err


@router.post(
    "/",
    response_model=CredentialIssueResponse,
    status_code=status.HTTP_201_CREATED,
)
async def issue_credential(
    payload: CredentialCreate,
    db: SessionDep,
    credentials: CredentialServiceDep,
    temporal: TemporalServiceDep,
    clock: ClockDep,
    issuer: CurrentIssuerDep,
) -> CredentialIssueResponse:
    """Record a credential and issue its temporal commitment schedule.

    The credential and its commitments are committed together; nothing is
    written if the schedule cannot be created.
    """
    periods = (
        payload.temporal_periods
        if payload.temporal_periods is not None
        else settings.temporal_default_periods
    )
    try:
        validate_periods(periods)
    except TemporalError as err:
        raise http_error_for(err) from err

    try:
        credential = credentials.create_credential(
            student_name=payload.student_name,
            degree=payload.degree,
            university=payload.university,
            graduation_date=payload.graduation_date,
            student_id=payload.student_id,
            issuer_did=issuer.did,
            vc_cid=payload.vc_cid,
            attestation_uid=payload.attestation_uid,
            issued_at=clock(),
        )
    except IntegrityError as err:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Credential with this vc_cid or attestation_uid already exists",
        ) from err

    try:
        schedule = temporal.issue_schedule(credential.id, credential.issued_at, periods)
    except TemporalError as err:
        db.rollback()
        raise http_error_for(err) from err

    return CredentialIssueResponse(
        credential=CredentialResponse.model_validate(credential),
        temporal=ScheduleResponse.model_validate(schedule),
    )


@router.get("/", response_model=list[CredentialResponse])
async def list_credentials(
    credentials: CredentialServiceDep,
    university: str | None = None,
    revoked: bool | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[CredentialResponse]:
    """List credentials, newest first."""
    rows = credentials.list_credentials(
        university=university,
        revoked=revoked,
        limit=limit,
        offset=offset,
    )
    return [CredentialResponse.model_validate(row) for row in rows]


@router.post("/verify", response_model=CredentialVerifyResponse)
async def verify_credential(
    payload: CredentialVerifyRequest,
    credentials: CredentialServiceDep,
    temporal: TemporalServiceDep,
) -> CredentialVerifyResponse:
    """Check whether a credential is still valid, including its liveness schedule."""
    if payload.vc_cid is None and payload.attestation_uid is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="vc_cid or attestation_uid is required",
        )

    credential = credentials.find_credential(
        vc_cid=payload.vc_cid,
        attestation_uid=payload.attestation_uid,
    )
    if credential is None:
        return CredentialVerifyResponse(is_valid=False, error="Credential not found")

    try:
        timeline = TemporalStatusResponse.model_validate(temporal.get_status(credential.id))
    except NotFoundError:
        timeline = None

    error = None
    if credential.revoked_at is not None:
        error = (
            f"Credential revoked on {credential.revoked_at.isoformat()}: "
            f"{credential.revocation_reason}"
        )
    return CredentialVerifyResponse(
        is_valid=error is None,
        error=error,
        credential=CredentialResponse.model_validate(credential),
        temporal=timeline,
    )


@router.get("/stats", response_model=CredentialStatsResponse)
async def credential_stats(credentials: CredentialServiceDep) -> CredentialStatsResponse:
    return CredentialStatsResponse.model_validate(credentials.get_stats())


@router.get("/student/{student_name}", response_model=list[CredentialResponse])
async def list_student_credentials(
    student_name: str,
    credentials: CredentialServiceDep,
) -> list[CredentialResponse]:
    """List a student's credentials by case-insensitive name match."""
    return [
        CredentialResponse.model_validate(row)
        for row in credentials.list_by_student(student_name)
    ]


@router.get("/{credential_id}", response_model=CredentialResponse)
async def get_credential(
    credential_id: str,
    credentials: CredentialServiceDep,
) -> CredentialResponse:
    """Get a single credential."""
    return CredentialResponse.model_validate(_get_credential_or_404(credentials, credential_id))


@router.post("/{credential_id}/revoke", response_model=CredentialResponse)
async def revoke_credential(
    credential_id: str,
    payload: RevokeRequest,
    db: SessionDep,
    credentials: CredentialServiceDep,
    clock: ClockDep,
    issuer: CurrentIssuerDep,
) -> CredentialResponse:
    """Manually revoke a credential."""
    credential = _get_credential_or_404(credentials, credential_id)
    if credential.issuer_did != issuer.did:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Credential was issued by another issuer",
        )

    if not credentials.revoke_credential(credential_id, payload.reason, clock()):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Credential already revoked",
        )
    db.commit()
    return CredentialResponse.model_validate(credentials.get_credential(credential_id))
