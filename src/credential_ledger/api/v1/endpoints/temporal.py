"""Temporal commitment endpoints for the Credential Ledger API."""

from fastapi import APIRouter, HTTPException, status

from credential_ledger.core.errors import TemporalError
from credential_ledger.core.settings import settings
from credential_ledger.models import Credential
from credential_ledger.schemas.temporal import (
    RevealRequest,
    RevealResponse,
    ScheduleCreate,
    ScheduleResponse,
    SimulatedDeadlineResponse,
    SimulationResponse,
    SweepRequest,
    SweepResponse,
    TemporalStatusResponse,
)
from credential_ledger.services.temporal import TemporalService

from ..dependencies import CurrentIssuerDep, Issuer, TemporalServiceDep
from ..errors import http_error_for

router = APIRouter(prefix="/temporal", tags=["temporal"])


def _get_owned_credential_or_404(
    service: TemporalService, credential_id: str, issuer: Issuer
) -> Credential:
    try:
        credential = service.credentials.get_credential(credential_id)
    except TemporalError as err:
        raise http_error_for(err) from err
    if credential.issuer_did != issuer.did:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Credential was issued by another issuer",
        )
    return credential


@router.post(
    "/schedules",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_schedule(
    payload: ScheduleCreate,
    service: TemporalServiceDep,
    issuer: CurrentIssuerDep,
) -> ScheduleResponse:
    """Attach a temporal schedule to a credential that has none yet."""
    credential = _get_owned_credential_or_404(service, payload.credential_id, issuer)
    periods = payload.periods if payload.periods is not None else settings.temporal_default_periods
    issue_date = payload.issue_date or credential.issued_at

    try:
        schedule = service.issue_schedule(payload.credential_id, issue_date, periods)
    except TemporalError as err:
        raise http_error_for(err) from err
    return ScheduleResponse.model_validate(schedule)


@router.post("/reveal", response_model=RevealResponse)
def reveal_commitment(
    payload: RevealRequest,
    service: TemporalServiceDep,
    issuer: CurrentIssuerDep,
) -> RevealResponse:
    """Reveal the secret for one epoch once its deadline has passed."""
    _get_owned_credential_or_404(service, payload.credential_id, issuer)
    try:
        outcome = service.reveal(payload.credential_id, payload.epoch)
    except TemporalError as err:
        raise http_error_for(err) from err
    return RevealResponse.model_validate(outcome)


@router.get("/status/{credential_id}", response_model=TemporalStatusResponse)
async def get_temporal_status(
    credential_id: str,
    service: TemporalServiceDep,
) -> TemporalStatusResponse:
    """Return the commitment timeline of a credential."""
    try:
        summary = service.get_status(credential_id)
    except TemporalError as err:
        raise http_error_for(err) from err
    return TemporalStatusResponse.model_validate(summary)


@router.post("/check-expiry", response_model=SweepResponse)
async def check_expiry(
    service: TemporalServiceDep,
    _issuer: CurrentIssuerDep,
    payload: SweepRequest | None = None,
) -> SweepResponse:
    """Revoke credentials whose commitments lapsed past the grace period."""
    grace = payload.grace_period_days if payload is not None else None
    try:
        batch = service.sweep_expired(grace_period_days=grace)
    except TemporalError as err:
        raise http_error_for(err) from err
    return SweepResponse.model_validate(batch)


@router.post("/simulate/{credential_id}", response_model=SimulationResponse)
async def simulate_elapsed(
    credential_id: str,
    service: TemporalServiceDep,
    issuer: CurrentIssuerDep,
) -> SimulationResponse:
    """Pull unrevealed deadlines into the past. Only available in demo deployments."""
    if not settings.temporal_simulation_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    _get_owned_credential_or_404(service, credential_id, issuer)
    try:
        changes = service.simulate_elapsed(credential_id)
    except TemporalError as err:
        raise http_error_for(err) from err
    return SimulationResponse(
        credential_id=credential_id,
        updated=len(changes),
        deadlines=[SimulatedDeadlineResponse.model_validate(change) for change in changes],
    )
