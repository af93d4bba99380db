"""Shared API dependencies for authentication and common functionality."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from credential_ledger.core.security import decode_access_token
from credential_ledger.db.session import get_db
from credential_ledger.db.time import utcnow
from credential_ledger.services.credentials import CredentialLifecycleService
from credential_ledger.services.secret_store import SecretBundleStore, get_secret_store
from credential_ledger.services.temporal import Clock, TemporalService

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


@dataclass(frozen=True)
class Issuer:
    """Authenticated caller. Identity is taken from the token as-is."""

    did: str


def get_current_issuer(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> Issuer:
    """Get the current issuer from the bearer JWT.

    Raises:
        HTTPException: If the token is invalid or has no subject
    """
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return Issuer(did=subject)


def get_clock() -> Clock:
    """Return the clock used for deadline comparisons."""
    return utcnow


def get_secret_store_dep() -> SecretBundleStore:
    """Return the shared secret bundle store."""
    return get_secret_store()


CurrentIssuerDep = Annotated[Issuer, Depends(get_current_issuer)]
ClockDep = Annotated[Clock, Depends(get_clock)]
SecretStoreDep = Annotated[SecretBundleStore, Depends(get_secret_store_dep)]


def get_credential_service(db: SessionDep) -> CredentialLifecycleService:
    return CredentialLifecycleService(db)


def get_temporal_service(
    db: SessionDep,
    secret_store: SecretStoreDep,
    clock: ClockDep,
) -> TemporalService:
    return TemporalService(db, secret_store, clock=clock)


CredentialServiceDep = Annotated[CredentialLifecycleService, Depends(get_credential_service)]
TemporalServiceDep = Annotated[TemporalService, Depends(get_temporal_service)]
