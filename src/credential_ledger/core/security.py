"""Issuer access tokens."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import jwt

from credential_ledger.core.settings import settings


def create_access_token(issuer_did: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT whose subject is the issuer DID."""
    to_encode: dict[str, object] = {"sub": issuer_did}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, object]:
    """Decode and verify a token. Raises ``jose.JWTError`` when invalid."""
    payload: dict[str, object] = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
    )
    return payload
