# src/credential_ledger/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import credentials_router, temporal_router

__all__ = [
    "credentials_router",
    "temporal_router",
]
