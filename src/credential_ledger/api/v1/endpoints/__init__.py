# src/credential_ledger/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .credentials import router as credentials_router
from .temporal import router as temporal_router

__all__ = [
    "credentials_router",
    "temporal_router",
]
