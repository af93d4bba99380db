# src/credential_ledger/models/__init__.py
"""SQLAlchemy models for the Credential Ledger application."""

from .credential import Credential
from .temporal import TemporalCommitment, TemporalRevealEvent

__all__ = [
    "Credential",
    "TemporalCommitment", "TemporalRevealEvent",
]
