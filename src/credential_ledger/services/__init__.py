# src/credential_ledger/services/__init__.py
"""Business logic services for the Credential Ledger application."""

from .credentials import CredentialLifecycleService
from .secret_store import FileSecretBundleStore, SecretBundle, get_secret_store
from .temporal import TemporalService

__all__ = [
    "CredentialLifecycleService",
    "FileSecretBundleStore",
    "SecretBundle",
    "TemporalService",
    "get_secret_store",
]
