"""Storage for issuer-held temporal chain secrets.

Secrets never touch the commitment tables. The file-backed store keeps one
JSON bundle per credential in a directory that is not reachable through the
database or the public API; a production deployment should point it at an
encrypted, access-controlled volume.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

from credential_ledger.core.errors import (
    InvalidArgumentError,
    ScheduleExistsError,
    StorageFailureError,
)
from credential_ledger.core.settings import settings

logger = logging.getLogger(__name__)

_CREDENTIAL_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")
_BUNDLE_FILE_MODE = 0o600


@dataclass(frozen=True)
class SecretBundle:
    """All secrets of one credential's chain, plus the root secret."""

    credential_id: str
    secrets: list[str]
    base_secret: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "credentialId": self.credential_id,
            "secrets": list(self.secrets),
            "baseSecret": self.base_secret,
        }


class SecretBundleStore(Protocol):
    """Write-once, read-many store keyed by credential id."""

    def put_secrets(self, credential_id: str, bundle: SecretBundle) -> None: ...

    def get_secret(self, credential_id: str, epoch: int) -> str | None: ...

    def discard(self, credential_id: str) -> None: ...


class FileSecretBundleStore:
    """Keep each credential's secret bundle as a JSON file on disk."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path_for(self, credential_id: str) -> Path:
        if not _CREDENTIAL_ID_PATTERN.fullmatch(credential_id):
            raise InvalidArgumentError(f"Invalid credential id {credential_id!r}")
        return self.directory / f"credential-secrets-{credential_id}.json"

    def put_secrets(self, credential_id: str, bundle: SecretBundle) -> None:
        """Persist ``bundle`` once; a second write for the same id is rejected.

        Raises:
            ScheduleExistsError: If a bundle already exists for the credential.
            StorageFailureError: If the file cannot be written.
        """
        path = self._path_for(credential_id)
        payload = json.dumps(bundle.to_dict()).encode("utf-8")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _BUNDLE_FILE_MODE)
        except FileExistsError as err:
            raise ScheduleExistsError(credential_id) from err
        except OSError as err:
            raise StorageFailureError(f"Could not create secret bundle: {err}") from err

        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as err:
            path.unlink(missing_ok=True)
            raise StorageFailureError(f"Could not write secret bundle: {err}") from err

        logger.info("Stored %d temporal secrets for credential %s", len(bundle.secrets), credential_id)

    def get_secret(self, credential_id: str, epoch: int) -> str | None:
        """Return the secret for ``epoch``, or None if missing or unreadable.

        Missing and corrupt bundles both yield None so that the reveal flow
        reports a verification failure instead of crashing.

        Raises:
            StorageFailureError: On I/O errors other than a missing file.
        """
        path = self._path_for(credential_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("No secret bundle on disk for credential %s", credential_id)
            return None
        except OSError as err:
            raise StorageFailureError(f"Could not read secret bundle: {err}") from err

        try:
            secrets = json.loads(raw)["secrets"]
        except (ValueError, KeyError, TypeError):
            logger.error("Secret bundle for credential %s is corrupt", credential_id)
            return None

        if not isinstance(secrets, list) or not 0 <= epoch < len(secrets):
            return None
        secret = secrets[epoch]
        return secret if isinstance(secret, str) else None

    def discard(self, credential_id: str) -> None:
        """Remove a bundle whose schedule was never committed."""
        path = self._path_for(credential_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as err:  # pragma: no cover - filesystem specific
            logger.error("Could not discard secret bundle for %s: %s", credential_id, err)


@lru_cache(maxsize=1)
def get_secret_store() -> FileSecretBundleStore:
    """Return the configured secret bundle store."""
    return FileSecretBundleStore(settings.temporal_secrets_dir)
