"""Background expiry sweep for temporal commitments.

Periodically revokes credentials whose commitments stayed unrevealed past
the grace period. Disabled unless ``TEMPORAL_SWEEP_ENABLED`` is set; the
sweep endpoint and the ``scripts.sweep`` command work either way.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from credential_ledger.core.errors import TemporalError
from credential_ledger.core.settings import settings
from credential_ledger.db.session import SessionLocal
from credential_ledger.db.time import utcnow
from credential_ledger.services.secret_store import SecretBundleStore, get_secret_store
from credential_ledger.services.temporal import Clock, RevocationBatch, TemporalService

# Configure logger for this module
logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 0.1


class ExpirySweepWorker:
    """Runs ``TemporalService.sweep_expired`` on a fixed interval."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        secret_store: SecretBundleStore | None = None,
        interval_seconds: float | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._secret_store = secret_store
        self._interval = max(
            MIN_INTERVAL_SECONDS,
            float(
                settings.temporal_sweep_interval_seconds
                if interval_seconds is None
                else interval_seconds
            ),
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self.last_batch: RevocationBatch | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the loop and wait for the current sweep to finish."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                self.last_batch = await asyncio.to_thread(self.sweep_once)
            except (TemporalError, SQLAlchemyError) as e:
                logger.error("ExpirySweepWorker sweep failed: %s", e, exc_info=True)
            except (OSError, ConnectionError, TimeoutError) as e:
                logger.warning("ExpirySweepWorker encountered I/O error: %s", e)
            except Exception:
                # The loop must outlive any single failed tick.
                logger.exception("ExpirySweepWorker encountered unexpected error")

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval)
            except TimeoutError:
                continue

    def sweep_once(self) -> RevocationBatch:
        """Run a single sweep in a fresh session."""
        store = self._secret_store or get_secret_store()
        with self._session_factory() as db:
            batch = TemporalService(db, store, clock=self._clock).sweep_expired()
        if batch.revoked or batch.failures:
            logger.info(
                "ExpirySweepWorker revoked %d credentials (%d failures)",
                len(batch.revoked),
                len(batch.failures),
            )
        return batch
