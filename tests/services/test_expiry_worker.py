# tests/services/test_expiry_worker.py
"""Tests for the background expiry sweep worker."""

import asyncio
from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from credential_ledger.models import Credential
from credential_ledger.services.expiry_worker import ExpirySweepWorker
from credential_ledger.services.secret_store import FileSecretBundleStore
from credential_ledger.services.temporal import RevocationBatch


@pytest.fixture
def session_factory(mocker, db_session: Session):
    # The worker closes its session on exit; keep the test session open.
    factory = mocker.MagicMock()
    factory.return_value.__enter__.return_value = db_session
    factory.return_value.__exit__.return_value = None
    return factory


def test_sweep_once_revokes_lapsed_credentials(
    session_factory,
    secret_store: FileSecretBundleStore,
    scheduled_credential: Credential,
    db_session: Session,
) -> None:
    worker = ExpirySweepWorker(
        session_factory=session_factory,
        secret_store=secret_store,
        clock=lambda: datetime(2025, 6, 1, tzinfo=UTC),
    )

    batch = worker.sweep_once()

    session_factory.assert_called_once()
    assert [item.credential_id for item in batch.revoked] == [scheduled_credential.id]
    db_session.refresh(scheduled_credential)
    assert scheduled_credential.revoked


@pytest.mark.asyncio
async def test_worker_start_and_stop(mocker, secret_store: FileSecretBundleStore) -> None:
    batch = RevocationBatch(
        checked_at=datetime(2025, 1, 1, tzinfo=UTC),
        grace_period_days=30,
        expired_commitments=0,
    )
    sweep = mocker.patch.object(ExpirySweepWorker, "sweep_once", return_value=batch)
    worker = ExpirySweepWorker(secret_store=secret_store, interval_seconds=0.1)

    await worker.start()
    assert worker.running
    await asyncio.sleep(0.05)
    await worker.stop()

    assert not worker.running
    assert sweep.call_count >= 1
    assert worker.last_batch is batch


@pytest.mark.asyncio
async def test_worker_survives_sweep_errors(mocker, secret_store: FileSecretBundleStore) -> None:
    error = OperationalError("SELECT", {}, Exception("database is locked"))
    sweep = mocker.patch.object(ExpirySweepWorker, "sweep_once", side_effect=error)
    worker = ExpirySweepWorker(secret_store=secret_store, interval_seconds=0.1)

    await worker.start()
    await asyncio.sleep(0.25)
    await worker.stop()

    assert sweep.call_count >= 2
    assert worker.last_batch is None


@pytest.mark.asyncio
async def test_worker_survives_unexpected_errors(
    mocker, secret_store: FileSecretBundleStore
) -> None:
    sweep = mocker.patch.object(
        ExpirySweepWorker, "sweep_once", side_effect=RuntimeError("sweep exploded")
    )
    worker = ExpirySweepWorker(secret_store=secret_store, interval_seconds=0.1)

    await worker.start()
    await asyncio.sleep(0.35)
    assert worker.running
    await worker.stop()

    assert sweep.call_count >= 2
    assert not worker.running


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(secret_store: FileSecretBundleStore) -> None:
    worker = ExpirySweepWorker(secret_store=secret_store)
    await worker.stop()
    assert not worker.running
