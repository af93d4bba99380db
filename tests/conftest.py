# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-credential-ledger")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from credential_ledger.api.v1.dependencies import get_clock, get_secret_store_dep
from credential_ledger.core.security import create_access_token
from credential_ledger.db.session import Base, enable_sqlite_savepoints
from credential_ledger.db.session import get_db as app_get_session
from credential_ledger.main import app as fastapi_app
from credential_ledger.models import Credential
from credential_ledger.services.credentials import CredentialLifecycleService
from credential_ledger.services.secret_store import FileSecretBundleStore
from credential_ledger.services.temporal import TemporalService

TEST_DB_URL = "sqlite://"
ISSUER_DID = "did:key:zTestIssuer"
OTHER_ISSUER_DID = "did:key:zOtherIssuer"
ISSUE_DATE = datetime(2024, 1, 1, tzinfo=UTC)


class FakeClock:
    """Mutable clock injected wherever the services read the time."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    # Services commit and roll back on their own, so each test gets a plain
    # session and the tables are emptied afterwards.
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FakeClock:
    """Return a clock frozen at the default issue date."""
    return FakeClock(ISSUE_DATE)


@pytest.fixture()
def secret_store(tmp_path: Path) -> FileSecretBundleStore:
    """Return a secret store rooted in a per-test directory."""
    return FileSecretBundleStore(tmp_path / "secrets")


@pytest.fixture()
def temporal_service(
    db_session: Session,
    secret_store: FileSecretBundleStore,
    clock: FakeClock,
) -> TemporalService:
    return TemporalService(db_session, secret_store, clock=clock)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    clock: FakeClock,
    secret_store: FileSecretBundleStore,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_secret_store_dep] = lambda: secret_store
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_clock, None)
        app.dependency_overrides.pop(get_secret_store_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def make_credential(
    db_session: Session,
    *,
    student_name: str = "Ada Lovelace",
    issuer_did: str = ISSUER_DID,
    issued_at: datetime = ISSUE_DATE,
    **overrides: str,
) -> Credential:
    """Persist a credential without a temporal schedule."""
    credential = CredentialLifecycleService(db_session).create_credential(
        student_name=student_name,
        degree=overrides.get("degree", "BSc Mathematics"),
        university=overrides.get("university", "University of London"),
        graduation_date=overrides.get("graduation_date", "2023-06-30"),
        issuer_did=issuer_did,
        vc_cid=overrides.get("vc_cid"),
        attestation_uid=overrides.get("attestation_uid"),
        issued_at=issued_at,
    )
    db_session.commit()
    return credential


@pytest.fixture()
def credential(db_session: Session) -> Credential:
    """Create a credential issued on the default issue date."""
    return make_credential(db_session)


@pytest.fixture()
def scheduled_credential(
    credential: Credential,
    temporal_service: TemporalService,
) -> Credential:
    """Create a credential with a three-period schedule starting 2024-01-01."""
    temporal_service.issue_schedule(credential.id, ISSUE_DATE, 3)
    return credential


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    """Return authorization headers for the test issuer."""
    token = create_access_token(ISSUER_DID)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def other_auth_headers() -> dict[str, str]:
    """Return authorization headers for an unrelated issuer."""
    token = create_access_token(OTHER_ISSUER_DID)
    return {"Authorization": f"Bearer {token}"}
