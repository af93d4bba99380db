"""Credential lifecycle operations used by the temporal workflow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from credential_ledger.core.errors import InvalidArgumentError, NotFoundError
from credential_ledger.db.time import utcnow
from credential_ledger.models import Credential

logger = logging.getLogger(__name__)

TOP_UNIVERSITIES_LIMIT = 10


@dataclass
class UniversityCount:
    university: str
    count: int


@dataclass
class CredentialStats:
    """Registry-wide counts; `revocation_rate` is a percentage."""

    total: int
    active: int
    revoked: int
    revocation_rate: float
    top_universities: list[UniversityCount] = field(default_factory=list)


class CredentialLifecycleService:
    """Thin wrapper around credential persistence and revocation."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_credential(
        self,
        *,
        student_name: str,
        degree: str,
        university: str,
        graduation_date: str,
        issuer_did: str,
        student_id: str | None = None,
        vc_cid: str | None = None,
        attestation_uid: str | None = None,
        issued_at: datetime | None = None,
    ) -> Credential:
        """Insert a credential record and flush it so the id is available.

        The caller owns the transaction and decides when to commit.
        """
        credential = Credential(
            student_name=student_name,
            degree=degree,
            university=university,
            graduation_date=graduation_date,
            student_id=student_id,
            issuer_did=issuer_did,
            vc_cid=vc_cid,
            attestation_uid=attestation_uid,
            issued_at=issued_at or utcnow(),
        )
        self.db.add(credential)
        self.db.flush()
        return credential

    def get_credential(self, credential_id: str) -> Credential:
        """Return the credential or raise NotFoundError."""
        credential = self.db.get(Credential, credential_id, populate_existing=True)
        if credential is None:
            raise NotFoundError(f"Credential {credential_id} not found")
        return credential

    def list_credentials(
        self,
        *,
        university: str | None = None,
        revoked: bool | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Credential]:
        """Return credentials newest first, optionally filtered."""
        stmt = select(Credential)
        if university:
            stmt = stmt.where(Credential.university.ilike(f"%{university}%"))
        if revoked is True:
            stmt = stmt.where(Credential.revoked_at.is_not(None))
        elif revoked is False:
            stmt = stmt.where(Credential.revoked_at.is_(None))
        stmt = stmt.order_by(Credential.issued_at.desc()).limit(limit).offset(offset)
        return list(self.db.scalars(stmt))

    def find_credential(
        self,
        *,
        vc_cid: str | None = None,
        attestation_uid: str | None = None,
    ) -> Credential | None:
        """Look a credential up by its external identifiers.

        Every identifier given must match. Returns None when nothing does.
        """
        if vc_cid is None and attestation_uid is None:
            raise InvalidArgumentError("vc_cid or attestation_uid is required")

        stmt = select(Credential)
        if attestation_uid is not None:
            stmt = stmt.where(Credential.attestation_uid == attestation_uid)
        if vc_cid is not None:
            stmt = stmt.where(Credential.vc_cid == vc_cid)
        return self.db.scalars(stmt.execution_options(populate_existing=True)).first()

    def list_by_student(self, student_name: str) -> list[Credential]:
        """Return credentials whose holder name contains ``student_name``, newest first."""
        stmt = (
            select(Credential)
            .where(Credential.student_name.ilike(f"%{student_name}%"))
            .order_by(Credential.issued_at.desc())
        )
        return list(self.db.scalars(stmt))

    def get_stats(self, top: int = TOP_UNIVERSITIES_LIMIT) -> CredentialStats:
        total = self.db.scalar(select(func.count()).select_from(Credential)) or 0
        revoked = (
            self.db.scalar(
                select(func.count())
                .select_from(Credential)
                .where(Credential.revoked_at.is_not(None))
            )
            or 0
        )
        issued = func.count(Credential.id).label("issued")
        by_university = self.db.execute(
            select(Credential.university, issued)
            .group_by(Credential.university)
            .order_by(issued.desc(), Credential.university.asc())
            .limit(top)
        ).all()
        return CredentialStats(
            total=total,
            active=total - revoked,
            revoked=revoked,
            revocation_rate=(revoked / total) * 100 if total else 0.0,
            top_universities=[
                UniversityCount(university=row.university, count=row.issued)
                for row in by_university
            ],
        )

    def revoke_credential(self, credential_id: str, reason: str, at: datetime) -> bool:
        """Mark the credential revoked unless it already is.

        Uses a conditional UPDATE so two concurrent revocations cannot both win.

        Returns:
            True if this call revoked the credential, False if it was already revoked.

        Raises:
            NotFoundError: If the credential does not exist.
        """
        result = self.db.execute(
            update(Credential)
            .where(Credential.id == credential_id, Credential.revoked_at.is_(None))
            .values(revoked_at=at, revocation_reason=reason)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            logger.info("Revoked credential %s: %s", credential_id, reason)
            return True

        # Distinguish "already revoked" from "does not exist".
        self.get_credential(credential_id)
        return False
