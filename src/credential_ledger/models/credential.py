# src/credential_ledger/models/credential.py
"""SQLAlchemy model for issued degree credentials."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from credential_ledger.db.session import Base
from credential_ledger.db.time import UTCDateTime, utcnow

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .temporal import TemporalCommitment


def _new_credential_id() -> str:
    return str(uuid.uuid4())


class Credential(Base):
    """A university degree credential owned by the issuance subsystem.

    The temporal engine only reads it and sets the revocation columns.
    """

    __tablename__ = "credential"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_credential_id)
    student_name: Mapped[str] = mapped_column(Text, nullable=False)
    degree: Mapped[str] = mapped_column(Text, nullable=False)
    university: Mapped[str] = mapped_column(Text, nullable=False)
    graduation_date: Mapped[str] = mapped_column(Text, nullable=False)
    student_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    issuer_did: Mapped[str] = mapped_column(Text, nullable=False)

    # Handles produced by the external IPFS / attestation services, if any.
    vc_cid: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)
    attestation_uid: Mapped[str | None] = mapped_column(Text, nullable=True, unique=True)

    issued_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    revocation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    temporal_commitments: Mapped[list[TemporalCommitment]] = relationship(
        "TemporalCommitment",
        back_populates="credential",
        order_by="TemporalCommitment.epoch",
    )

    @property
    def revoked(self) -> bool:
        """Return True once the credential has been revoked."""
        return self.revoked_at is not None
