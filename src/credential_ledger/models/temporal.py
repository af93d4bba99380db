# src/credential_ledger/models/temporal.py
"""Models for per-epoch temporal commitments and their reveal audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from credential_ledger.db.session import Base
from credential_ledger.db.time import UTCDateTime, utcnow

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from .credential import Credential


class TemporalCommitment(Base):
    """Public commitment for one epoch of a credential's liveness schedule.

    Rows are created in a batch at issuance and mutated exactly once, by a
    successful reveal. They are never deleted.
    """

    __tablename__ = "temporal_commitment"
    __table_args__ = (
        UniqueConstraint("credential_id", "epoch", name="uq_temporal_commitment_credential_epoch"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    credential_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("credential.id"),
        nullable=False,
        index=True,
    )
    epoch: Mapped[int] = mapped_column(Integer, nullable=False)
    # Hex SHA-256; public.
    commitment: Mapped[str] = mapped_column(String(64), nullable=False)
    reveal_deadline: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)

    revealed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revealed_secret: Mapped[str | None] = mapped_column(Text, nullable=True)
    revealed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    credential: Mapped[Credential] = relationship(
        "Credential",
        back_populates="temporal_commitments",
    )
    reveal_event: Mapped[TemporalRevealEvent | None] = relationship(
        "TemporalRevealEvent",
        back_populates="commitment",
        uselist=False,
    )


class TemporalRevealEvent(Base):
    """Append-only audit record written once per successful reveal."""

    __tablename__ = "temporal_reveal_event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    commitment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("temporal_commitment.id"),
        nullable=False,
        unique=True,
    )
    revealed_secret: Mapped[str] = mapped_column(Text, nullable=False)
    # Stand-in for an on-chain transaction hash until anchoring is wired up.
    audit_handle: Mapped[str] = mapped_column(String(66), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    commitment: Mapped[TemporalCommitment] = relationship(
        "TemporalCommitment",
        back_populates="reveal_event",
    )
