"""credentials and temporal commitments

Revision ID: 5c1f0e7a9b21
Revises:
Create Date: 2025-11-04 09:12:41.518203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1f0e7a9b21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the credential, commitment and reveal event tables."""
    op.create_table(
        "credential",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("student_name", sa.Text(), nullable=False),
        sa.Column("degree", sa.Text(), nullable=False),
        sa.Column("university", sa.Text(), nullable=False),
        sa.Column("graduation_date", sa.Text(), nullable=False),
        sa.Column("student_id", sa.Text(), nullable=True),
        sa.Column("issuer_did", sa.Text(), nullable=False),
        sa.Column("vc_cid", sa.Text(), nullable=True),
        sa.Column("attestation_uid", sa.Text(), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revocation_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vc_cid"),
        sa.UniqueConstraint("attestation_uid"),
    )
    op.create_table(
        "temporal_commitment",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("credential_id", sa.String(length=36), nullable=False),
        sa.Column("epoch", sa.Integer(), nullable=False),
        sa.Column("commitment", sa.String(length=64), nullable=False),
        sa.Column("reveal_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revealed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revealed_secret", sa.Text(), nullable=True),
        sa.Column("revealed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["credential_id"], ["credential.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "credential_id", "epoch", name="uq_temporal_commitment_credential_epoch"
        ),
    )
    op.create_index(
        op.f("ix_temporal_commitment_credential_id"),
        "temporal_commitment",
        ["credential_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_temporal_commitment_reveal_deadline"),
        "temporal_commitment",
        ["reveal_deadline"],
        unique=False,
    )
    op.create_table(
        "temporal_reveal_event",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("commitment_id", sa.Integer(), nullable=False),
        sa.Column("revealed_secret", sa.Text(), nullable=False),
        sa.Column("audit_handle", sa.String(length=66), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["commitment_id"], ["temporal_commitment.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("commitment_id"),
    )


def downgrade() -> None:
    """Drop the temporal tables and credentials."""
    op.drop_table("temporal_reveal_event")
    op.drop_index(
        op.f("ix_temporal_commitment_reveal_deadline"), table_name="temporal_commitment"
    )
    op.drop_index(op.f("ix_temporal_commitment_credential_id"), table_name="temporal_commitment")
    op.drop_table("temporal_commitment")
    op.drop_table("credential")
