"""
============================================================
TARJETA CRC (Class / Responsibilities / Collaborators)
============================================================
Class: 002_audit_chain (Alembic Migration)

Responsibilities:
  - Crear audit_logs (entradas encadenadas por hash).
  - Crear audit_chain_state: fila única (id = 1) con el head de la cadena;
    se bloquea con SELECT ... FOR UPDATE en cada append / archivado.
  - Índices para scans por fecha, por hotel y sobre entradas vivas.

Collaborators:
  - infrastructure/repositories/postgres/audit_log.py

Policy:
  - previous_hash / current_hash son hex SHA-256 (64 chars).
  - El head arranca en génesis (64 ceros).
  - user_id / hotel_id / entity_id como TEXT (sin FK: una cuenta borrada
    no puede romper el historial).
============================================================
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "002_audit_chain"
down_revision: Union[str, None] = "001_permission_catalog"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_GENESIS_HASH = "0" * 64


def upgrade() -> None:
    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("hotel_id", sa.Text, nullable=True),
        sa.Column("user_id", sa.Text, nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.Text, nullable=True),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("snapshot_before", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("snapshot_after", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("previous_hash", sa.String(64), nullable=False),
        sa.Column("current_hash", sa.String(64), nullable=False),
        sa.Column("verified", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("archived", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at", "id"])
    op.create_index(
        "ix_audit_logs_hotel_created_at", "audit_logs", ["hotel_id", "created_at"]
    )
    op.create_index(
        "ix_audit_logs_live",
        "audit_logs",
        ["created_at"],
        postgresql_where=sa.text("archived = FALSE"),
    )
    op.create_index(
        "ix_audit_logs_unverified",
        "audit_logs",
        ["id"],
        postgresql_where=sa.text("verified = FALSE"),
    )

    op.create_table(
        "audit_chain_state",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("last_hash", sa.String(64), nullable=False),
        sa.Column("last_entry_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("last_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint("id = 1", name="ck_audit_chain_state_single_row"),
    )
    op.execute(
        f"INSERT INTO audit_chain_state (id, last_hash) VALUES (1, '{_GENESIS_HASH}')"
    )


def downgrade() -> None:
    op.drop_table("audit_chain_state")
    op.drop_index("ix_audit_logs_unverified", table_name="audit_logs")
    op.drop_index("ix_audit_logs_live", table_name="audit_logs")
    op.drop_index("ix_audit_logs_hotel_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_table("audit_logs")
