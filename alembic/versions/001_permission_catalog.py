"""
============================================================
TARJETA CRC (Class / Responsibilities / Collaborators)
============================================================
Class: 001_permission_catalog (Alembic Migration)

Responsibilities:
  - Crear el catálogo de permisos: permissions (resource, action, scope)
    y role_permissions (role -> permission).
  - Sembrar los grants por defecto de cada rol.

Collaborators:
  - infrastructure/repositories/postgres/permission_catalog.py (lectura)
  - PostgreSQL 13+ (gen_random_uuid)

Policy:
  - scope ∈ {own, department, hotel, all} (CHECK).
  - ON CONFLICT DO NOTHING en seeds para idempotencia.
============================================================
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_permission_catalog"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_RESOURCES = (
    "inventory",
    "products",
    "batches",
    "categories",
    "collections",
    "users",
    "departments",
    "settings",
    "reports",
    "notifications",
    "write_offs",
    "audit",
    "hotels",
    "export",
    "delivery_templates",
)

# role -> "resource:action:scope"
_SEED_GRANTS: dict[str, tuple[str, ...]] = {
    "SUPER_ADMIN": tuple(f"{r}:manage:all" for r in _RESOURCES),
    "HOTEL_ADMIN": tuple(
        f"{r}:manage:hotel" for r in _RESOURCES if r not in ("audit", "hotels")
    )
    + ("audit:read:hotel", "audit:export:hotel", "hotels:read:hotel"),
    "DEPARTMENT_MANAGER": (
        "inventory:read:department",
        "inventory:create:department",
        "inventory:update:department",
        "inventory:export:department",
        "products:read:department",
        "products:create:department",
        "products:update:department",
        "batches:read:department",
        "batches:create:department",
        "batches:update:department",
        "batches:collect:department",
        "categories:read:hotel",
        "collections:read:department",
        "users:read:department",
        "users:update:own",
        "departments:read:department",
        "settings:read:department",
        "settings:update:department",
        "reports:read:department",
        "reports:export:department",
        "notifications:read:department",
        "write_offs:read:department",
        "write_offs:create:department",
        "hotels:read:hotel",
        "export:create:department",
        "delivery_templates:read:department",
    ),
    "STAFF": (
        "inventory:read:department",
        "products:read:department",
        "batches:read:department",
        "batches:create:department",
        "batches:collect:department",
        "categories:read:hotel",
        "departments:read:department",
        "notifications:read:department",
        "users:read:own",
        "users:update:own",
        "hotels:read:hotel",
    ),
}


def upgrade() -> None:
    op.create_table(
        "permissions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("resource", sa.String(50), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("scope", sa.String(20), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("resource", "action", "scope", name="uq_permissions_ras"),
        sa.CheckConstraint(
            "scope IN ('own', 'department', 'hotel', 'all')",
            name="ck_permissions_scope",
        ),
    )

    op.create_table(
        "role_permissions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column(
            "permission_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("permissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("role", "permission_id", name="uq_role_permissions"),
    )
    op.create_index("ix_role_permissions_role", "role_permissions", ["role"])
    op.create_index("ix_permissions_resource", "permissions", ["resource"])

    conn = op.get_bind()
    for role, grants in _SEED_GRANTS.items():
        for grant in grants:
            resource, action, scope = grant.split(":")
            conn.execute(
                sa.text(
                    """
                    INSERT INTO permissions (resource, action, scope)
                    VALUES (:resource, :action, :scope)
                    ON CONFLICT (resource, action, scope) DO NOTHING
                    """
                ),
                {"resource": resource, "action": action, "scope": scope},
            )
            conn.execute(
                sa.text(
                    """
                    INSERT INTO role_permissions (role, permission_id)
                    SELECT :role, p.id FROM permissions p
                    WHERE p.resource = :resource AND p.action = :action
                      AND p.scope = :scope
                    ON CONFLICT (role, permission_id) DO NOTHING
                    """
                ),
                {"role": role, "resource": resource, "action": action, "scope": scope},
            )


def downgrade() -> None:
    op.drop_index("ix_permissions_resource", table_name="permissions")
    op.drop_index("ix_role_permissions_role", table_name="role_permissions")
    op.drop_table("role_permissions")
    op.drop_table("permissions")
