"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/permission_catalog.py
============================================================
Class: PostgresPermissionCatalog

Responsibilities:
  - Leer los grants de un rol (role_permissions JOIN permissions).
  - Acotar la espera: timeout al pedir conexión + statement_timeout local,
    así un store lento se degrada a "no disponible" (y el gate niega).
  - Traducir cualquier falla a CatalogUnavailableError (nunca [] ).

Collaborators:
  - psycopg_pool.ConnectionPool (vía infrastructure.db.pool)
  - domain.permissions.make_grant
  - crosscutting.exceptions.CatalogUnavailableError

Constraints / Notes:
  - Repo puro: no decide nada de autorización.
  - Queries parametrizadas; el timeout se interpola como int.
============================================================
"""

from __future__ import annotations

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import CatalogUnavailableError
from ....crosscutting.logger import logger
from ....domain.permissions import Grant, make_grant

_SELECT_GRANTS = """
    SELECT rp.role, p.resource, p.action, p.scope
    FROM role_permissions rp
    JOIN permissions p ON p.id = rp.permission_id
    WHERE rp.role = %s
    ORDER BY p.resource, p.action, p.scope
"""


class PostgresPermissionCatalog:
    """Catálogo de permisos en PostgreSQL."""

    def __init__(self, pool: ConnectionPool | None = None, *, timeout_ms: int = 2000):
        self._pool = pool
        self._timeout_ms = int(timeout_ms)

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def fetch_grants(self, role: str) -> list[Grant]:
        try:
            pool = self._get_pool()
            with pool.connection(timeout=self._timeout_ms / 1000) as conn:
                with conn.transaction():
                    conn.execute(f"SET LOCAL statement_timeout = {self._timeout_ms}")
                    rows = conn.execute(_SELECT_GRANTS, (role,)).fetchall()
        except Exception as exc:
            logger.exception(
                "PostgresPermissionCatalog: Failed to fetch grants",
                extra={"role": role, "timeout_ms": self._timeout_ms, "error": str(exc)},
            )
            raise CatalogUnavailableError(role, original_error=exc) from exc

        return [
            make_grant(row_role, resource, action, scope)
            for row_role, resource, action, scope in rows
        ]
