"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/audit_log.py
============================================================
Class: PostgresAuditLogRepository

Responsibilities:
  - Persistir entradas encadenadas en audit_logs.
  - Serializar appends y archivado con `SELECT ... FOR UPDATE` sobre la
    fila única de audit_chain_state, en la MISMA transacción que el insert.
  - Listar entradas en orden estable (created_at, id) para el verificador.

Collaborators:
  - domain.audit.AuditEntry / ChainHead
  - psycopg (transaction, Json) / psycopg_pool.ConnectionPool
  - crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Append-only: no hay UPDATE de hashes ni DELETE.
  - Los únicos UPDATE son verified=FALSE y archived/archived_at.
  - user_id / hotel_id / entity_id se guardan como TEXT: lo que se hashea es
    exactamente lo que se lee. id es UUID; el hash usa str(id).
============================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, Optional
from uuid import UUID

import psycopg
from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.audit import AuditEntry, ChainHead
from ...db.errors import DatabasePoolError

_ENTRY_COLUMNS = """
    id, action, entity_type, entity_id, created_at, previous_hash, current_hash,
    user_id, hotel_id, details, snapshot_before, snapshot_after,
    verified, archived, archived_at
"""


def _row_to_entry(row: tuple) -> AuditEntry:
    (
        entry_id,
        action,
        entity_type,
        entity_id,
        created_at,
        previous_hash,
        current_hash,
        user_id,
        hotel_id,
        details,
        snapshot_before,
        snapshot_after,
        verified,
        archived,
        archived_at,
    ) = row
    return AuditEntry(
        id=entry_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        created_at=created_at,
        previous_hash=previous_hash,
        current_hash=current_hash,
        user_id=user_id,
        hotel_id=hotel_id,
        details=details or {},
        snapshot_before=snapshot_before,
        snapshot_after=snapshot_after,
        verified=bool(verified),
        archived=bool(archived),
        archived_at=archived_at,
    )


def _row_to_head(row: Optional[tuple]) -> Optional[ChainHead]:
    if row is None:
        return None
    last_hash, last_entry_id, last_created_at, updated_at = row
    return ChainHead(
        last_hash=last_hash,
        last_entry_id=last_entry_id,
        last_created_at=last_created_at,
        updated_at=updated_at,
    )


def _json_or_none(value):
    return Json(value) if value is not None else None


class _PostgresChainTransaction:
    """Operaciones válidas mientras se tiene el lock de audit_chain_state."""

    def __init__(self, conn) -> None:
        self._conn = conn

    def head(self) -> ChainHead:
        row = self._conn.execute(
            """
            SELECT last_hash, last_entry_id, last_created_at, updated_at
            FROM audit_chain_state
            WHERE id = 1
            FOR UPDATE
            """
        ).fetchone()
        if row is None:
            # Estado faltante (DB recién creada sin seed): génesis.
            self._conn.execute(
                """
                INSERT INTO audit_chain_state (id, last_hash, updated_at)
                VALUES (1, %s, now())
                ON CONFLICT (id) DO NOTHING
                """,
                (ChainHead().last_hash,),
            )
            return self.head()
        return _row_to_head(row)

    def insert(self, entry: AuditEntry) -> None:
        self._conn.execute(
            f"""
            INSERT INTO audit_logs ({_ENTRY_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                entry.id,
                entry.action,
                entry.entity_type,
                entry.entity_id,
                entry.created_at,
                entry.previous_hash,
                entry.current_hash,
                entry.user_id,
                entry.hotel_id,
                Json(entry.details or {}),
                _json_or_none(entry.snapshot_before),
                _json_or_none(entry.snapshot_after),
                entry.verified,
                entry.archived,
                entry.archived_at,
            ),
        )
        self._conn.execute(
            """
            UPDATE audit_chain_state
            SET last_hash = %s, last_entry_id = %s, last_created_at = %s,
                updated_at = now()
            WHERE id = 1
            """,
            (entry.current_hash, entry.id, entry.created_at),
        )

    def archive_older_than(
        self,
        cutoff: datetime,
        *,
        archived_at: datetime,
        exclude_ids: frozenset,
        exempt_actions: frozenset,
        exempt_entity_types: frozenset,
    ) -> int:
        cur = self._conn.execute(
            """
            UPDATE audit_logs
            SET archived = TRUE, archived_at = %s
            WHERE archived = FALSE
              AND created_at < %s
              AND NOT (id::text = ANY(%s::text[]))
              AND NOT (action = ANY(%s::text[]))
              AND NOT (entity_type = ANY(%s::text[]))
            """,
            (
                archived_at,
                cutoff,
                sorted(str(i) for i in exclude_ids),
                sorted(exempt_actions),
                sorted(exempt_entity_types),
            ),
        )
        return cur.rowcount or 0


class PostgresAuditLogRepository:
    """Repositorio PostgreSQL para la cadena de auditoría (audit_logs)."""

    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    # ------------------------------------------------------------
    # Helpers internos
    # ------------------------------------------------------------
    def _fetchall(
        self,
        *,
        query: str,
        params: Iterable[object],
        error_message: str,
        extra: dict[str, object] | None = None,
    ) -> list[tuple]:
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except Exception as exc:
            logger.exception(error_message, extra={**(extra or {}), "error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}") from exc

    def _fetchone(self, *, query: str, params: Iterable[object], error_message: str):
        rows = self._fetchall(query=query, params=params, error_message=error_message)
        return rows[0] if rows else None

    # ------------------------------------------------------------
    # Transacción de cadena
    # ------------------------------------------------------------
    @contextmanager
    def chain_transaction(self) -> Iterator[_PostgresChainTransaction]:
        try:
            with self._get_pool().connection() as conn:
                with conn.transaction():
                    yield _PostgresChainTransaction(conn)
        except (psycopg.Error, DatabasePoolError) as exc:
            logger.exception(
                "PostgresAuditLogRepository: chain transaction failed",
                extra={"error": str(exc)},
            )
            raise DatabaseError(f"Audit chain transaction failed: {exc}") from exc

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------
    def read_head(self) -> Optional[ChainHead]:
        row = self._fetchone(
            query="""
                SELECT last_hash, last_entry_id, last_created_at, updated_at
                FROM audit_chain_state
                WHERE id = 1
            """,
            params=(),
            error_message="PostgresAuditLogRepository: Failed to read chain state",
        )
        return _row_to_head(row)

    def get(self, entry_id: UUID) -> Optional[AuditEntry]:
        row = self._fetchone(
            query=f"SELECT {_ENTRY_COLUMNS} FROM audit_logs WHERE id = %s",
            params=(entry_id,),
            error_message="PostgresAuditLogRepository: Failed to get entry",
        )
        return _row_to_entry(row) if row else None

    def list_entries(
        self,
        *,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
    ) -> list[AuditEntry]:
        conditions: list[str] = []
        params: list[object] = []

        if start_at is not None:
            conditions.append("created_at >= %s")
            params.append(start_at)
        if end_at is not None:
            conditions.append("created_at <= %s")
            params.append(end_at)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = self._fetchall(
            query=f"""
                SELECT {_ENTRY_COLUMNS}
                FROM audit_logs
                {where_clause}
                ORDER BY created_at ASC, id ASC
            """,
            params=params,
            error_message="PostgresAuditLogRepository: Failed to list entries",
            extra={
                "start_at": start_at.isoformat() if start_at else None,
                "end_at": end_at.isoformat() if end_at else None,
            },
        )
        return [_row_to_entry(r) for r in rows]

    def list_recent(self, limit: int) -> list[AuditEntry]:
        if limit <= 0:
            return []
        rows = self._fetchall(
            query=f"""
                SELECT {_ENTRY_COLUMNS}
                FROM audit_logs
                WHERE (created_at, id) >= (
                    SELECT created_at, id FROM (
                        SELECT created_at, id
                        FROM audit_logs
                        WHERE archived = FALSE
                        ORDER BY created_at DESC, id DESC
                        LIMIT %s
                    ) recent
                    ORDER BY created_at ASC, id ASC
                    LIMIT 1
                )
                ORDER BY created_at ASC, id ASC
            """,
            params=(limit,),
            error_message="PostgresAuditLogRepository: Failed to list recent entries",
            extra={"limit": limit},
        )
        return [_row_to_entry(r) for r in rows]

    def entry_before(self, created_at: datetime) -> Optional[AuditEntry]:
        row = self._fetchone(
            query=f"""
                SELECT {_ENTRY_COLUMNS}
                FROM audit_logs
                WHERE created_at < %s
                ORDER BY created_at DESC, id DESC
                LIMIT 1
            """,
            params=(created_at,),
            error_message="PostgresAuditLogRepository: Failed to read previous entry",
        )
        return _row_to_entry(row) if row else None

    def iter_for_hotel(
        self,
        hotel_id: object,
        *,
        start_at: datetime,
        end_at: datetime,
        include_archived: bool = False,
    ) -> Iterator[AuditEntry]:
        archived_clause = "" if include_archived else "AND archived = FALSE"
        rows = self._fetchall(
            query=f"""
                SELECT {_ENTRY_COLUMNS}
                FROM audit_logs
                WHERE hotel_id = %s
                  AND created_at BETWEEN %s AND %s
                  {archived_clause}
                ORDER BY created_at ASC, id ASC
            """,
            params=(str(hotel_id), start_at, end_at),
            error_message="PostgresAuditLogRepository: Failed to export entries",
            extra={"hotel_id": str(hotel_id), "include_archived": include_archived},
        )
        for row in rows:
            yield _row_to_entry(row)

    def list_entity_history(
        self, hotel_id: object, entity_type: str, entity_id: str
    ) -> list[AuditEntry]:
        rows = self._fetchall(
            query=f"""
                SELECT {_ENTRY_COLUMNS}
                FROM audit_logs
                WHERE hotel_id = %s AND entity_type = %s AND entity_id = %s
                ORDER BY created_at ASC, id ASC
            """,
            params=(str(hotel_id), entity_type, entity_id),
            error_message="PostgresAuditLogRepository: Failed to read entity history",
            extra={"entity_type": entity_type, "entity_id": entity_id},
        )
        return [_row_to_entry(r) for r in rows]

    def mark_unverified(self, entry_id: UUID) -> None:
        try:
            with self._get_pool().connection() as conn:
                conn.execute(
                    "UPDATE audit_logs SET verified = FALSE WHERE id = %s AND verified = TRUE",
                    (entry_id,),
                )
        except Exception as exc:
            logger.exception(
                "PostgresAuditLogRepository: Failed to mark entry unverified",
                extra={"entry_id": str(entry_id), "error": str(exc)},
            )
            raise DatabaseError(f"Failed to mark entry unverified: {exc}") from exc

    def count_live(self) -> int:
        row = self._fetchone(
            query="SELECT COUNT(*) FROM audit_logs WHERE archived = FALSE",
            params=(),
            error_message="PostgresAuditLogRepository: Failed to count entries",
        )
        return int(row[0]) if row else 0

    def count_unverified(self) -> int:
        row = self._fetchone(
            query="""
                SELECT COUNT(*) FROM audit_logs
                WHERE verified = FALSE AND archived = FALSE
            """,
            params=(),
            error_message="PostgresAuditLogRepository: Failed to count unverified",
        )
        return int(row[0]) if row else 0
