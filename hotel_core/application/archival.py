"""
===============================================================================
USE CASE: Archive Old Audit Entries
===============================================================================

Business Goal:
    Sacar de los scans "vivos" las entradas más viejas que la retención
    (7 años por defecto) sin romper la verificabilidad de la cadena.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    ArchivalManager

Responsibilities:
    - Marcar archived=True / archived_at=now en entradas con
      created_at < now - retention (nunca toca hashes).
    - No archivar nunca el head de la cadena (ArchivalRaceError interno).
    - Respetar acciones / entity types exentos (GDPR, incidentes).
    - Correr dentro de la transacción de cadena (ningún append se intercala).

Collaborators:
    - domain.repositories.AuditLogRepository.chain_transaction()
    - crosscutting.exceptions.ArchivalRaceError
===============================================================================
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from ..crosscutting.exceptions import ArchivalRaceError
from ..crosscutting.logger import logger
from ..crosscutting.metrics import record_archived
from ..domain.repositories import AuditLogRepository

DEFAULT_EXEMPT_ACTIONS: frozenset[str] = frozenset(
    {"gdpr_account_deletion", "security_breach"}
)
DEFAULT_EXEMPT_ENTITY_TYPES: frozenset[str] = frozenset(
    {"USER_DELETE", "SECURITY_INCIDENT"}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def retention_from_years(years: int) -> timedelta:
    """Años de retención -> timedelta (365 días por año)."""
    if years <= 0:
        raise ValueError("retention years must be greater than 0")
    return timedelta(days=365 * years)


class ArchivalManager:
    def __init__(
        self,
        repository: AuditLogRepository,
        *,
        exempt_actions: Iterable[str] = DEFAULT_EXEMPT_ACTIONS,
        exempt_entity_types: Iterable[str] = DEFAULT_EXEMPT_ENTITY_TYPES,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._repo = repository
        self._exempt_actions = frozenset(exempt_actions)
        self._exempt_entity_types = frozenset(exempt_entity_types)
        self._now = now or _utcnow

    def archive_older_than(self, retention: timedelta) -> int:
        """Archiva entradas más viejas que `retention`; devuelve cuántas."""
        if retention <= timedelta(0):
            raise ValueError("retention must be positive")

        now = self._now()
        cutoff = now - retention

        with self._repo.chain_transaction() as tx:
            head = tx.head()
            exclude: frozenset = frozenset()

            if head.last_entry_id is not None:
                exclude = frozenset({head.last_entry_id})
                try:
                    self._guard_head(head.last_entry_id, head.last_created_at, cutoff)
                except ArchivalRaceError as exc:
                    logger.warning(
                        "Head de la cadena fuera de retención: se excluye del archivado",
                        extra={"entry_id": str(exc.entry_id), "error_id": exc.error_id},
                    )

            archived = tx.archive_older_than(
                cutoff,
                archived_at=now,
                exclude_ids=exclude,
                exempt_actions=self._exempt_actions,
                exempt_entity_types=self._exempt_entity_types,
            )

        record_archived(archived)
        logger.info(
            "Archivado de auditoría completado",
            extra={"archived": archived, "cutoff": cutoff.isoformat()},
        )
        return archived

    @staticmethod
    def _guard_head(
        entry_id: object, created_at: Optional[datetime], cutoff: datetime
    ) -> None:
        if created_at is not None and created_at < cutoff:
            raise ArchivalRaceError(entry_id)
