"""
===============================================================================
USE CASE: Append Audit Entry (cadena hash)
===============================================================================

Business Goal:
    Registrar "el actor A hizo X sobre la entidad E" de forma que cualquier
    edición posterior del historial sea detectable.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    AuditRecorder

Responsibilities:
    - Abrir la transacción de cadena (frontera de serialización).
    - Leer el head, estampar created_at estrictamente mayor que el del head.
    - Calcular current_hash con domain.audit_hash (única implementación).
    - Insertar la entrada y avanzar el head en la MISMA transacción.
    - Convertir cualquier falla en AuditAppendError (rollback completo).

Collaborators:
    - domain.repositories.AuditLogRepository.chain_transaction()
    - domain.audit_hash.compute_entry_hash
    - application.snapshots.to_json_value
===============================================================================
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID, uuid4

from ..crosscutting.exceptions import AuditAppendError
from ..crosscutting.logger import logger
from ..crosscutting.metrics import record_audit_append
from ..domain.audit import AuditEntry, AuditEntryDraft, ChainHead
from ..domain.audit_hash import compute_entry_hash
from ..domain.permissions import normalize
from ..domain.repositories import AuditLogRepository
from .snapshots import to_json_value

_ONE_MICROSECOND = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditRecorder:
    def __init__(
        self,
        repository: AuditLogRepository,
        *,
        now: Optional[Callable[[], datetime]] = None,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        self._repo = repository
        self._now = now or _utcnow
        self._id_factory = id_factory

    def append(self, draft: AuditEntryDraft) -> AuditEntry:
        """
        Persiste `draft` encadenado al head actual.

        Raises:
            AuditAppendError: no se persistió nada; la operación de negocio
                que disparó la auditoría debe abortar.
        """
        started = time.perf_counter()
        try:
            with self._repo.chain_transaction() as tx:
                head = tx.head()
                entry = self._build_entry(draft, head)
                tx.insert(entry)
        except Exception as exc:
            record_audit_append("failed")
            logger.error(
                "No se pudo registrar entrada de auditoría",
                extra={
                    "action": normalize(draft.action),
                    "entity_type": normalize(draft.entity_type),
                    "entity_id": draft.entity_id,
                    "error": str(exc),
                },
            )
            raise AuditAppendError(
                f"Falló el append de auditoría: {exc}", original_error=exc
            ) from exc

        record_audit_append("ok", time.perf_counter() - started)
        logger.debug(
            "Entrada de auditoría registrada",
            extra={"entry_id": str(entry.id), "action": entry.action},
        )
        return entry

    def _stamp(self, head: ChainHead) -> datetime:
        created_at = self._now()
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        created_at = created_at.astimezone(timezone.utc)
        if head.last_created_at is not None and created_at <= head.last_created_at:
            created_at = head.last_created_at.astimezone(timezone.utc) + _ONE_MICROSECOND
        return created_at

    def _build_entry(self, draft: AuditEntryDraft, head: ChainHead) -> AuditEntry:
        entry = AuditEntry(
            id=self._id_factory(),
            action=normalize(draft.action),
            entity_type=normalize(draft.entity_type),
            entity_id=str(draft.entity_id) if draft.entity_id is not None else None,
            created_at=self._stamp(head),
            previous_hash=head.last_hash,
            current_hash="",
            user_id=_as_text(draft.user_id),
            hotel_id=_as_text(draft.hotel_id),
            details=to_json_value(draft.details or {}),
            snapshot_before=(
                to_json_value(draft.snapshot_before)
                if draft.snapshot_before is not None
                else None
            ),
            snapshot_after=(
                to_json_value(draft.snapshot_after)
                if draft.snapshot_after is not None
                else None
            ),
        )
        entry.current_hash = compute_entry_hash(entry)
        return entry


def _as_text(value: object) -> Optional[str]:
    # Se guardan como texto: lo que se hashea es exactamente lo que se lee.
    return str(value) if value is not None else None
