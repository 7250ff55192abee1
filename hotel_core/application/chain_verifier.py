"""
===============================================================================
USE CASE: Verify Audit Chain
===============================================================================

Business Goal:
    Detectar ediciones retroactivas del audit log (filas modificadas,
    borradas o insertadas a mano) sin corregir nada.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    ChainVerifier

Responsibilities:
    - Recorrer entradas por created_at ascendente llevando `expected_previous`.
    - previous_hash distinto del esperado -> BROKEN_CHAIN.
    - hash recalculado distinto del guardado -> TAMPERED_DATA + verified=False.
    - Seguir SIEMPRE desde el current_hash guardado (un hallazgo no arrastra
      falsos positivos a las entradas siguientes).
    - Contar archivadas como `archived_skipped` y usar su hash guardado
      como eslabón de confianza.
    - Resumir salud de la cadena (integrity_status).

Collaborators:
    - domain.repositories.AuditLogRepository
    - domain.audit_hash.compute_entry_hash

Notas:
    - La semilla es el hash guardado de la entrada inmediatamente anterior al
      rango (o génesis); así sub-rangos y "últimas N" no reportan cortes falsos.
    - Un lock serializa verificaciones concurrentes en el proceso.
===============================================================================
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional, Sequence

from ..crosscutting.logger import logger
from ..crosscutting.metrics import record_chain_error, record_verification
from ..domain.audit import (
    GENESIS_HASH,
    AuditEntry,
    ChainError,
    ChainErrorKind,
    IntegrityStatus,
    VerificationReport,
)
from ..domain.audit_hash import canonical_timestamp, compute_entry_hash
from ..domain.repositories import AuditLogRepository


class ChainVerifier:
    def __init__(self, repository: AuditLogRepository):
        self._repo = repository
        self._lock = threading.Lock()

    def verify(
        self,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
    ) -> VerificationReport:
        """Verifica las entradas con start_at <= created_at <= end_at."""
        with self._lock:
            entries = self._repo.list_entries(start_at=start_at, end_at=end_at)
            report = self._fold(entries)

        self._observe(report, scope="range")
        return report

    def verify_recent(self, limit: int = 100) -> VerificationReport:
        """Verifica las últimas `limit` entradas."""
        if limit <= 0:
            raise ValueError("limit must be greater than 0")

        with self._lock:
            entries = self._repo.list_recent(limit)
            report = self._fold(entries)

        self._observe(report, scope="recent")
        return report

    def integrity_status(self) -> IntegrityStatus:
        return IntegrityStatus(
            total_entries=self._repo.count_live(),
            unverified_entries=self._repo.count_unverified(),
            chain_head=self._repo.read_head(),
        )

    # ------------------------------------------------------------------
    # Fold
    # ------------------------------------------------------------------
    def _seed(self, first: AuditEntry) -> str:
        previous = self._repo.entry_before(first.created_at)
        return previous.current_hash if previous is not None else GENESIS_HASH

    def _fold(self, entries: Sequence[AuditEntry]) -> VerificationReport:
        if not entries:
            return VerificationReport(valid=True, total_records=0, archived_skipped=0)

        expected_previous = self._seed(entries[0])
        errors: list[ChainError] = []
        checked = 0
        archived_skipped = 0

        for entry in entries:
            if entry.archived:
                archived_skipped += 1
                expected_previous = entry.current_hash
                continue

            checked += 1
            created_at = canonical_timestamp(entry.created_at)

            if entry.previous_hash != expected_previous:
                errors.append(
                    ChainError(
                        id=str(entry.id),
                        kind=ChainErrorKind.BROKEN_CHAIN,
                        expected=expected_previous,
                        actual=entry.previous_hash,
                        created_at=created_at,
                    )
                )

            recomputed = compute_entry_hash(entry)
            if recomputed != entry.current_hash:
                errors.append(
                    ChainError(
                        id=str(entry.id),
                        kind=ChainErrorKind.TAMPERED_DATA,
                        expected=recomputed,
                        actual=entry.current_hash,
                        created_at=created_at,
                    )
                )
                if entry.verified:
                    self._repo.mark_unverified(entry.id)

            expected_previous = entry.current_hash

        return VerificationReport(
            valid=not errors,
            total_records=checked,
            archived_skipped=archived_skipped,
            errors=tuple(errors),
        )

    @staticmethod
    def _observe(report: VerificationReport, *, scope: str) -> None:
        record_verification(report.valid)
        for error in report.errors:
            record_chain_error(error.kind.value)

        extra = {
            "scope": scope,
            "total_records": report.total_records,
            "archived_skipped": report.archived_skipped,
            "errors_count": len(report.errors),
        }
        if report.valid:
            logger.info("Cadena de auditoría verificada", extra=extra)
        else:
            logger.warning("Cadena de auditoría comprometida", extra=extra)
