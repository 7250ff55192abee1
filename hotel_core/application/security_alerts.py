"""
===============================================================================
TARJETA CRC — application/security_alerts.py
===============================================================================

Clase:
    SecurityAlertRecorder

Responsabilidades:
    - Escalar una violación de integridad: log de error + entrada
      `security_alert` en la propia cadena de auditoría.
    - Adjuntar solo los primeros hallazgos (el reporte completo puede ser grande).

Colaboradores:
    - application.audit_recorder.AuditRecorder
    - worker.jobs.verify_audit_chain_job

Notas:
    - El envío por email a SUPER_ADMIN queda fuera del core.
===============================================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..crosscutting.logger import logger
from ..domain.audit import (
    AuditAction,
    AuditEntityType,
    AuditEntry,
    AuditEntryDraft,
    VerificationReport,
)
from .audit_recorder import AuditRecorder

INTEGRITY_VIOLATION = "audit_integrity_violation"
MAX_ERRORS_IN_ALERT = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SecurityAlertRecorder:
    def __init__(
        self,
        recorder: AuditRecorder,
        *,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._recorder = recorder
        self._now = now or _utcnow

    def alert(self, alert_type: str, details: dict[str, Any]) -> AuditEntry:
        logger.error(
            "Alerta de seguridad",
            extra={
                "security_event": alert_type,
                "alert_type": alert_type,
                "details": details,
            },
        )
        draft = AuditEntryDraft(
            action=AuditAction.SECURITY_ALERT.value,
            entity_type=AuditEntityType.SECURITY_ALERT.value,
            entity_id=alert_type,
            details={
                "type": alert_type,
                "details": details,
                "timestamp": self._now().isoformat(),
            },
        )
        return self._recorder.append(draft)

    def integrity_violation(self, report: VerificationReport) -> AuditEntry:
        return self.alert(
            INTEGRITY_VIOLATION,
            {
                "total_records": report.total_records,
                "errors_count": len(report.errors),
                "errors": [e.to_dict() for e in report.errors[:MAX_ERRORS_IN_ALERT]],
            },
        )
