"""
===============================================================================
TARJETA CRC — worker/jobs.py (Jobs RQ de mantenimiento de la cadena)
===============================================================================

Responsabilidades:
  - Definir entrypoints de jobs ejecutados por RQ:
      * verify_audit_chain_job: verifica las últimas N entradas y escala
        cualquier violación como security_alert.
      * archive_audit_logs_job: archiva entradas fuera de retención.
  - Construir los casos de uso desde el contenedor.
  - Emitir logs con contexto consistente y limpiar el contexto al final.

Colaboradores:
  - container.get_chain_verifier / get_archival_manager /
    get_security_alert_recorder
  - application.archival.retention_from_years
  - context (set_job_context, clear_context)
===============================================================================
"""

from __future__ import annotations

import time
from typing import Any, Optional

from rq import get_current_job

from ..application.archival import retention_from_years
from ..container import (
    get_archival_manager,
    get_chain_verifier,
    get_security_alert_recorder,
)
from ..context import clear_context, set_job_context
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger

VERIFY_AUDIT_CHAIN_JOB_PATH = "hotel_core.worker.jobs.verify_audit_chain_job"
ARCHIVE_AUDIT_LOGS_JOB_PATH = "hotel_core.worker.jobs.archive_audit_logs_job"


def _job_id() -> Optional[str]:
    job = get_current_job()
    return getattr(job, "id", None)


def verify_audit_chain_job(limit: Optional[int] = None) -> dict[str, Any]:
    """
    Job RQ: verificación periódica de integridad.

    Contrato:
      - limit=None usa audit_verify_recent_limit de Settings.
      - Si la cadena no es válida, registra un security_alert en el propio
        trail. Un fallo al registrarlo se relanza (RQ aplica reintentos).
    """
    job_id = _job_id()
    set_job_context(job_id=job_id or "", job_name="verify_audit_chain")

    start = time.perf_counter()
    try:
        effective_limit = limit or get_settings().audit_verify_recent_limit
        report = get_chain_verifier().verify_recent(effective_limit)

        if not report.valid:
            logger.error(
                "Violación de integridad detectada por el job",
                extra={
                    "job_id": job_id,
                    "errors_count": len(report.errors),
                    "total_records": report.total_records,
                },
            )
            get_security_alert_recorder().integrity_violation(report)

        return report.to_dict()

    except Exception:
        logger.exception("Job de verificación falló", extra={"job_id": job_id})
        raise

    finally:
        logger.info(
            "Job de verificación finalizado",
            extra={
                "job_id": job_id,
                "duration_seconds": round(time.perf_counter() - start, 3),
            },
        )
        clear_context()


def archive_audit_logs_job(retention_years: Optional[int] = None) -> dict[str, Any]:
    """Job RQ: archiva entradas más viejas que la retención configurada."""
    job_id = _job_id()
    set_job_context(job_id=job_id or "", job_name="archive_audit_logs")

    start = time.perf_counter()
    try:
        years = retention_years or get_settings().audit_retention_years
        archived = get_archival_manager().archive_older_than(
            retention_from_years(years)
        )
        return {"archived": archived, "retention_years": years}

    except Exception:
        logger.exception("Job de archivado falló", extra={"job_id": job_id})
        raise

    finally:
        logger.info(
            "Job de archivado finalizado",
            extra={
                "job_id": job_id,
                "duration_seconds": round(time.perf_counter() - start, 3),
            },
        )
        clear_context()


__all__ = [
    "ARCHIVE_AUDIT_LOGS_JOB_PATH",
    "VERIFY_AUDIT_CHAIN_JOB_PATH",
    "archive_audit_logs_job",
    "verify_audit_chain_job",
]
