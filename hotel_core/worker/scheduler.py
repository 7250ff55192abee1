"""
===============================================================================
TARJETA CRC — worker/scheduler.py (Programación periódica de jobs de auditoría)
===============================================================================

Responsabilidades:
  - Registrar verify_audit_chain_job y archive_audit_logs_job como jobs
    periódicos de rq-scheduler, con la cadencia de Settings
    (audit_verification_interval_seconds / audit_archival_interval_seconds).
  - Registrar de forma idempotente: ids fijos; un registro previo con el
    mismo id se cancela antes de volver a programarlo.
  - Correr el loop de rq-scheduler, que encola en la cola de auditoría.

Colaboradores:
  - rq_scheduler.Scheduler
  - worker.worker.require_redis
  - worker.jobs (*_JOB_PATH)
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from rq_scheduler import Scheduler

from ..crosscutting.config import Settings, get_settings
from ..crosscutting.logger import logger
from .jobs import ARCHIVE_AUDIT_LOGS_JOB_PATH, VERIFY_AUDIT_CHAIN_JOB_PATH
from .worker import require_redis

_JOB_TIMEOUT_SECONDS = 3600
_SCHEDULER_POLL_SECONDS = 5


@dataclass(frozen=True)
class PeriodicJob:
    job_id: str
    path: str
    interval_seconds: int


def periodic_jobs(settings: Settings) -> tuple[PeriodicJob, ...]:
    return (
        PeriodicJob(
            "periodic:verify_audit_chain",
            VERIFY_AUDIT_CHAIN_JOB_PATH,
            settings.audit_verification_interval_seconds,
        ),
        PeriodicJob(
            "periodic:archive_audit_logs",
            ARCHIVE_AUDIT_LOGS_JOB_PATH,
            settings.audit_archival_interval_seconds,
        ),
    )


def register_periodic_jobs(
    scheduler: Any,
    jobs: tuple[PeriodicJob, ...],
    *,
    queue_name: str,
    first_run_at: Optional[datetime] = None,
) -> list[str]:
    """Programa cada job (primera corrida inmediata); devuelve sus ids."""
    first_run_at = first_run_at or datetime.now(timezone.utc)
    registered: list[str] = []
    for job in jobs:
        if job.job_id in scheduler:
            scheduler.cancel(job.job_id)
        scheduler.schedule(
            scheduled_time=first_run_at,
            func=job.path,
            interval=job.interval_seconds,
            repeat=None,
            timeout=_JOB_TIMEOUT_SECONDS,
            id=job.job_id,
            description=job.job_id,
            queue_name=queue_name,
        )
        registered.append(job.job_id)
        logger.info(
            "Job periódico registrado",
            extra={"job": job.job_id, "interval_seconds": job.interval_seconds},
        )
    return registered


def main() -> None:
    settings = get_settings()
    redis_conn = require_redis(settings.redis_url.strip())

    scheduler = Scheduler(
        queue_name=settings.audit_queue_name,
        connection=redis_conn,
        interval=_SCHEDULER_POLL_SECONDS,
    )
    register_periodic_jobs(
        scheduler, periodic_jobs(settings), queue_name=settings.audit_queue_name
    )

    logger.info("Scheduler arrancando", extra={"queue": settings.audit_queue_name})
    try:
        scheduler.run()
    except KeyboardInterrupt:
        logger.info("Scheduler detenido por señal")


if __name__ == "__main__":
    main()
