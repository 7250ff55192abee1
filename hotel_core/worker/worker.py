"""
===============================================================================
TARJETA CRC — worker/worker.py (Entrypoint del proceso Worker)
===============================================================================

Responsabilidades:
  - Consumir la cola de auditoría (verificación de cadena y archivado).
  - Arrancar solo si Redis responde y la cadena existe en la BD
    (audit_chain_state sembrado por las migraciones).
  - Cerrar el pool al salir, haya o no error.

Colaboradores:
  - crosscutting.config.get_settings
  - infrastructure.db.pool.init_pool / close_pool
  - container.get_audit_log_repository (chequeo de la cadena)
  - redis.Redis + rq.Worker
===============================================================================
"""

from __future__ import annotations

import socket

from redis import Redis
from rq import Queue, Worker

from ..container import get_audit_log_repository
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..infrastructure.db.pool import close_pool, init_pool


def build_redis_connection(redis_url: str) -> Redis:
    return Redis.from_url(
        redis_url,
        socket_connect_timeout=2,
        socket_timeout=5,
        health_check_interval=30,
    )


def require_redis(redis_url: str) -> Redis:
    """Conexión Redis que respondió PING; si no, SystemExit."""
    if not redis_url:
        raise SystemExit("REDIS_URL es requerido para los jobs de auditoría.")

    redis_conn = build_redis_connection(redis_url)
    try:
        redis_conn.ping()
    except Exception as exc:
        logger.error("Redis no disponible", extra={"error": str(exc)})
        raise SystemExit("Redis no disponible.") from exc
    return redis_conn


def require_chain_state() -> None:
    """La tabla audit_chain_state debe existir y tener su fila (id = 1)."""
    head = get_audit_log_repository().read_head()
    if head is None:
        raise SystemExit(
            "audit_chain_state vacío: correr `alembic upgrade head` antes del worker."
        )
    logger.info("Cadena de auditoría disponible", extra=head.to_dict())


def main() -> None:
    settings = get_settings()
    redis_conn = require_redis(settings.redis_url.strip())

    init_pool(
        database_url=settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        statement_timeout_ms=settings.db_statement_timeout_ms,
    )

    try:
        require_chain_state()

        queue = Queue(name=settings.audit_queue_name, connection=redis_conn)
        worker = Worker(
            [queue],
            connection=redis_conn,
            name=f"{settings.audit_queue_name}-{socket.gethostname()}",
        )
        logger.info("Worker de auditoría arrancando", extra={"queue": queue.name})
        worker.work(with_scheduler=False)
    except KeyboardInterrupt:
        logger.info("Worker detenido por señal")
    finally:
        close_pool()
        logger.info("Worker apagado")


if __name__ == "__main__":
    main()
