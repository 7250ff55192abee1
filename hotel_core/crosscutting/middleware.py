# hotel_core/crosscutting/middleware.py
"""
===============================================================================
MÓDULO: Middleware HTTP de contexto
===============================================================================

RequestContextMiddleware:
  - Acepta X-Request-Id del caller (o genera uno) y lo devuelve.
  - Abre el contexto de logs (request_id / method / path) y lo cierra al final.
  - Cuenta cada request en métricas.
  - Loguea 401 / 403 / 503 a nivel warning: son decisiones del gate y
    conviene verlas sin subir el nivel global.

Colaboradores:
  - hotel_core/context.py
  - crosscutting/metrics.py
===============================================================================
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..context import clear_context, set_request_context
from .logger import logger
from .metrics import record_request_metrics

REQUEST_ID_HEADER = "X-Request-Id"
_MAX_REQUEST_ID_LENGTH = 128
_UNLOGGED_PATHS = frozenset({"/healthz", "/metrics"})
_DENIAL_STATUSES = frozenset({401, 403, 503})


def _request_id_from(request: Request) -> str:
    incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if incoming and len(incoming) <= _MAX_REQUEST_ID_LENGTH:
        return incoming
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _request_id_from(request)
        request.state.request_id = request_id
        set_request_context(
            request_id=request_id, method=request.method, path=request.url.path
        )

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception:
            logger.exception("Request abortado por excepción no manejada")
            raise
        finally:
            elapsed = time.perf_counter() - started
            record_request_metrics(
                endpoint=request.url.path,
                method=request.method,
                status_code=status_code,
                latency_seconds=elapsed,
            )
            self._log_completion(request.url.path, status_code, elapsed)
            clear_context()

    @staticmethod
    def _log_completion(path: str, status_code: int, elapsed: float) -> None:
        if path in _UNLOGGED_PATHS:
            return
        level = logging.WARNING if status_code in _DENIAL_STATUSES else logging.INFO
        logger.log(
            level,
            "Request completado",
            extra={"status_code": status_code, "latency_ms": round(elapsed * 1000, 2)},
        )
