"""
===============================================================================
TARJETA CRC — api/exception_handlers.py (Manejo Centralizado de Excepciones)
===============================================================================

Responsabilidades:
  - Traducir excepciones del core a respuestas HTTP RFC7807.
  - Loguear cada error tipado con su error_id (correlación cliente <-> log).
  - No filtrar detalles internos de errores no controlados en producción.

Mapeo:
  - AuthenticationRequiredError -> 401 UNAUTHORIZED
  - PermissionDeniedError       -> 403 FORBIDDEN (errors: [{resource, action}])
  - CatalogUnavailableError     -> 503 SERVICE_UNAVAILABLE
  - DatabaseError               -> 503 DATABASE_ERROR
  - AuditAppendError            -> 503 AUDIT_UNAVAILABLE
  - CoreError (resto)           -> 500 INTERNAL_ERROR
  - Exception                   -> 500 INTERNAL_ERROR (sin detalles en prod)

Colaboradores:
  - crosscutting.error_responses
  - crosscutting.exceptions
  - crosscutting.config.get_settings (nivel de detalle)
===============================================================================
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import (
    AppHTTPException,
    ErrorCode,
    app_exception_handler,
    status_for,
)
from ..crosscutting.exceptions import (
    AuditAppendError,
    AuthenticationRequiredError,
    CatalogUnavailableError,
    CoreError,
    DatabaseError,
    PermissionDeniedError,
)
from ..crosscutting.logger import logger

# Excepción -> (code, nivel de log). Starlette resuelve por MRO: CoreError
# cubre las subclases sin entrada propia.
_CORE_ERROR_MAP: dict[type[CoreError], tuple[ErrorCode, int]] = {
    AuthenticationRequiredError: (ErrorCode.UNAUTHORIZED, logging.WARNING),
    PermissionDeniedError: (ErrorCode.FORBIDDEN, logging.WARNING),
    CatalogUnavailableError: (ErrorCode.SERVICE_UNAVAILABLE, logging.ERROR),
    DatabaseError: (ErrorCode.DATABASE_ERROR, logging.ERROR),
    AuditAppendError: (ErrorCode.AUDIT_UNAVAILABLE, logging.ERROR),
    CoreError: (ErrorCode.INTERNAL_ERROR, logging.ERROR),
}


def _error_details(exc: CoreError) -> list[dict[str, Any]]:
    details: list[dict[str, Any]] = []
    if isinstance(exc, PermissionDeniedError):
        details.append(exc.required)
    details.append({"error_id": exc.error_id})
    return details


def _core_handler(code: ErrorCode, level: int):
    async def handler(request: Request, exc: CoreError) -> JSONResponse:
        logger.log(
            level,
            "Error del core",
            extra={
                "code": code.value,
                "error_code": exc.error_code,
                "error_id": exc.error_id,
                "error": exc.message,
            },
        )
        return await app_exception_handler(
            request,
            AppHTTPException(status_for(code), code, exc.message, _error_details(exc)),
        )

    return handler


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Excepción no controlada", exc_info=exc)

    if get_settings().is_production():
        detail = "Error interno."
    else:
        detail = str(exc)
    return await app_exception_handler(
        request, AppHTTPException(500, ErrorCode.INTERNAL_ERROR, detail)
    )


def register_exception_handlers(app) -> None:
    for exc_type, (code, level) in _CORE_ERROR_MAP.items():
        app.add_exception_handler(exc_type, _core_handler(code, level))
    app.add_exception_handler(AppHTTPException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = ["register_exception_handlers"]
