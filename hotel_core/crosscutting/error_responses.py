# hotel_core/crosscutting/error_responses.py
"""
===============================================================================
MÓDULO: Respuestas de error estándar (RFC 7807 / Problem Details)
===============================================================================

Contrato para clientes del core:
- `code` estable por tipo de falla (el cliente decide por code, no por texto).
- Un 403 lleva en `errors` el par {resource, action} que faltó.
- 503 distingue "no pude chequear / no pude auditar" de "no tenés permiso".
- `errors` incluye request_id (y error_id para errores tipados).

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  ErrorCode + ErrorDetail + AppHTTPException

Responsabilidades:
  - Asociar cada ErrorCode a su status HTTP y título.
  - Construir el payload problem+json.
  - Proveer factories para los errores del gate y del endpoint de auditoría.

Colaboradores:
  - api/dependencies.py (require_permission -> 401/403/503)
  - api/exception_handlers.py (errores tipados -> problem+json)
  - crosscutting/middleware.py (request_id)
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    DATABASE_ERROR = "DATABASE_ERROR"
    AUDIT_UNAVAILABLE = "AUDIT_UNAVAILABLE"


# code -> (status, título)
_ERROR_TABLE: dict[ErrorCode, tuple[int, str]] = {
    ErrorCode.VALIDATION_ERROR: (422, "Validation Error"),
    ErrorCode.UNAUTHORIZED: (401, "Authentication Required"),
    ErrorCode.FORBIDDEN: (403, "Permission Denied"),
    ErrorCode.INTERNAL_ERROR: (500, "Internal Error"),
    ErrorCode.SERVICE_UNAVAILABLE: (503, "Service Unavailable"),
    ErrorCode.DATABASE_ERROR: (503, "Database Unavailable"),
    ErrorCode.AUDIT_UNAVAILABLE: (503, "Audit Log Unavailable"),
}


def status_for(code: ErrorCode) -> int:
    return _ERROR_TABLE[code][0]


class ErrorDetail(BaseModel):
    """Problem Details + `code` estable + `errors` opcional."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    code: ErrorCode
    instance: str | None = None
    errors: list[dict[str, Any]] | None = None


def _openapi_response(description: str) -> dict[str, Any]:
    return {
        "description": f"{description} (RFC7807)",
        "model": ErrorDetail,
        "content": {
            PROBLEM_JSON_MEDIA_TYPE: {
                "schema": {"$ref": "#/components/schemas/ErrorDetail"}
            }
        },
    }


OPENAPI_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: _openapi_response("Authentication required"),
    403: _openapi_response("Permission denied"),
    422: _openapi_response("Validation error"),
    503: _openapi_response("Permission catalog or audit store unavailable"),
    "default": _openapi_response("Error"),
}


class AppHTTPException(HTTPException):
    """HTTPException con ErrorCode estable y detalles (errors[])."""

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        errors: list[dict[str, Any]] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code
        self.errors = errors


def problem(
    code: ErrorCode, detail: str, errors: list[dict[str, Any]] | None = None
) -> AppHTTPException:
    return AppHTTPException(status_for(code), code, detail, errors)


def validation_error(
    detail: str, errors: list[dict[str, Any]] | None = None
) -> AppHTTPException:
    return problem(ErrorCode.VALIDATION_ERROR, detail, errors)


def unauthorized(detail: str = "Autenticación requerida") -> AppHTTPException:
    return problem(ErrorCode.UNAUTHORIZED, detail)


def forbidden(
    detail: str = "Acceso denegado", required: dict[str, str] | None = None
) -> AppHTTPException:
    return problem(ErrorCode.FORBIDDEN, detail, [required] if required else None)


def service_unavailable(service: str) -> AppHTTPException:
    return problem(
        ErrorCode.SERVICE_UNAVAILABLE,
        f"Servicio no disponible temporalmente: {service}",
    )


async def app_exception_handler(
    request: Request, exc: AppHTTPException
) -> JSONResponse:
    """AppHTTPException -> problem+json (con request_id si hay)."""
    errors = list(exc.errors or [])
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        errors.append({"request_id": request_id})

    title = _ERROR_TABLE.get(exc.code, (exc.status_code, exc.code.value))[1]
    body = ErrorDetail(
        type=f"about:blank/{exc.code.value.lower()}",
        title=title,
        status=exc.status_code,
        detail=str(exc.detail),
        code=exc.code,
        instance=str(request.url),
        errors=errors or None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=exc.headers,
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )
