# hotel_core/crosscutting/exceptions.py
"""
===============================================================================
MÓDULO: Excepciones tipadas del core (autorización + auditoría)
===============================================================================

Objetivo
--------
Tener excepciones internas coherentes, con:
- error_code estable
- error_id para correlación con logs
- message “humana” (sin filtrar secretos)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  CoreError + subclases

Responsabilidades:
  - Estandarizar errores internos que luego se mapean a HTTP
  - Distinguir fallas de infraestructura (catálogo, DB) de denegaciones
  - Generar error_id para rastreo

Colaboradores:
  - api/exception_handlers.py (mapea a AppHTTPException)
  - identity/authorization.py (convierte CatalogUnavailableError en deny)
  - application/audit_recorder.py (AuditAppendError es fatal para el caller)

Notas:
  - Los hallazgos de integridad (BROKEN_CHAIN / TAMPERED_DATA) NO son
    excepciones: se acumulan en el VerificationReport.
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class CoreError(Exception):
    """
    Base para errores internos del core.

    Provee error_code + error_id + message (mismo contrato en todas las subclases).
    """

    error_code: str = "CORE_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)


class DatabaseError(CoreError):
    """Errores de DB (conexión, query, timeout, pool)."""

    error_code: str = "DATABASE_ERROR"


class CatalogUnavailableError(CoreError):
    """
    El catálogo de permisos no respondió (o respondió tarde).

    Distingue "no pude chequear" de "el rol no tiene grants".
    """

    error_code: str = "CATALOG_UNAVAILABLE"

    def __init__(self, role: str, original_error: Exception | None = None):
        self.role = role
        super().__init__(
            f"Catálogo de permisos no disponible (rol={role})",
            original_error=original_error,
        )


class AuthenticationRequiredError(CoreError):
    """No hay actor autenticado. Nunca se reintenta."""

    error_code: str = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "authentication required"):
        super().__init__(message)


class PermissionDeniedError(CoreError):
    """Denegación estructurada: {resource, action}."""

    error_code: str = "PERMISSION_DENIED"

    def __init__(self, resource: str, action: str, message: str | None = None):
        self.resource = resource
        self.action = action
        super().__init__(message or f"permission denied: {resource}:{action}")

    @property
    def required(self) -> dict[str, str]:
        return {"resource": self.resource, "action": self.action}


class AuditAppendError(CoreError):
    """
    No se pudo escribir la entrada de auditoría.

    Es fatal para la operación de negocio que la disparó: el caller debe
    hacer rollback de la mutación o abortar.
    """

    error_code: str = "AUDIT_APPEND_FAILED"


class ArchivalRaceError(CoreError):
    """Se intentó archivar el head de la cadena (sin sucesor vivo)."""

    error_code: str = "ARCHIVAL_RACE"

    def __init__(self, entry_id: object):
        self.entry_id = entry_id
        super().__init__(
            f"No se archiva el head de la cadena sin sucesor vivo (id={entry_id})"
        )
