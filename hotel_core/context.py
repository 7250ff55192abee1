"""
===============================================================================
TARJETA CRC — hotel_core/context.py (Contexto por request / job)
===============================================================================

Responsabilidades:
  - Guardar en ContextVars quién está operando (request o job, actor y rol)
    para que cada decisión de autorización y cada evento de la cadena
    salga en los logs con su correlación.
  - Exponer set_request_context / set_job_context / set_actor_context,
    get_context_dict() y clear_context().

Colaboradores:
  - crosscutting.middleware: abre el contexto del request.
  - api.dependencies: agrega actor_id / role cuando se resuelve el actor.
  - worker.jobs: abre el contexto del job y lo limpia en finally.
  - crosscutting.logger: vuelca get_context_dict() en cada línea.

Restricciones:
  - Solo strings; "" significa "no disponible" y no se loguea.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Any

# Clave de log -> ContextVar. El orden define el orden en el JSON.
_FIELDS: dict[str, ContextVar[str]] = {
    "request_id": ContextVar("request_id", default=""),
    "method": ContextVar("http_method", default=""),
    "path": ContextVar("http_path", default=""),
    "job": ContextVar("job_name", default=""),
    "actor_id": ContextVar("actor_id", default=""),
    "role": ContextVar("actor_role", default=""),
}


def _set(**values: Any) -> None:
    for key, value in values.items():
        _FIELDS[key].set(str(value) if value else "")


def set_request_context(
    *, request_id: str = "", method: str = "", path: str = ""
) -> None:
    _set(request_id=request_id, method=method, path=path)


def set_job_context(*, job_id: str = "", job_name: str = "") -> None:
    """El id del job ocupa el lugar de request_id (misma correlación)."""
    _set(request_id=job_id, job=job_name)


def set_actor_context(*, actor_id: Any = None, role: Any = None) -> None:
    _set(actor_id=actor_id, role=role)


def get_context_dict() -> dict[str, str]:
    """Contexto actual, sin claves vacías."""
    return {key: var.get() for key, var in _FIELDS.items() if var.get()}


def clear_context() -> None:
    for var in _FIELDS.values():
        var.set("")
