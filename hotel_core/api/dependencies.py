"""
===============================================================================
TARJETA CRC — api/dependencies.py (Dependencies FastAPI de autorización)
===============================================================================

Responsabilidades:
  - Obtener el Actor autenticado de la request (lo setea la capa de
    autenticación del host en request.state.actor, o un actor_resolver
    registrado en app.state).
  - require_permission(resource, action): dependency que consulta el
    AuthorizationGate y traduce el deny a RFC7807 (401 / 403 / 503).

Colaboradores:
  - container.get_authorization_gate
  - identity.authorization (AuthorizationGate, DecisionCode)
  - crosscutting.error_responses (unauthorized, forbidden, service_unavailable)

Notas:
  - Un catálogo caído responde 503 (no 403): el caller puede reintentar.
===============================================================================
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from fastapi import Depends, Request

from ..container import get_authorization_gate
from ..context import set_actor_context
from ..crosscutting.error_responses import forbidden, service_unavailable, unauthorized
from ..domain.permissions import Actor, Target
from ..identity.authorization import (
    AuthorizationDecision,
    AuthorizationGate,
    DecisionCode,
)

TargetResolver = Callable[[Request, Actor], Optional[Target]]


def get_current_actor(request: Request) -> Optional[Actor]:
    """Actor de la request o None si no hay autenticación."""
    actor = getattr(request.state, "actor", None)
    if actor is not None:
        return actor

    resolver = getattr(request.app.state, "actor_resolver", None)
    if resolver is None:
        return None
    return resolver(request)


def raise_for_decision(decision: AuthorizationDecision) -> None:
    """Traduce un deny a AppHTTPException (RFC7807)."""
    if decision.allowed:
        return
    if decision.code is DecisionCode.UNAUTHENTICATED:
        raise unauthorized()
    if decision.code is DecisionCode.CATALOG_UNAVAILABLE:
        raise service_unavailable("permission catalog")
    raise forbidden(
        f"Permiso requerido: {decision.resource}:{decision.action}",
        required=decision.required,
    )


def require_permission(
    resource: Any,
    action: Any,
    target_resolver: Optional[TargetResolver] = None,
) -> Callable:
    """
    Dependency FastAPI: exige {resource, action} sobre el target resuelto.

    Devuelve el Actor autorizado para que el endpoint lo use.
    """

    def dependency(
        request: Request,
        actor: Optional[Actor] = Depends(get_current_actor),
        gate: AuthorizationGate = Depends(get_authorization_gate),
    ) -> Actor:
        target = None
        if actor is not None:
            set_actor_context(actor_id=actor.id, role=actor.role_name)
            if target_resolver is not None:
                target = target_resolver(request, actor)
        decision = gate.check(actor, resource, action, target)
        raise_for_decision(decision)
        return actor

    return dependency


__all__ = [
    "TargetResolver",
    "get_current_actor",
    "raise_for_decision",
    "require_permission",
]
