"""
===============================================================================
TARJETA CRC — identity/authorization.py
===============================================================================

Clase:
    AuthorizationGate

Responsabilidades:
    - Responder "¿puede este actor hacer `action` sobre `resource` para
      `target`?" con una decisión estructurada.
    - Ser fail-closed: sin actor o sin catálogo, la respuesta es deny.
    - Dejar rastro: cada bypass de platform owner y cada falla de catálogo
      se loguea y se cuenta.

Colaboradores:
    - identity.permission_resolver.PermissionResolver (grants por rol)
    - domain.scope.covers (alcance de cada grant)
    - crosscutting.metrics / crosscutting.logger

Orden de evaluación:
    1) sin actor            -> deny (UNAUTHENTICATED)
    2) SUPER_ADMIN          -> allow (PLATFORM_OWNER, evento de seguridad)
    3) HOTEL_ADMIN + target en su hotel (o sin hotel, salvo plataforma) -> allow
    4) resolver falla       -> deny (CATALOG_UNAVAILABLE) para TODOS los roles
    5) primer grant que aplica y cubre el target -> allow
    6) ninguno              -> deny (NOT_GRANTED) con {resource, action}

Thread-safety:
    - El gate no tiene estado mutable propio; el único compartido es el
      cache del resolver (con lock).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from ..crosscutting.exceptions import (
    AuthenticationRequiredError,
    CatalogUnavailableError,
    PermissionDeniedError,
)
from ..crosscutting.logger import logger
from ..crosscutting.metrics import (
    record_authz_decision,
    record_catalog_failure,
    record_platform_bypass,
)
from ..domain.permissions import Actor, Role, Target, normalize
from ..domain.scope import covers
from .permission_resolver import PermissionResolver


class DecisionCode(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    PLATFORM_OWNER = "PLATFORM_OWNER"
    HOTEL_ADMIN = "HOTEL_ADMIN"
    GRANTED = "GRANTED"
    CATALOG_UNAVAILABLE = "CATALOG_UNAVAILABLE"
    NOT_GRANTED = "NOT_GRANTED"


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    code: DecisionCode
    reason: str
    resource: str
    action: str

    @property
    def required(self) -> dict[str, str]:
        """Par {resource, action} legible por máquina."""
        return {"resource": self.resource, "action": self.action}

    def __bool__(self) -> bool:
        return self.allowed


class AuthorizationGate:
    def __init__(self, resolver: PermissionResolver):
        self._resolver = resolver

    def check(
        self,
        actor: Optional[Actor],
        resource: Any,
        action: Any,
        target: Optional[Target] = None,
    ) -> AuthorizationDecision:
        resource_name = normalize(resource)
        action_name = normalize(action)
        target = target or Target()

        def decide(allowed: bool, code: DecisionCode, reason: str):
            record_authz_decision(allowed, code.value)
            return AuthorizationDecision(
                allowed=allowed,
                code=code,
                reason=reason,
                resource=resource_name,
                action=action_name,
            )

        if actor is None:
            return decide(False, DecisionCode.UNAUTHENTICATED, "authentication required")

        role = actor.role_name

        if role == Role.SUPER_ADMIN.value:
            record_platform_bypass()
            logger.warning(
                "Acceso por bypass de platform owner",
                extra={
                    "security_event": "platform_owner_bypass",
                    "actor_id": str(actor.id),
                    "resource": resource_name,
                    "action": action_name,
                    "target_hotel_id": _str_or_none(target.hotel_id),
                },
            )
            return decide(True, DecisionCode.PLATFORM_OWNER, "platform owner")

        if role == Role.HOTEL_ADMIN.value and not target.platform and (
            target.hotel_id is None
            or (
                actor.hotel_id is not None
                and str(target.hotel_id) == str(actor.hotel_id)
            )
        ):
            return decide(True, DecisionCode.HOTEL_ADMIN, "hotel admin in own hotel")

        try:
            grants = self._resolver.resolve(role)
        except CatalogUnavailableError as exc:
            record_catalog_failure()
            logger.error(
                "Catálogo de permisos no disponible: acceso denegado",
                extra={
                    "actor_id": str(actor.id),
                    "role": role,
                    "resource": resource_name,
                    "action": action_name,
                    "error_id": exc.error_id,
                },
            )
            return decide(
                False,
                DecisionCode.CATALOG_UNAVAILABLE,
                "permission catalog unavailable",
            )

        for grant in grants:
            if grant.applies_to(resource_name, action_name) and covers(
                actor, grant.scope, target
            ):
                return decide(
                    True, DecisionCode.GRANTED, f"granted by {grant.key}"
                )

        logger.info(
            "Permiso denegado",
            extra={
                "actor_id": str(actor.id),
                "role": role,
                "resource": resource_name,
                "action": action_name,
            },
        )
        return decide(
            False,
            DecisionCode.NOT_GRANTED,
            f"missing permission {resource_name}:{action_name}",
        )

    def require(
        self,
        actor: Optional[Actor],
        resource: Any,
        action: Any,
        target: Optional[Target] = None,
    ) -> AuthorizationDecision:
        """
        Igual que check(), pero levanta en deny.

        Raises:
            AuthenticationRequiredError: sin actor.
            CatalogUnavailableError: el catálogo no respondió (el caller
                puede responder 503 en lugar de 403).
            PermissionDeniedError: el rol no tiene el permiso en ese scope.
        """
        decision = self.check(actor, resource, action, target)
        if decision.allowed:
            return decision
        if decision.code is DecisionCode.UNAUTHENTICATED:
            raise AuthenticationRequiredError()
        if decision.code is DecisionCode.CATALOG_UNAVAILABLE:
            raise CatalogUnavailableError(actor.role_name)
        raise PermissionDeniedError(decision.resource, decision.action)

    def check_any(
        self,
        actor: Optional[Actor],
        permissions: Iterable[tuple[Any, Any]],
        target: Optional[Target] = None,
    ) -> AuthorizationDecision:
        """Allow si alguno de los pares (resource, action) está permitido."""
        last: Optional[AuthorizationDecision] = None
        for resource, action in permissions:
            last = self.check(actor, resource, action, target)
            if last.allowed:
                return last
        if last is None:
            raise ValueError("permissions must not be empty")
        return last

    def check_all(
        self,
        actor: Optional[Actor],
        permissions: Iterable[tuple[Any, Any]],
        target: Optional[Target] = None,
    ) -> AuthorizationDecision:
        """Allow solo si todos los pares están permitidos; devuelve el primer deny."""
        last: Optional[AuthorizationDecision] = None
        for resource, action in permissions:
            last = self.check(actor, resource, action, target)
            if not last.allowed:
                return last
        if last is None:
            raise ValueError("permissions must not be empty")
        return last


def _str_or_none(value: Any) -> Optional[str]:
    return str(value) if value is not None else None
