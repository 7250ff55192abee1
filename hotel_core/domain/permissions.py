"""
===============================================================================
TARJETA CRC — domain/permissions.py
===============================================================================

Módulo:
    Modelos de autorización (roles, recursos, acciones, scopes, grants)

Responsabilidades:
    - Definir los catálogos conocidos (Role, Resource, Action, Scope).
    - Definir los value objects inmutables Grant, Actor y Target.
    - Normalizar valores crudos del catálogo (strings) sin perder los que
      no conocemos: un scope desconocido NO cubre nada (ver domain.scope).

Colaboradores:
    - domain.scope: evalúa si un Grant alcanza a un Target.
    - identity.permission_resolver: produce tuplas de Grant por rol.
    - identity.authorization: consume Actor / Target.

Notas:
    - Los roles custom se aceptan como strings planos.
    - `manage` sobre un recurso otorga todas las acciones de ese recurso.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    HOTEL_ADMIN = "HOTEL_ADMIN"
    DEPARTMENT_MANAGER = "DEPARTMENT_MANAGER"
    STAFF = "STAFF"


class Resource(str, Enum):
    INVENTORY = "inventory"
    PRODUCTS = "products"
    BATCHES = "batches"
    CATEGORIES = "categories"
    COLLECTIONS = "collections"
    USERS = "users"
    DEPARTMENTS = "departments"
    SETTINGS = "settings"
    REPORTS = "reports"
    NOTIFICATIONS = "notifications"
    WRITE_OFFS = "write_offs"
    AUDIT = "audit"
    HOTELS = "hotels"
    EXPORT = "export"
    DELIVERY_TEMPLATES = "delivery_templates"


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    MANAGE = "manage"
    COLLECT = "collect"
    WRITE = "write"


class Scope(str, Enum):
    """Alcance de un grant, de menor a mayor."""

    OWN = "own"
    DEPARTMENT = "department"
    HOTEL = "hotel"
    ALL = "all"


# Orden de amplitud (para highest_scope).
SCOPE_RANK: dict[Scope, int] = {
    Scope.OWN: 1,
    Scope.DEPARTMENT: 2,
    Scope.HOTEL: 3,
    Scope.ALL: 4,
}

ScopeValue = Union[Scope, str]


def normalize(value: Any) -> str:
    """Enum o string -> string plano (para comparar y loguear)."""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def parse_scope(raw: Any) -> ScopeValue:
    """
    Convierte el scope crudo del catálogo a Scope.

    Si no es un scope conocido se devuelve el string tal cual; el
    evaluador lo trata como "no cubre" (fail-closed).
    """
    if isinstance(raw, Scope):
        return raw
    text = str(raw or "").strip().lower()
    try:
        return Scope(text)
    except ValueError:
        return text


@dataclass(frozen=True)
class Grant:
    """Permiso de un rol: (resource, action) con un scope."""

    role: str
    resource: str
    action: str
    scope: ScopeValue

    def applies_to(self, resource: Any, action: Any) -> bool:
        """True si el grant autoriza (resource, action); `manage` cubre todo."""
        if self.resource != normalize(resource):
            return False
        return self.action == normalize(action) or self.action == Action.MANAGE.value

    @property
    def key(self) -> str:
        return f"{self.resource}:{self.action}:{normalize(self.scope)}"


def make_grant(role: Any, resource: Any, action: Any, scope: Any) -> Grant:
    return Grant(
        role=normalize(role),
        resource=normalize(resource).strip().lower(),
        action=normalize(action).strip().lower(),
        scope=parse_scope(scope),
    )


@dataclass(frozen=True)
class Actor:
    """Usuario autenticado (lo provee la capa de autenticación)."""

    id: Any
    role: str
    hotel_id: Optional[Any] = None
    department_id: Optional[Any] = None

    @property
    def role_name(self) -> str:
        return normalize(self.role)


@dataclass(frozen=True)
class Target:
    """
    Objetivo de la operación.

    Un campo ausente significa "sin restricción en ese eje".
    platform=True marca recursos de toda la plataforma (p. ej. la cadena de
    auditoría completa): solo un grant con scope ALL los alcanza.
    """

    hotel_id: Optional[Any] = None
    department_id: Optional[Any] = None
    user_id: Optional[Any] = None
    platform: bool = False


UNSCOPED = Target()
PLATFORM = Target(platform=True)
