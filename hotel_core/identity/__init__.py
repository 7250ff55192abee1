"""Identity: resolución de permisos por rol y gate de autorización."""

from .authorization import AuthorizationDecision, AuthorizationGate, DecisionCode
from .permission_cache import PermissionCache
from .permission_resolver import PermissionResolver

__all__ = [
    "AuthorizationDecision",
    "AuthorizationGate",
    "DecisionCode",
    "PermissionCache",
    "PermissionResolver",
]
