"""
===============================================================================
TARJETA CRC — identity/permission_resolver.py
===============================================================================

Clase:
    PermissionResolver

Responsabilidades:
    - Devolver los grants de un rol: primero cache, si no catálogo.
    - Distinguir "no pude consultar" (CatalogUnavailableError) de "el rol
      no tiene grants" (tupla vacía). Nunca degradar una falla a tupla vacía.
    - Calcular el scope más amplio de un rol para (resource, action).

Colaboradores:
    - domain.repositories.PermissionCatalog
    - identity.permission_cache.PermissionCache
    - identity.authorization.AuthorizationGate
===============================================================================
"""

from __future__ import annotations

from typing import Any, Optional

from ..crosscutting.exceptions import CatalogUnavailableError
from ..crosscutting.logger import logger
from ..domain.permissions import SCOPE_RANK, Grant, Scope, normalize
from ..domain.repositories import PermissionCatalog
from .permission_cache import PermissionCache


class PermissionResolver:
    def __init__(self, catalog: PermissionCatalog, cache: PermissionCache):
        self._catalog = catalog
        self._cache = cache

    @property
    def cache(self) -> PermissionCache:
        return self._cache

    def resolve(self, role: Any) -> tuple[Grant, ...]:
        """
        Grants del rol.

        Raises:
            CatalogUnavailableError: el catálogo falló o excedió su timeout.
        """
        role_name = normalize(role)

        cached = self._cache.get(role_name)
        if cached is not None:
            return cached

        try:
            grants = tuple(self._catalog.fetch_grants(role_name))
        except CatalogUnavailableError:
            raise
        except Exception as exc:
            logger.error(
                "Catálogo de permisos falló",
                extra={"role": role_name, "error": str(exc)},
            )
            raise CatalogUnavailableError(role_name, original_error=exc) from exc

        self._cache.put(role_name, grants)
        return grants

    def highest_scope(
        self, role: Any, resource: Any, action: Any
    ) -> Optional[Scope]:
        """Scope más amplio (ALL > HOTEL > DEPARTMENT > OWN) o None."""
        best: Optional[Scope] = None
        for grant in self.resolve(role):
            if not grant.applies_to(resource, action):
                continue
            if not isinstance(grant.scope, Scope):
                continue
            if best is None or SCOPE_RANK[grant.scope] > SCOPE_RANK[best]:
                best = grant.scope
        return best

    def invalidate(self, role: Any = None) -> None:
        """Invalida un rol o, sin argumento, todo el cache."""
        if role is None:
            self._cache.invalidate_all()
        else:
            self._cache.invalidate_role(normalize(role))
