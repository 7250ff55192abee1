# =============================================================================
# FILE: infrastructure/repositories/in_memory/permission_catalog.py
# =============================================================================
"""
In-Memory Permission Catalog for testing and development.

NOT FOR PRODUCTION USE - grants are lost on restart.
"""

from __future__ import annotations

from threading import Lock
from typing import Any, Dict, Iterable, List, Optional

from ....crosscutting.exceptions import CatalogUnavailableError
from ....domain.permissions import Grant, make_grant

# role -> (resource, action, scope)
DEFAULT_ROLE_GRANTS: Dict[str, List[tuple[str, str, str]]] = {
    "HOTEL_ADMIN": [
        ("inventory", "manage", "hotel"),
        ("products", "manage", "hotel"),
        ("batches", "manage", "hotel"),
        ("categories", "manage", "hotel"),
        ("collections", "manage", "hotel"),
        ("users", "manage", "hotel"),
        ("departments", "manage", "hotel"),
        ("settings", "manage", "hotel"),
        ("reports", "manage", "hotel"),
        ("notifications", "manage", "hotel"),
        ("write_offs", "manage", "hotel"),
        ("audit", "read", "hotel"),
        ("audit", "export", "hotel"),
        ("hotels", "read", "hotel"),
        ("export", "manage", "hotel"),
        ("delivery_templates", "manage", "hotel"),
    ],
    "DEPARTMENT_MANAGER": [
        ("inventory", "read", "department"),
        ("inventory", "create", "department"),
        ("inventory", "update", "department"),
        ("inventory", "export", "department"),
        ("products", "read", "department"),
        ("products", "create", "department"),
        ("products", "update", "department"),
        ("batches", "read", "department"),
        ("batches", "create", "department"),
        ("batches", "update", "department"),
        ("batches", "collect", "department"),
        ("categories", "read", "hotel"),
        ("collections", "read", "department"),
        ("users", "read", "department"),
        ("users", "update", "own"),
        ("departments", "read", "department"),
        ("settings", "read", "department"),
        ("settings", "update", "department"),
        ("reports", "read", "department"),
        ("reports", "export", "department"),
        ("notifications", "read", "department"),
        ("write_offs", "read", "department"),
        ("write_offs", "create", "department"),
        ("hotels", "read", "hotel"),
        ("export", "create", "department"),
        ("delivery_templates", "read", "department"),
    ],
    "STAFF": [
        ("inventory", "read", "department"),
        ("products", "read", "department"),
        ("batches", "read", "department"),
        ("batches", "create", "department"),
        ("batches", "collect", "department"),
        ("categories", "read", "hotel"),
        ("departments", "read", "department"),
        ("notifications", "read", "department"),
        ("users", "read", "own"),
        ("users", "update", "own"),
        ("hotels", "read", "hotel"),
    ],
}


class InMemoryPermissionCatalog:
    """
    In-memory implementation of PermissionCatalog.

    Useful for:
      - Unit testing (including catalog outages via set_unavailable)
      - Local development without database
    """

    def __init__(self, grants: Optional[Iterable[Grant]] = None) -> None:
        self._grants: Dict[str, List[Grant]] = {}
        self._unavailable = False
        self._lock = Lock()
        self.fetch_count = 0
        for grant in grants or ():
            self._grants.setdefault(grant.role, []).append(grant)

    @classmethod
    def with_defaults(cls) -> "InMemoryPermissionCatalog":
        return cls(
            make_grant(role, resource, action, scope)
            for role, rows in DEFAULT_ROLE_GRANTS.items()
            for resource, action, scope in rows
        )

    def fetch_grants(self, role: str) -> List[Grant]:
        with self._lock:
            self.fetch_count += 1
            if self._unavailable:
                raise CatalogUnavailableError(role)
            return list(self._grants.get(role, []))

    def grant(self, role: Any, resource: Any, action: Any, scope: Any) -> Grant:
        new = make_grant(role, resource, action, scope)
        with self._lock:
            self._grants.setdefault(new.role, []).append(new)
        return new

    def revoke(self, role: str, resource: str, action: str) -> int:
        with self._lock:
            before = self._grants.get(role, [])
            kept = [
                g for g in before if not (g.resource == resource and g.action == action)
            ]
            self._grants[role] = kept
            return len(before) - len(kept)

    # -------------------------------------------------------------------------
    # Testing helpers
    # -------------------------------------------------------------------------
    def set_unavailable(self, unavailable: bool = True) -> None:
        """Simulate a catalog outage (every fetch raises)."""
        with self._lock:
            self._unavailable = unavailable

    def clear(self) -> None:
        with self._lock:
            self._grants.clear()
            self.fetch_count = 0
