"""
===============================================================================
TARJETA CRC — identity/permission_cache.py
===============================================================================

Clase:
    PermissionCache (TTL por rol, thread-safe)

Responsabilidades:
    - Guardar la tupla de grants de cada rol durante `ttl_seconds`.
    - Invalidar un rol o todo el cache cuando cambian los grants.
    - Medir el tiempo con un reloj inyectable (los tests no duermen).

Colaboradores:
    - identity.permission_resolver: get/put alrededor del catálogo.
    - crosscutting.metrics: hits / misses.

Notas:
    - Clave = rol. El scope se evalúa después, contra el actor.
    - ttl_seconds = 0 desactiva el cache (cada resolve va al catálogo).
===============================================================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

from ..crosscutting.metrics import record_permission_cache
from ..domain.permissions import Grant

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class _CachedGrants:
    grants: tuple[Grant, ...]
    stored_at: float

    def is_expired(self, ttl_seconds: float, now: float) -> bool:
        return (now - self.stored_at) >= ttl_seconds


class PermissionCache:
    def __init__(self, ttl_seconds: float = 30.0, clock: Optional[Clock] = None):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self._ttl_seconds = float(ttl_seconds)
        self._clock: Clock = clock or time.monotonic
        self._entries: dict[str, _CachedGrants] = {}
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self, role: str) -> Optional[tuple[Grant, ...]]:
        """Grants vigentes del rol, o None (miss / expirado)."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(role)
            if entry is not None and entry.is_expired(self._ttl_seconds, now):
                self._entries.pop(role, None)
                entry = None

        record_permission_cache(hit=entry is not None)
        return entry.grants if entry is not None else None

    def put(self, role: str, grants: tuple[Grant, ...]) -> None:
        if self._ttl_seconds == 0:
            return
        with self._lock:
            self._entries[role] = _CachedGrants(
                grants=tuple(grants), stored_at=self._clock()
            )

    def invalidate_role(self, role: str) -> None:
        with self._lock:
            self._entries.pop(role, None)

    def invalidate_all(self) -> None:
        """Se llama cuando cambia cualquier grant (invalidación gruesa)."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
