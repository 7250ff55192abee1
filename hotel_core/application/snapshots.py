"""
===============================================================================
TARJETA CRC — application/snapshots.py
===============================================================================

Módulo:
    Snapshots de entidades para auditoría (before / after)

Responsabilidades:
    - Copiar el estado de una entidad sin campos sensibles.
    - Estampar `_snapshot_type` y `_snapshot_time`.
    - Dejar el snapshot en forma JSON (lo que se hashea es lo que se guarda).

Colaboradores:
    - application.audit_recorder: normaliza snapshot_after antes de hashear.
    - Colaboradores externos (CRUD de productos / lotes / usuarios).
===============================================================================
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional

SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "password_hash",
        "token",
        "refresh_token",
        "mfa_secret",
        "recovery_codes",
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_json_value(value: Any) -> Any:
    """Round-trip por JSON: datetimes/UUIDs/Decimals pasan a string."""
    return json.loads(json.dumps(value, ensure_ascii=False, default=str))


def create_snapshot(
    entity: Any,
    entity_type: str,
    *,
    now: Optional[Callable[[], datetime]] = None,
) -> Optional[dict[str, Any]]:
    """
    Snapshot de `entity` (Mapping o dataclass) para guardar en el audit log.

    Devuelve None si no hay entidad (ej. snapshot_before de un create).
    """
    if entity is None:
        return None

    if dataclasses.is_dataclass(entity) and not isinstance(entity, type):
        data = dataclasses.asdict(entity)
    elif isinstance(entity, Mapping):
        data = dict(entity)
    else:
        raise TypeError(f"No se puede crear snapshot de {type(entity).__name__}")

    snapshot = {k: v for k, v in data.items() if k not in SENSITIVE_FIELDS}
    snapshot["_snapshot_type"] = entity_type
    snapshot["_snapshot_time"] = (now or _utcnow)().isoformat()
    return to_json_value(snapshot)
