"""
===============================================================================
TARJETA CRC — domain/audit_hash.py
===============================================================================

Módulo:
    Hash de entradas de auditoría (contrato versionado)

Responsabilidades:
    - Calcular current_hash de forma pura y determinística.
    - Ser la ÚNICA implementación: la usan el recorder al escribir y el
      verificador al recalcular.

Formato v1:
    sha256("|".join([
        id, entity_type, entity_id, action, user_id,
        canonical_json(snapshot_after or {}),
        created_at en UTC ISO-8601 con microsegundos,
        previous_hash (o génesis),
    ])) en hex.

Notas:
    - Cambiar el formato exige subir HASH_ALGORITHM_VERSION: entradas ya
      escritas no se pueden recalcular con otro algoritmo.
===============================================================================
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Optional

from .audit import GENESIS_HASH, AuditEntry

HASH_ALGORITHM_VERSION = "v1"

_FIELD_SEPARATOR = "|"


def canonical_json(value: Any) -> str:
    """JSON con claves ordenadas y sin espacios."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def canonical_timestamp(value: datetime) -> str:
    # Timestamps naive se interpretan como UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def compute_hash(
    *,
    entry_id: Any,
    entity_type: Optional[str],
    entity_id: Optional[str],
    action: Optional[str],
    user_id: Optional[Any],
    snapshot_after: Optional[dict[str, Any]],
    created_at: datetime,
    previous_hash: Optional[str],
) -> str:
    payload = _FIELD_SEPARATOR.join(
        [
            str(entry_id),
            entity_type or "",
            str(entity_id) if entity_id is not None else "",
            action or "",
            str(user_id) if user_id is not None else "",
            canonical_json(snapshot_after or {}),
            canonical_timestamp(created_at),
            previous_hash or GENESIS_HASH,
        ]
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def compute_entry_hash(entry: AuditEntry) -> str:
    """Recalcula el hash de una entrada tal como está persistida."""
    return compute_hash(
        entry_id=entry.id,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        action=entry.action,
        user_id=entry.user_id,
        snapshot_after=entry.snapshot_after,
        created_at=entry.created_at,
        previous_hash=entry.previous_hash,
    )
