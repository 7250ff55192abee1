"""
===============================================================================
USE CASE: Export Audit Trail (verificación externa)
===============================================================================

Responsibilities:
    - Emitir las entradas de un hotel en un rango como JSON Lines, en orden
      ascendente y con campos en orden fijo. Las archivadas solo se
      incluyen a pedido (export forense).
    - Reconstruir la historia de una entidad (vivas y archivadas).
    - Permitir que un tercero recalcule hashes con el mismo contrato v1.

Collaborators:
    - domain.repositories.AuditLogRepository (iter_for_hotel,
      list_entity_history)
    - api.audit_routes (respuesta streaming application/x-ndjson)
===============================================================================
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

from ..crosscutting.logger import logger
from ..domain.audit import AuditEntry
from ..domain.audit_hash import HASH_ALGORITHM_VERSION, canonical_timestamp
from ..domain.repositories import AuditLogRepository

EXPORT_FIELDS: tuple[str, ...] = (
    "id",
    "entity_type",
    "entity_id",
    "action",
    "created_at",
    "previous_hash",
    "current_hash",
    "user_id",
    "snapshot_after",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def entry_to_export_record(entry: AuditEntry) -> dict[str, Any]:
    return {
        "id": str(entry.id),
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "action": entry.action,
        "created_at": canonical_timestamp(entry.created_at),
        "previous_hash": entry.previous_hash,
        "current_hash": entry.current_hash,
        "user_id": str(entry.user_id) if entry.user_id is not None else None,
        "snapshot_after": entry.snapshot_after,
    }


def entry_to_export_line(entry: AuditEntry) -> str:
    return json.dumps(
        entry_to_export_record(entry),
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )


@dataclass(frozen=True)
class AuditExport:
    hotel_id: str
    start_at: datetime
    end_at: datetime
    lines: tuple[str, ...]
    exported_at: datetime
    include_archived: bool = False

    @property
    def total_records(self) -> int:
        return len(self.lines)

    @property
    def data(self) -> str:
        return "\n".join(self.lines)

    def metadata(self) -> dict[str, Any]:
        return {
            "format": "jsonl",
            "hash_algorithm": HASH_ALGORITHM_VERSION,
            "hotel_id": self.hotel_id,
            "start_at": self.start_at.isoformat(),
            "end_at": self.end_at.isoformat(),
            "total_records": self.total_records,
            "include_archived": self.include_archived,
            "exported_at": self.exported_at.isoformat(),
        }


class AuditExporter:
    def __init__(
        self,
        repository: AuditLogRepository,
        *,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._repo = repository
        self._now = now or _utcnow

    def iter_jsonl(
        self,
        hotel_id: Any,
        start_at: datetime,
        end_at: datetime,
        *,
        include_archived: bool = False,
    ) -> Iterator[str]:
        """Una línea JSON (sin salto) por entrada del hotel en el rango."""
        if start_at > end_at:
            raise ValueError("start_at must be <= end_at")
        for entry in self._repo.iter_for_hotel(
            str(hotel_id),
            start_at=start_at,
            end_at=end_at,
            include_archived=include_archived,
        ):
            yield entry_to_export_line(entry)

    def export(
        self,
        hotel_id: Any,
        start_at: datetime,
        end_at: datetime,
        *,
        include_archived: bool = False,
    ) -> AuditExport:
        lines = tuple(
            self.iter_jsonl(
                hotel_id, start_at, end_at, include_archived=include_archived
            )
        )
        result = AuditExport(
            hotel_id=str(hotel_id),
            start_at=start_at,
            end_at=end_at,
            lines=lines,
            exported_at=self._now(),
            include_archived=include_archived,
        )
        logger.info(
            "Export de auditoría generado",
            extra={
                "hotel_id": str(hotel_id),
                "total_records": result.total_records,
                "include_archived": include_archived,
            },
        )
        return result

    def entity_history(
        self, hotel_id: Any, entity_type: str, entity_id: str
    ) -> list[dict[str, Any]]:
        """Historia forense de una entidad, incluidas entradas archivadas."""
        return [
            {**entry_to_export_record(entry), "archived": entry.archived}
            for entry in self._repo.list_entity_history(
                str(hotel_id), entity_type, entity_id
            )
        ]
