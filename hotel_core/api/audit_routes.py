"""
===============================================================================
TARJETA CRC — api/audit_routes.py (Administración de la cadena de auditoría)
===============================================================================

Responsabilidades:
  - Exponer verificación de integridad (rango completo / últimas N).
  - Exponer el estado de la cadena (head + contadores).
  - Exportar el trail de un hotel como JSON Lines (streaming), con las
    entradas archivadas a pedido.
  - Historia forense de una entidad dentro de un hotel.
  - Aplicar autorización por endpoint (audit:read / audit:export).

Patrones aplicados:
  - Thin Controller: orquesta casos de uso, sin reglas de negocio.
  - Dependency Injection (FastAPI Depends).

Colaboradores:
  - application.chain_verifier.ChainVerifier
  - application.audit_export.AuditExporter
  - api.dependencies.require_permission
===============================================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from ..application import AuditExporter, ChainVerifier
from ..container import get_audit_exporter, get_chain_verifier
from ..crosscutting.error_responses import OPENAPI_ERROR_RESPONSES, validation_error
from ..crosscutting.logger import logger
from ..domain.permissions import PLATFORM, Action, Actor, Resource, Target
from .dependencies import require_permission

router = APIRouter(
    prefix="/admin/audit", tags=["audit"], responses=OPENAPI_ERROR_RESPONSES
)

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Query params sin zona horaria se interpretan como UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _hotel_target(request: Request, actor: Actor) -> Target:
    return Target(hotel_id=request.query_params.get("hotel_id"))


# La cadena es global: verificarla expone ids y hashes de todos los hoteles.
def _chain_target(request: Request, actor: Actor) -> Target:
    return PLATFORM


@router.get("/integrity/verify")
def verify_integrity(
    start_at: Optional[datetime] = Query(None),
    end_at: Optional[datetime] = Query(None),
    actor: Actor = Depends(
        require_permission(Resource.AUDIT, Action.READ, _chain_target)
    ),
    verifier: ChainVerifier = Depends(get_chain_verifier),
) -> dict[str, Any]:
    start_at, end_at = _as_utc(start_at), _as_utc(end_at)
    if start_at and end_at and start_at > end_at:
        raise validation_error("start_at debe ser anterior a end_at")

    report = verifier.verify(start_at=start_at, end_at=end_at)
    logger.info(
        "Verificación de integridad solicitada",
        extra={"actor_id": str(actor.id), "valid": report.valid},
    )
    return report.to_dict()


@router.get("/integrity/verify-recent")
def verify_recent(
    limit: int = Query(100, ge=1, le=10000),
    actor: Actor = Depends(
        require_permission(Resource.AUDIT, Action.READ, _chain_target)
    ),
    verifier: ChainVerifier = Depends(get_chain_verifier),
) -> dict[str, Any]:
    return verifier.verify_recent(limit).to_dict()


@router.get("/integrity/status")
def integrity_status(
    actor: Actor = Depends(
        require_permission(Resource.AUDIT, Action.READ, _chain_target)
    ),
    verifier: ChainVerifier = Depends(get_chain_verifier),
) -> dict[str, Any]:
    return verifier.integrity_status().to_dict()


@router.get("/export")
def export_audit_logs(
    hotel_id: str = Query(..., min_length=1),
    start_at: datetime = Query(...),
    end_at: datetime = Query(...),
    include_archived: bool = Query(False),
    actor: Actor = Depends(
        require_permission(Resource.AUDIT, Action.EXPORT, _hotel_target)
    ),
    exporter: AuditExporter = Depends(get_audit_exporter),
) -> StreamingResponse:
    start_at, end_at = _as_utc(start_at), _as_utc(end_at)
    if start_at > end_at:
        raise validation_error("start_at debe ser anterior a end_at")

    logger.info(
        "Export de auditoría solicitado",
        extra={
            "actor_id": str(actor.id),
            "hotel_id": hotel_id,
            "include_archived": include_archived,
        },
    )

    def body():
        for line in exporter.iter_jsonl(
            hotel_id, start_at, end_at, include_archived=include_archived
        ):
            yield line + "\n"

    filename = f"audit-{hotel_id}-{start_at.date()}-{end_at.date()}.jsonl"
    return StreamingResponse(
        body(),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/entities/{entity_type}/{entity_id}")
def entity_history(
    entity_type: str,
    entity_id: str,
    hotel_id: str = Query(..., min_length=1),
    actor: Actor = Depends(
        require_permission(Resource.AUDIT, Action.READ, _hotel_target)
    ),
    exporter: AuditExporter = Depends(get_audit_exporter),
) -> dict[str, Any]:
    history = exporter.entity_history(hotel_id, entity_type, entity_id)
    return {
        "hotel_id": hotel_id,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "entries": history,
    }


__all__ = ["router"]
