"""
===============================================================================
TARJETA CRC — domain/audit.py
===============================================================================

Módulo:
    Modelos de la cadena de auditoría (Dominio)

Responsabilidades:
    - Definir AuditEntry (persistida) y AuditEntryDraft (lo que manda el caller).
    - Definir el resultado de verificación (ChainError, VerificationReport)
      y el resumen de salud (IntegrityStatus).
    - Definir el head de la cadena (ChainHead) y la constante génesis.

Colaboradores:
    - domain.audit_hash: calcula current_hash a partir de una AuditEntry.
    - domain.repositories.AuditLogRepository: persiste y lista entradas.
    - application.*: recorder / verifier / archival / export.

Notas:
    - Append-only: el core nunca borra ni corrige registros.
    - `verified` solo pasa de True a False (lo hace el verificador).
    - `archived` / `archived_at` solo los toca el archivado; nunca los hashes.
===============================================================================
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

GENESIS_HASH = "0" * 64


class AuditAction(str, Enum):
    """Acciones conocidas (la columna `action` sigue siendo texto libre)."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    COLLECT = "collect"
    WRITE_OFF = "write_off"
    IMPORT = "import"
    EXPORT = "export"
    SETTINGS_UPDATE = "settings_update"
    PERMISSION_CHANGE = "permission_change"
    SECURITY_ALERT = "security_alert"
    GDPR_ACCOUNT_DELETION = "gdpr_account_deletion"
    SECURITY_BREACH = "security_breach"


class AuditEntityType(str, Enum):
    USER = "user"
    PRODUCT = "product"
    BATCH = "batch"
    CATEGORY = "category"
    DEPARTMENT = "department"
    HOTEL = "hotel"
    SETTINGS = "settings"
    WRITE_OFF = "write_off"
    COLLECTION = "collection"
    PERMISSION = "permission"
    SYSTEM = "system"
    USER_DELETE = "USER_DELETE"
    SECURITY_INCIDENT = "SECURITY_INCIDENT"
    SECURITY_ALERT = "SECURITY_ALERT"


@dataclass(frozen=True)
class AuditEntryDraft:
    """
    Lo que el caller conoce de la mutación.

    id / created_at / previous_hash / current_hash los asigna el recorder.
    """

    action: str
    entity_type: str
    entity_id: Optional[str] = None
    user_id: Optional[Any] = None
    hotel_id: Optional[Any] = None
    details: dict[str, Any] = field(default_factory=dict)
    snapshot_before: Optional[dict[str, Any]] = None
    snapshot_after: Optional[dict[str, Any]] = None


@dataclass
class AuditEntry:
    """Entrada persistida y encadenada."""

    id: UUID
    action: str
    entity_type: str
    entity_id: Optional[str]
    created_at: datetime
    previous_hash: str
    current_hash: str
    user_id: Optional[Any] = None
    hotel_id: Optional[Any] = None
    details: dict[str, Any] = field(default_factory=dict)
    snapshot_before: Optional[dict[str, Any]] = None
    snapshot_after: Optional[dict[str, Any]] = None
    verified: bool = True
    archived: bool = False
    archived_at: Optional[datetime] = None


@dataclass(frozen=True)
class ChainHead:
    """Estado del head: hash y momento de la última entrada (o génesis)."""

    last_hash: str = GENESIS_HASH
    last_entry_id: Optional[UUID] = None
    last_created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_genesis(self) -> bool:
        return self.last_entry_id is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_hash": self.last_hash,
            "last_entry_id": str(self.last_entry_id) if self.last_entry_id else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ChainErrorKind(str, Enum):
    BROKEN_CHAIN = "BROKEN_CHAIN"
    TAMPERED_DATA = "TAMPERED_DATA"


@dataclass(frozen=True)
class ChainError:
    """Hallazgo del verificador (valor, nunca excepción)."""

    id: str
    kind: ChainErrorKind
    expected: str
    actual: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "expected": self.expected,
            "actual": self.actual,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class VerificationReport:
    """
    Resultado de una verificación.

    Determinístico: no incluye timestamps de ejecución, así dos corridas sobre
    datos sin cambios serializan a los mismos bytes.
    """

    valid: bool
    total_records: int
    archived_skipped: int
    errors: tuple[ChainError, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "total_records": self.total_records,
            "archived_skipped": self.archived_skipped,
            "errors": [e.to_dict() for e in self.errors],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class IntegrityStatus:
    total_entries: int
    unverified_entries: int
    chain_head: Optional[ChainHead]

    @property
    def status(self) -> str:
        return "compromised" if self.unverified_entries > 0 else "healthy"

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "unverified_entries": self.unverified_entries,
            "chain_state": self.chain_head.to_dict() if self.chain_head else None,
            "status": self.status,
        }
