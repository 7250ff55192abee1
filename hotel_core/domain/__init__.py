"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la capa de dominio

Responsabilidades:
    - Centralizar exports para imports limpios en identity/application/api.

Reglas:
    - Solo re-exporta contratos/entidades del dominio.
    - No importar infraestructura aquí.
===============================================================================
"""

from .audit import (
    GENESIS_HASH,
    AuditAction,
    AuditEntityType,
    AuditEntry,
    AuditEntryDraft,
    ChainError,
    ChainErrorKind,
    ChainHead,
    IntegrityStatus,
    VerificationReport,
)
from .audit_hash import HASH_ALGORITHM_VERSION, compute_entry_hash
from .permissions import Action, Actor, Grant, Resource, Role, Scope, Target
from .repositories import AuditLogRepository, ChainTransaction, PermissionCatalog
from .scope import ScopeEvaluator, covers

__all__ = [
    # Permisos
    "Action",
    "Actor",
    "Grant",
    "Resource",
    "Role",
    "Scope",
    "Target",
    "covers",
    "ScopeEvaluator",
    # Auditoría
    "GENESIS_HASH",
    "HASH_ALGORITHM_VERSION",
    "AuditAction",
    "AuditEntityType",
    "AuditEntry",
    "AuditEntryDraft",
    "ChainError",
    "ChainErrorKind",
    "ChainHead",
    "IntegrityStatus",
    "VerificationReport",
    "compute_entry_hash",
    # Puertos
    "AuditLogRepository",
    "ChainTransaction",
    "PermissionCatalog",
]
