"""Application: casos de uso de la cadena de auditoría."""

from .archival import ArchivalManager, retention_from_years
from .audit_export import AuditExport, AuditExporter
from .audit_recorder import AuditRecorder
from .chain_verifier import ChainVerifier
from .security_alerts import SecurityAlertRecorder
from .snapshots import create_snapshot

__all__ = [
    "ArchivalManager",
    "AuditExport",
    "AuditExporter",
    "AuditRecorder",
    "ChainVerifier",
    "SecurityAlertRecorder",
    "create_snapshot",
    "retention_from_years",
]
