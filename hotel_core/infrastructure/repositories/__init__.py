"""Repositorios concretos: PostgreSQL (producción) e in-memory (tests/dev)."""

from .in_memory import (
    DEFAULT_ROLE_GRANTS,
    InMemoryAuditLogRepository,
    InMemoryPermissionCatalog,
)
from .postgres import PostgresAuditLogRepository, PostgresPermissionCatalog

__all__ = [
    "DEFAULT_ROLE_GRANTS",
    "InMemoryAuditLogRepository",
    "InMemoryPermissionCatalog",
    "PostgresAuditLogRepository",
    "PostgresPermissionCatalog",
]
