"""
PostgreSQL Repository Implementations (psycopg 3 + psycopg_pool).
"""

from .audit_log import PostgresAuditLogRepository
from .permission_catalog import PostgresPermissionCatalog

__all__ = [
    "PostgresAuditLogRepository",
    "PostgresPermissionCatalog",
]
