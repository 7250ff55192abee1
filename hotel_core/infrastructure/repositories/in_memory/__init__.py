"""
In-Memory Repository Implementations.

For testing and local development. NOT FOR PRODUCTION.
Data is lost on process restart.
"""

from .audit_log import InMemoryAuditLogRepository
from .permission_catalog import DEFAULT_ROLE_GRANTS, InMemoryPermissionCatalog

__all__ = [
    "DEFAULT_ROLE_GRANTS",
    "InMemoryAuditLogRepository",
    "InMemoryPermissionCatalog",
]
