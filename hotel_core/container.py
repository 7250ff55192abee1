"""
===============================================================================
TARJETA CRC — hotel_core/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer dependencias (catálogo, repositorio de auditoría, casos de uso).
  - Exponer factories para FastAPI (Depends) y para el worker.
  - Mantener singletons con caching (lru_cache): el cache de permisos y el
    repositorio in-memory DEBEN ser únicos por proceso.
  - Centralizar decisiones runtime basadas en Settings (config).

Colaboradores:
  - crosscutting.config.get_settings
  - domain.repositories (puertos)
  - infrastructure.repositories (implementaciones)
  - identity.* / application.* (gate y casos de uso)

Notas:
  - Este archivo NO contiene lógica de negocio.
  - Este archivo NO depende de FastAPI (solo expone factories).
  - reset_container() limpia los singletons (tests).
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application import (
    ArchivalManager,
    AuditExporter,
    AuditRecorder,
    ChainVerifier,
    SecurityAlertRecorder,
)
from .crosscutting.config import get_settings
from .domain.repositories import AuditLogRepository, PermissionCatalog
from .identity import AuthorizationGate, PermissionCache, PermissionResolver
from .infrastructure.repositories import (
    InMemoryAuditLogRepository,
    InMemoryPermissionCatalog,
    PostgresAuditLogRepository,
    PostgresPermissionCatalog,
)

# =============================================================================
# Helpers internos
# =============================================================================


def is_test_env() -> bool:
    """
    Determina si estamos en entorno de test.

    Regla:
      - app_env ∈ {"test", "testing", "ci"} => se favorecen in-memory adapters.
    """
    env = get_settings().app_env.strip().lower()
    return env in {"test", "testing", "ci"}


# =============================================================================
# Repositorios (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_permission_catalog() -> PermissionCatalog:
    """Catálogo de permisos (in-memory con grants por defecto en test)."""
    if is_test_env():
        return InMemoryPermissionCatalog.with_defaults()
    settings = get_settings()
    return PostgresPermissionCatalog(timeout_ms=settings.permission_catalog_timeout_ms)


@lru_cache(maxsize=1)
def get_audit_log_repository() -> AuditLogRepository:
    """Repositorio de la cadena de auditoría (in-memory en test; Postgres en runtime)."""
    if is_test_env():
        return InMemoryAuditLogRepository()
    return PostgresAuditLogRepository()


# =============================================================================
# Autorización
# =============================================================================


@lru_cache(maxsize=1)
def get_permission_cache() -> PermissionCache:
    return PermissionCache(ttl_seconds=get_settings().permission_cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_permission_resolver() -> PermissionResolver:
    return PermissionResolver(
        catalog=get_permission_catalog(), cache=get_permission_cache()
    )


@lru_cache(maxsize=1)
def get_authorization_gate() -> AuthorizationGate:
    return AuthorizationGate(get_permission_resolver())


# =============================================================================
# Auditoría (casos de uso)
# =============================================================================


def get_audit_recorder() -> AuditRecorder:
    return AuditRecorder(get_audit_log_repository())


@lru_cache(maxsize=1)
def get_chain_verifier() -> ChainVerifier:
    """Único por proceso: su lock serializa las verificaciones concurrentes."""
    return ChainVerifier(get_audit_log_repository())


def get_archival_manager() -> ArchivalManager:
    settings = get_settings()
    return ArchivalManager(
        get_audit_log_repository(),
        exempt_actions=settings.get_archive_exempt_actions(),
        exempt_entity_types=settings.get_archive_exempt_entity_types(),
    )


def get_audit_exporter() -> AuditExporter:
    return AuditExporter(get_audit_log_repository())


def get_security_alert_recorder() -> SecurityAlertRecorder:
    return SecurityAlertRecorder(get_audit_recorder())


def reset_container() -> None:
    """Limpia los singletons (útil en tests que cambian Settings)."""
    for factory in (
        get_permission_catalog,
        get_audit_log_repository,
        get_permission_cache,
        get_permission_resolver,
        get_authorization_gate,
        get_chain_verifier,
    ):
        factory.cache_clear()
