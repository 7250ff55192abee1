"""
Name: Settings Tests

Responsibilities:
  - Defaults and validation of authorization / audit settings
  - Archive exemption parsing
  - Container picks in-memory adapters in test env
"""

import pytest
from pydantic import ValidationError

from hotel_core.container import get_audit_log_repository, get_permission_catalog
from hotel_core.crosscutting.config import Settings, get_settings
from hotel_core.infrastructure.repositories.in_memory import (
    InMemoryAuditLogRepository,
    InMemoryPermissionCatalog,
)

pytestmark = pytest.mark.unit


def test_defaults():
    settings = get_settings()
    assert settings.permission_cache_ttl_seconds == 30.0
    assert settings.audit_retention_years == 7
    assert settings.get_archive_exempt_actions() == frozenset(
        {"gdpr_account_deletion", "security_breach"}
    )
    assert settings.get_archive_exempt_entity_types() == frozenset(
        {"USER_DELETE", "SECURITY_INCIDENT"}
    )


def test_exemptions_from_env(monkeypatch):
    monkeypatch.setenv("AUDIT_ARCHIVE_EXEMPT_ACTIONS", " legal_hold , ,gdpr_account_deletion")
    assert get_settings().get_archive_exempt_actions() == frozenset(
        {"legal_hold", "gdpr_account_deletion"}
    )


@pytest.mark.parametrize(
    "field,value",
    [
        ("permission_cache_ttl_seconds", -1),
        ("permission_catalog_timeout_ms", 0),
        ("audit_retention_years", 0),
        ("audit_verify_recent_limit", 0),
    ],
)
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(database_url="postgresql://x", **{field: value})


def test_is_production():
    assert Settings(database_url="postgresql://x", app_env=" Production ").is_production()
    assert not Settings(database_url="postgresql://x", app_env="test").is_production()


def test_container_uses_in_memory_adapters_in_test_env():
    assert isinstance(get_permission_catalog(), InMemoryPermissionCatalog)
    assert isinstance(get_audit_log_repository(), InMemoryAuditLogRepository)
    assert get_audit_log_repository() is get_audit_log_repository()
