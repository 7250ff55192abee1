"""
Name: Permission Cache / Resolver Tests

Responsibilities:
  - TTL expiry driven by an injected clock (no sleeps)
  - Resolver caches per role and wraps catalog failures
"""

from unittest.mock import Mock

import pytest

from hotel_core.crosscutting.exceptions import CatalogUnavailableError
from hotel_core.domain.permissions import Role, Scope, make_grant
from hotel_core.identity import PermissionCache, PermissionResolver

pytestmark = pytest.mark.unit


def _grants():
    return (make_grant("STAFF", "batches", "read", "department"),)


def test_cache_hit_within_ttl(permission_cache, fake_clock):
    permission_cache.put("STAFF", _grants())
    fake_clock.advance(29.9)
    assert permission_cache.get("STAFF") == _grants()


def test_cache_expires_at_ttl(permission_cache, fake_clock):
    permission_cache.put("STAFF", _grants())
    fake_clock.advance(30.0)
    assert permission_cache.get("STAFF") is None
    assert len(permission_cache) == 0


def test_cache_zero_ttl_never_stores(fake_clock):
    cache = PermissionCache(ttl_seconds=0, clock=fake_clock)
    cache.put("STAFF", _grants())
    assert cache.get("STAFF") is None


def test_cache_rejects_negative_ttl():
    with pytest.raises(ValueError):
        PermissionCache(ttl_seconds=-1)


def test_invalidate_role_and_all(permission_cache):
    permission_cache.put("STAFF", _grants())
    permission_cache.put("DEPARTMENT_MANAGER", _grants())

    permission_cache.invalidate_role("STAFF")
    assert permission_cache.get("STAFF") is None
    assert permission_cache.get("DEPARTMENT_MANAGER") is not None

    permission_cache.invalidate_all()
    assert len(permission_cache) == 0


def test_resolver_hits_catalog_once_within_ttl(resolver, catalog):
    first = resolver.resolve(Role.STAFF)
    second = resolver.resolve("STAFF")

    assert first == second
    assert catalog.fetch_count == 1


def test_resolver_refetches_after_expiry(resolver, catalog, fake_clock):
    resolver.resolve("STAFF")
    fake_clock.advance(31)
    resolver.resolve("STAFF")
    assert catalog.fetch_count == 2


def test_resolver_sees_grant_change_after_invalidate(resolver, catalog):
    assert resolver.highest_scope("STAFF", "reports", "read") is None

    catalog.grant("STAFF", "reports", "read", "department")
    assert resolver.highest_scope("STAFF", "reports", "read") is None  # cached

    resolver.invalidate()
    assert resolver.highest_scope("STAFF", "reports", "read") == Scope.DEPARTMENT


def test_resolver_wraps_unexpected_catalog_errors(permission_cache):
    broken = Mock()
    broken.fetch_grants.side_effect = TimeoutError("catalog timed out")
    resolver = PermissionResolver(catalog=broken, cache=permission_cache)

    with pytest.raises(CatalogUnavailableError) as exc_info:
        resolver.resolve("STAFF")

    assert exc_info.value.role == "STAFF"
    assert isinstance(exc_info.value.original_error, TimeoutError)


def test_resolver_does_not_cache_failures(resolver, catalog):
    catalog.set_unavailable()
    with pytest.raises(CatalogUnavailableError):
        resolver.resolve("STAFF")

    catalog.set_unavailable(False)
    assert resolver.resolve("STAFF")


def test_highest_scope_prefers_widest(resolver, catalog):
    catalog.grant("STAFF", "inventory", "read", "hotel")
    resolver.invalidate("STAFF")
    assert resolver.highest_scope("STAFF", "inventory", "read") == Scope.HOTEL


def test_unknown_role_resolves_to_no_grants(resolver):
    assert resolver.resolve("NIGHT_AUDITOR") == ()
