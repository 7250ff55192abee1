"""
Name: DB Pool / Postgres Adapter Tests

Responsibilities:
  - Pool singleton lifecycle (fail-fast on double init / missing init)
  - Instrumented connections (healthcheck, error wrapping)
  - Postgres permission catalog degrades to CatalogUnavailableError
"""

from unittest.mock import MagicMock, patch

import pytest

from hotel_core.crosscutting.exceptions import CatalogUnavailableError
from hotel_core.domain.permissions import Scope
from hotel_core.infrastructure.db import (
    DatabaseConnectionError,
    PoolAlreadyInitializedError,
    PoolNotInitializedError,
    close_pool,
    get_pool,
    init_pool,
    reset_pool,
)
from hotel_core.infrastructure.db.instrumentation import InstrumentedConnectionPool
from hotel_core.infrastructure.repositories.postgres import PostgresPermissionCatalog

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _clean_pool():
    reset_pool()
    yield
    reset_pool()


def _fake_pool(conn: MagicMock) -> MagicMock:
    pool = MagicMock()
    pool.connection.return_value.__enter__.return_value = conn
    pool.connection.return_value.__exit__.return_value = False
    return pool


def test_get_pool_without_init_fails():
    with pytest.raises(PoolNotInitializedError):
        get_pool()


def test_init_pool_is_single_shot():
    with patch("hotel_core.infrastructure.db.pool.ConnectionPool") as pool_cls:
        pool = init_pool("postgresql://x", 1, 2, statement_timeout_ms=5000)
        assert isinstance(pool, InstrumentedConnectionPool)
        assert get_pool() is pool
        assert pool_cls.call_args.kwargs["min_size"] == 1

        with pytest.raises(PoolAlreadyInitializedError):
            init_pool("postgresql://x", 1, 2)

        close_pool()
        pool_cls.return_value.close.assert_called_once()
        close_pool()

    with pytest.raises(PoolNotInitializedError):
        get_pool()


def test_connection_configurer_sets_statement_timeout():
    with patch("hotel_core.infrastructure.db.pool.ConnectionPool") as pool_cls:
        init_pool("postgresql://x", 1, 2, statement_timeout_ms=1500)
        configure = pool_cls.call_args.kwargs["configure"]

    conn = MagicMock()
    configure(conn)
    conn.execute.assert_called_once_with("SET statement_timeout = 1500")
    conn.commit.assert_called_once()


def test_instrumented_connection_runs_healthcheck():
    conn = MagicMock()
    pool = InstrumentedConnectionPool(_fake_pool(conn))

    with pool.connection() as timed:
        timed.execute("SELECT 42")

    executed = [c.args[0] for c in conn.execute.call_args_list]
    assert executed == ["SELECT 1", "SELECT 42"]
    conn.rollback.assert_called_once()


def test_instrumented_connection_wraps_acquire_errors():
    inner = MagicMock()
    inner.connection.return_value.__enter__.side_effect = OSError("refused")
    pool = InstrumentedConnectionPool(inner)

    with pytest.raises(DatabaseConnectionError):
        with pool.connection():
            pass


def test_postgres_catalog_maps_rows_to_grants():
    conn = MagicMock()
    conn.execute.return_value.fetchall.return_value = [
        ("STAFF", "batches", "read", "department"),
        ("STAFF", "inventory", "read", "weird"),
    ]
    catalog = PostgresPermissionCatalog(_fake_pool(conn), timeout_ms=1500)

    grants = catalog.fetch_grants("STAFF")

    assert grants[0].scope is Scope.DEPARTMENT
    assert grants[1].scope == "weird"
    assert conn.execute.call_args_list[0].args[0] == "SET LOCAL statement_timeout = 1500"


def test_postgres_catalog_failure_is_unavailable():
    pool = MagicMock()
    pool.connection.side_effect = TimeoutError("pool timeout")
    catalog = PostgresPermissionCatalog(pool)

    with pytest.raises(CatalogUnavailableError) as exc_info:
        catalog.fetch_grants("STAFF")

    assert exc_info.value.role == "STAFF"
    assert pool.connection.call_args.kwargs["timeout"] == 2.0
