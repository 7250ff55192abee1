"""
Name: RFC7807 Exception Mapping Tests

Responsibilities:
  - Map core exceptions to problem+json with stable codes
  - Never leak internals of unhandled errors in production
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from hotel_core.api.exception_handlers import register_exception_handlers
from hotel_core.crosscutting.exceptions import (
    ArchivalRaceError,
    AuditAppendError,
    AuthenticationRequiredError,
    CatalogUnavailableError,
    DatabaseError,
    PermissionDeniedError,
)
from hotel_core.crosscutting.middleware import RequestContextMiddleware

pytestmark = pytest.mark.unit


def _app_raising(exc: Exception) -> TestClient:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)

    @app.get("/boom")
    def boom():
        raise exc

    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.parametrize(
    "exc,status,code",
    [
        (AuthenticationRequiredError(), 401, "UNAUTHORIZED"),
        (PermissionDeniedError("audit", "export"), 403, "FORBIDDEN"),
        (CatalogUnavailableError("STAFF"), 503, "SERVICE_UNAVAILABLE"),
        (DatabaseError("pool exhausted"), 503, "DATABASE_ERROR"),
        (AuditAppendError("insert failed"), 503, "AUDIT_UNAVAILABLE"),
        (ArchivalRaceError("entry-1"), 500, "INTERNAL_ERROR"),
    ],
)
def test_core_errors_are_mapped(exc, status, code):
    response = _app_raising(exc).get("/boom")

    assert response.status_code == status
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["code"] == code
    assert body["status"] == status
    assert {"error_id": exc.error_id} in body["errors"]


def test_permission_denied_carries_required_pair():
    response = _app_raising(PermissionDeniedError("audit", "export")).get("/boom")
    assert {"resource": "audit", "action": "export"} in response.json()["errors"]


def test_request_id_is_attached():
    response = _app_raising(DatabaseError("down")).get(
        "/boom", headers={"X-Request-Id": "req-42"}
    )
    assert {"request_id": "req-42"} in response.json()["errors"]


def test_unhandled_error_hides_detail_in_production(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")

    response = _app_raising(RuntimeError("secret dsn")).get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "INTERNAL_ERROR"
    assert "secret dsn" not in body["detail"]


def test_unhandled_error_shows_detail_outside_production():
    response = _app_raising(RuntimeError("boom detail")).get("/boom")
    assert response.json()["detail"] == "boom detail"
