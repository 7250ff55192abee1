"""
Name: Admin Audit Endpoint Tests

Responsibilities:
  - Validate 401 / 403 / 503 mapping of authorization decisions (RFC7807)
  - Integrity verify / status endpoints over the in-memory chain
  - Global chain endpoints are platform-only (no hotel admin fast path)
  - Per-hotel JSON Lines export, forensic export and entity history
"""

import json
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from hotel_core.api.main import create_app
from hotel_core.container import (
    get_audit_log_repository,
    get_audit_recorder,
    get_permission_catalog,
)
from hotel_core.domain.audit import AuditEntryDraft
from hotel_core.domain.permissions import Actor, Role

pytestmark = pytest.mark.unit

HOTEL = "hotel-1"


def _client(actor: Actor | None) -> TestClient:
    return TestClient(create_app(actor_resolver=lambda request: actor))


def _seed(count: int, hotel_id: str = HOTEL):
    recorder = get_audit_recorder()
    return [
        recorder.append(
            AuditEntryDraft(
                action="update",
                entity_type="batch",
                entity_id=f"batch-{n}",
                user_id="user-1",
                hotel_id=hotel_id,
                snapshot_after={"qty": n},
            )
        )
        for n in range(count)
    ]


def _admin(hotel_id: str = HOTEL) -> Actor:
    return Actor(id=uuid4(), role=Role.HOTEL_ADMIN, hotel_id=hotel_id)


def _staff() -> Actor:
    return Actor(id=uuid4(), role=Role.STAFF, hotel_id=HOTEL, department_id="d-1")


def _owner() -> Actor:
    return Actor(id=uuid4(), role=Role.SUPER_ADMIN)


def test_verify_requires_authentication():
    response = _client(None).get("/admin/audit/integrity/verify")

    assert response.status_code == 401
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["code"] == "UNAUTHORIZED"


def test_verify_forbidden_for_staff_with_required_pair():
    response = _client(_staff()).get("/admin/audit/integrity/verify")

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "FORBIDDEN"
    assert {"resource": "audit", "action": "read"} in body["errors"]


def test_catalog_outage_returns_503():
    get_permission_catalog().set_unavailable()

    response = _client(_staff()).get("/admin/audit/integrity/status")

    assert response.status_code == 503
    assert response.json()["code"] == "SERVICE_UNAVAILABLE"


def test_verify_reports_valid_chain():
    _seed(3)

    response = _client(_owner()).get("/admin/audit/integrity/verify")

    assert response.status_code == 200
    assert response.json() == {
        "valid": True,
        "total_records": 3,
        "archived_skipped": 0,
        "errors": [],
    }


def test_verify_reports_tampering_and_status_turns_compromised():
    entries = _seed(3)
    get_audit_log_repository().tamper(entries[1].id, snapshot_after={"qty": 500})
    client = _client(_owner())

    report = client.get("/admin/audit/integrity/verify").json()
    assert report["valid"] is False
    assert report["errors"][0]["id"] == str(entries[1].id)

    status = client.get("/admin/audit/integrity/status").json()
    assert status["status"] == "compromised"
    assert status["unverified_entries"] == 1


@pytest.mark.parametrize(
    "path",
    [
        "/admin/audit/integrity/verify",
        "/admin/audit/integrity/verify-recent",
        "/admin/audit/integrity/status",
    ],
)
def test_hotel_admin_cannot_read_the_global_chain(path):
    _seed(1)
    other = _seed(1, hotel_id="hotel-2")
    get_audit_log_repository().tamper(other[0].id, snapshot_after={"qty": 999})

    response = _client(_admin()).get(path)

    assert response.status_code == 403
    assert str(other[0].id) not in response.text
    assert {"resource": "audit", "action": "read"} in response.json()["errors"]
    assert get_audit_log_repository().get(other[0].id).verified is True


def test_verify_rejects_inverted_range():
    response = _client(_owner()).get(
        "/admin/audit/integrity/verify",
        params={"start_at": "2024-02-01T00:00:00Z", "end_at": "2024-01-01T00:00:00Z"},
    )
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_verify_recent_limit():
    _seed(4)
    response = _client(_owner()).get(
        "/admin/audit/integrity/verify-recent", params={"limit": 2}
    )
    assert response.status_code == 200
    assert response.json()["total_records"] == 2


def test_status_on_empty_chain():
    body = _client(_owner()).get("/admin/audit/integrity/status").json()
    assert body["status"] == "healthy"
    assert body["total_entries"] == 0


def test_export_streams_ndjson_for_own_hotel():
    entries = _seed(2)
    _seed(1, hotel_id="hotel-2")

    response = _client(_admin()).get(
        "/admin/audit/export",
        params={
            "hotel_id": HOTEL,
            "start_at": "2000-01-01T00:00:00Z",
            "end_at": "2100-01-01T00:00:00Z",
        },
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    lines = [json.loads(line) for line in response.text.splitlines()]
    assert [line["id"] for line in lines] == [str(e.id) for e in entries]


def test_export_of_other_hotel_is_forbidden():
    response = _client(_admin()).get(
        "/admin/audit/export",
        params={
            "hotel_id": "hotel-2",
            "start_at": "2000-01-01T00:00:00Z",
            "end_at": "2100-01-01T00:00:00Z",
        },
    )
    assert response.status_code == 403
    assert {"resource": "audit", "action": "export"} in response.json()["errors"]


def test_forensic_export_includes_archived_rows():
    entries = _seed(2)
    get_audit_log_repository().tamper(entries[0].id, archived=True)
    params = {
        "hotel_id": HOTEL,
        "start_at": "2000-01-01T00:00:00Z",
        "end_at": "2100-01-01T00:00:00Z",
    }
    client = _client(_admin())

    live = client.get("/admin/audit/export", params=params)
    forensic = client.get(
        "/admin/audit/export", params={**params, "include_archived": "true"}
    )

    assert len(live.text.splitlines()) == 1
    ids = [json.loads(line)["id"] for line in forensic.text.splitlines()]
    assert ids == [str(e.id) for e in entries]


def test_entity_history_is_hotel_scoped():
    entries = _seed(2)
    client = _client(_admin())

    own = client.get(
        "/admin/audit/entities/batch/batch-1", params={"hotel_id": HOTEL}
    )
    assert own.status_code == 200
    assert [e["id"] for e in own.json()["entries"]] == [str(entries[1].id)]

    other = client.get(
        "/admin/audit/entities/batch/batch-1", params={"hotel_id": "hotel-2"}
    )
    assert other.status_code == 403


def test_actor_from_request_state_takes_precedence():
    app = create_app(actor_resolver=lambda request: None)

    @app.middleware("http")
    async def _inject_actor(request, call_next):
        request.state.actor = _owner()
        return await call_next(request)

    response = TestClient(app).get("/admin/audit/integrity/status")
    assert response.status_code == 200


def test_healthz_and_metrics():
    client = _client(None)

    health = client.get("/healthz", headers={"X-Request-Id": "req-123"})
    assert health.status_code == 200
    assert health.json()["ok"] is True
    assert health.headers["X-Request-Id"] == "req-123"

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "hotel_core_requests_total" in metrics.text


def test_require_permission_uses_target_resolver():
    from fastapi import Depends, FastAPI

    from hotel_core.api.dependencies import require_permission
    from hotel_core.api.exception_handlers import register_exception_handlers
    from hotel_core.domain.permissions import Target

    app = FastAPI()
    register_exception_handlers(app)
    app.state.actor_resolver = lambda request: _staff()
    seen = SimpleNamespace(target=None)

    def _target(request, actor):
        seen.target = Target(hotel_id=HOTEL, department_id=request.query_params["dept"])
        return seen.target

    @app.get("/batches")
    def list_batches(actor=Depends(require_permission("batches", "read", _target))):
        return {"actor": str(actor.id)}

    client = TestClient(app)
    assert client.get("/batches", params={"dept": "d-1"}).status_code == 200
    assert client.get("/batches", params={"dept": "d-2"}).status_code == 403
    assert seen.target.department_id == "d-2"
