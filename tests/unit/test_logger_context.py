"""
Name: Structured Logging Tests

Responsibilities:
  - JSON lines carry request / actor context
  - Sensitive keys are redacted, security events are tagged
"""

import json
import logging
import sys

import pytest

from hotel_core.context import (
    clear_context,
    get_context_dict,
    set_actor_context,
    set_job_context,
    set_request_context,
)
from hotel_core.crosscutting.logger import REDACTED, JSONFormatter, redact

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _clean_context():
    clear_context()
    yield
    clear_context()


def _format(msg: str, exc_info=None, **extra) -> dict:
    record = logging.LogRecord(
        "hotel-core", logging.INFO, __file__, 10, msg, (), exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(JSONFormatter().format(record))


def test_context_is_merged_and_empty_values_omitted():
    set_request_context(request_id="req-1", method="GET", path="/admin/audit/export")
    set_actor_context(actor_id="u-1", role="STAFF")

    payload = _format("hola")

    assert payload["msg"] == "hola"
    assert payload["request_id"] == "req-1"
    assert payload["actor_id"] == "u-1"
    assert payload["role"] == "STAFF"
    assert "job" not in payload


def test_job_context_reuses_request_id():
    set_job_context(job_id="job-9", job_name="verify_audit_chain")
    assert get_context_dict() == {"request_id": "job-9", "job": "verify_audit_chain"}

    clear_context()
    assert get_context_dict() == {}


def test_extra_fields_are_redacted():
    payload = _format(
        "snapshot",
        snapshot={"name": "ana", "password_hash": "x", "nested": {"token": "t"}},
        database_url="postgresql://secret",
    )

    assert payload["snapshot"]["name"] == "ana"
    assert payload["snapshot"]["password_hash"] == REDACTED
    assert payload["snapshot"]["nested"]["token"] == REDACTED
    assert payload["database_url"] == REDACTED


def test_security_events_are_tagged():
    payload = _format("bypass", security_event="platform_owner_bypass")
    assert payload["category"] == "security"
    assert "category" not in _format("normal")


def test_exception_info_is_serialized():
    try:
        raise ValueError("bad hash")
    except ValueError:
        payload = _format("falló", exc_info=sys.exc_info())

    assert payload["exc_type"] == "ValueError"
    assert payload["exc_message"] == "bad hash"
    assert "Traceback" in payload["exc_stack"]


def test_redact_truncates_long_strings():
    value = redact("x" * 5000)
    assert len(value) == 2001
    assert value.endswith("…")
