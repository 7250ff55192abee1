"""
Name: Background Job Tests

Responsibilities:
  - Validate job wiring (verifier / archival manager from the container)
  - Integrity violations are escalated as security alerts
  - Periodic jobs are registered with rq-scheduler on their cadence
  - Worker refuses to start without Redis or chain state
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from hotel_core.context import get_context_dict
from hotel_core.crosscutting.config import Settings
from hotel_core.domain.audit import ChainError, ChainErrorKind, VerificationReport
from hotel_core.worker.jobs import (
    ARCHIVE_AUDIT_LOGS_JOB_PATH,
    VERIFY_AUDIT_CHAIN_JOB_PATH,
    archive_audit_logs_job,
    verify_audit_chain_job,
)
from hotel_core.worker.scheduler import periodic_jobs, register_periodic_jobs
from hotel_core.worker.worker import require_chain_state, require_redis

pytestmark = pytest.mark.unit

_VALID = VerificationReport(valid=True, total_records=3, archived_skipped=0)
_INVALID = VerificationReport(
    valid=False,
    total_records=3,
    archived_skipped=0,
    errors=(
        ChainError(
            id="e-2",
            kind=ChainErrorKind.TAMPERED_DATA,
            expected="a" * 64,
            actual="b" * 64,
            created_at="2024-01-01T00:00:00.000000+00:00",
        ),
    ),
)


@pytest.fixture(autouse=True)
def _current_job():
    with patch(
        "hotel_core.worker.jobs.get_current_job", return_value=MagicMock(id="job-1")
    ):
        yield


def test_verify_job_uses_configured_limit():
    verifier = MagicMock()
    verifier.verify_recent.return_value = _VALID
    alerts = MagicMock()

    with patch("hotel_core.worker.jobs.get_chain_verifier", return_value=verifier):
        with patch(
            "hotel_core.worker.jobs.get_security_alert_recorder", return_value=alerts
        ):
            result = verify_audit_chain_job()

    verifier.verify_recent.assert_called_once_with(1000)
    alerts.integrity_violation.assert_not_called()
    assert result["valid"] is True
    assert get_context_dict() == {}


def test_verify_job_escalates_violations():
    verifier = MagicMock()
    verifier.verify_recent.return_value = _INVALID
    alerts = MagicMock()

    with patch("hotel_core.worker.jobs.get_chain_verifier", return_value=verifier):
        with patch(
            "hotel_core.worker.jobs.get_security_alert_recorder", return_value=alerts
        ):
            result = verify_audit_chain_job(limit=50)

    verifier.verify_recent.assert_called_once_with(50)
    alerts.integrity_violation.assert_called_once_with(_INVALID)
    assert result["errors"][0]["kind"] == "TAMPERED_DATA"


def test_verify_job_reraises_and_clears_context():
    verifier = MagicMock()
    verifier.verify_recent.side_effect = RuntimeError("db down")

    with patch("hotel_core.worker.jobs.get_chain_verifier", return_value=verifier):
        with pytest.raises(RuntimeError):
            verify_audit_chain_job()

    assert get_context_dict() == {}


def test_archive_job_uses_retention_years():
    manager = MagicMock()
    manager.archive_older_than.return_value = 4

    with patch("hotel_core.worker.jobs.get_archival_manager", return_value=manager):
        result = archive_audit_logs_job(retention_years=2)

    manager.archive_older_than.assert_called_once_with(timedelta(days=730))
    assert result == {"archived": 4, "retention_years": 2}


def test_archive_job_defaults_to_settings():
    manager = MagicMock()
    manager.archive_older_than.return_value = 0

    with patch("hotel_core.worker.jobs.get_archival_manager", return_value=manager):
        result = archive_audit_logs_job()

    assert result["retention_years"] == 7


def test_jobs_end_to_end_with_in_memory_chain():
    from hotel_core.container import get_audit_log_repository, get_audit_recorder
    from hotel_core.domain.audit import AuditEntryDraft

    recorder = get_audit_recorder()
    first = recorder.append(AuditEntryDraft(action="update", entity_type="batch"))
    recorder.append(AuditEntryDraft(action="update", entity_type="batch"))
    repo = get_audit_log_repository()
    repo.tamper(first.id, entity_id="forged")

    report = verify_audit_chain_job(limit=10)

    assert report["valid"] is False
    alerts = [e for e in repo.get_all_entries() if e.action == "security_alert"]
    assert len(alerts) == 1


def test_periodic_jobs_follow_settings():
    settings = Settings(
        database_url="postgresql://x",
        audit_verification_interval_seconds=60,
        audit_archival_interval_seconds=600,
    )

    jobs = periodic_jobs(settings)

    assert [(j.path, j.interval_seconds) for j in jobs] == [
        (VERIFY_AUDIT_CHAIN_JOB_PATH, 60),
        (ARCHIVE_AUDIT_LOGS_JOB_PATH, 600),
    ]


def test_register_periodic_jobs_schedules_repeating_jobs():
    scheduler = MagicMock()
    scheduler.__contains__.return_value = False
    first_run = datetime(2024, 1, 1, tzinfo=timezone.utc)
    jobs = periodic_jobs(
        Settings(
            database_url="postgresql://x",
            audit_verification_interval_seconds=60,
            audit_archival_interval_seconds=600,
        )
    )

    ids = register_periodic_jobs(
        scheduler, jobs, queue_name="audit", first_run_at=first_run
    )

    assert ids == [j.job_id for j in jobs]
    scheduler.cancel.assert_not_called()
    verify_call = scheduler.schedule.call_args_list[0].kwargs
    assert verify_call["func"] == VERIFY_AUDIT_CHAIN_JOB_PATH
    assert verify_call["interval"] == 60
    assert verify_call["repeat"] is None
    assert verify_call["scheduled_time"] == first_run
    assert verify_call["queue_name"] == "audit"
    assert verify_call["id"] == jobs[0].job_id


def test_register_periodic_jobs_replaces_previous_registration():
    scheduler = MagicMock()
    scheduler.__contains__.return_value = True
    jobs = periodic_jobs(Settings(database_url="postgresql://x"))

    register_periodic_jobs(scheduler, jobs, queue_name="audit")

    assert [c.args[0] for c in scheduler.cancel.call_args_list] == [
        j.job_id for j in jobs
    ]
    assert scheduler.schedule.call_count == 2


def test_require_redis_needs_url_and_ping():
    with pytest.raises(SystemExit):
        require_redis("")

    redis_conn = MagicMock()
    redis_conn.ping.side_effect = ConnectionError("refused")
    with patch(
        "hotel_core.worker.worker.build_redis_connection", return_value=redis_conn
    ):
        with pytest.raises(SystemExit):
            require_redis("redis://localhost:6379/0")


def test_require_chain_state_exits_without_head():
    repo = MagicMock()
    repo.read_head.return_value = None
    with patch("hotel_core.worker.worker.get_audit_log_repository", return_value=repo):
        with pytest.raises(SystemExit):
            require_chain_state()
