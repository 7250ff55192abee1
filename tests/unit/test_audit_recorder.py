"""
Name: Audit Recorder / Hash Tests

Responsibilities:
  - Chain linkage (genesis, previous_hash == predecessor's current_hash)
  - Hash reproducibility from stored fields (v1 format)
  - Append failures raise AuditAppendError and leave the chain untouched
  - Concurrent appends serialize on the chain head
"""

import hashlib
import threading
from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest

from hotel_core.application import AuditRecorder, ChainVerifier
from hotel_core.crosscutting.exceptions import AuditAppendError
from hotel_core.domain.audit import GENESIS_HASH, AuditAction, AuditEntityType
from hotel_core.domain.audit_hash import (
    canonical_json,
    canonical_timestamp,
    compute_entry_hash,
    compute_hash,
)

pytestmark = pytest.mark.unit


def test_first_entry_links_to_genesis(recorder, make_draft):
    entry = recorder.append(make_draft(0))
    assert entry.previous_hash == GENESIS_HASH
    assert len(entry.current_hash) == 64


def test_entries_form_a_chain(append_many, audit_repo):
    entries = append_many(4)

    for previous, current in zip(entries, entries[1:]):
        assert current.previous_hash == previous.current_hash

    head = audit_repo.read_head()
    assert head.last_hash == entries[-1].current_hash
    assert head.last_entry_id == entries[-1].id


def test_hash_matches_documented_v1_format(audit_repo, make_draft):
    fixed_id = UUID("11111111-1111-1111-1111-111111111111")
    at = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
    recorder = AuditRecorder(audit_repo, now=lambda: at, id_factory=lambda: fixed_id)

    entry = recorder.append(make_draft(0))

    payload = "|".join(
        [
            str(fixed_id),
            "product",
            "product-0",
            "update",
            "user-0",
            '{"name":"after-0","qty":0}',
            "2024-03-01T09:30:00.000000+00:00",
            GENESIS_HASH,
        ]
    )
    assert entry.current_hash == hashlib.sha256(payload.encode("utf-8")).hexdigest()


def test_stored_entry_hash_is_reproducible(append_many, audit_repo):
    append_many(3)
    for stored in audit_repo.get_all_entries():
        assert compute_entry_hash(stored) == stored.current_hash


def test_hash_ignores_snapshot_key_order():
    common = dict(
        entry_id="x",
        entity_type="product",
        entity_id="1",
        action="update",
        user_id=None,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        previous_hash=GENESIS_HASH,
    )
    a = compute_hash(snapshot_after={"a": 1, "b": 2}, **common)
    b = compute_hash(snapshot_after={"b": 2, "a": 1}, **common)
    assert a == b


def test_canonical_helpers():
    assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'
    naive = datetime(2024, 1, 1, 0, 0, 0)
    assert canonical_timestamp(naive) == "2024-01-01T00:00:00.000000+00:00"


def test_timestamps_strictly_increase_with_frozen_clock(recorder, make_draft):
    first = recorder.append(make_draft(0))
    second = recorder.append(make_draft(1))
    assert second.created_at > first.created_at
    assert (second.created_at - first.created_at).total_seconds() == pytest.approx(1e-6)


def test_enum_values_and_ids_are_normalized(recorder, make_draft):
    user_id = uuid4()
    hotel = uuid4()
    entry = recorder.append(
        make_draft(
            0,
            action=AuditAction.CREATE,
            entity_type=AuditEntityType.BATCH,
            user_id=user_id,
            hotel_id=hotel,
        )
    )
    assert entry.action == "create"
    assert entry.entity_type == "batch"
    assert entry.user_id == str(user_id)
    assert entry.hotel_id == str(hotel)
    assert compute_entry_hash(entry) == entry.current_hash


def test_zero_ids_are_kept(recorder, make_draft):
    entry = recorder.append(make_draft(0, user_id=0, hotel_id=0))

    assert entry.user_id == "0"
    assert entry.hotel_id == "0"
    assert compute_entry_hash(entry) == entry.current_hash

    fields = dict(
        entry_id=entry.id,
        entity_type="product",
        entity_id="product-0",
        action="update",
        snapshot_after=None,
        created_at=entry.created_at,
        previous_hash=GENESIS_HASH,
    )
    assert compute_hash(user_id=0, **fields) != compute_hash(user_id=None, **fields)


def test_details_are_json_normalized(recorder, make_draft):
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
    entry = recorder.append(make_draft(0, details={"at": stamp}))
    assert entry.details == {"at": str(stamp)}


def test_append_failure_raises_and_rolls_back(recorder, audit_repo, make_draft):
    recorder.append(make_draft(0))
    head_before = audit_repo.read_head()

    audit_repo.fail_inserts_with(RuntimeError("disk full"))
    with pytest.raises(AuditAppendError) as exc_info:
        recorder.append(make_draft(1))

    assert isinstance(exc_info.value.original_error, RuntimeError)
    assert audit_repo.read_head() == head_before
    assert len(audit_repo.get_all_entries()) == 1

    audit_repo.fail_inserts_with(None)
    entry = recorder.append(make_draft(2))
    assert entry.previous_hash == head_before.last_hash


def test_concurrent_appends_keep_the_chain_linked(audit_repo, make_draft):
    recorder = AuditRecorder(audit_repo)
    threads_count, per_thread = 8, 25
    failures: list[Exception] = []

    def worker(offset: int) -> None:
        try:
            for n in range(per_thread):
                recorder.append(make_draft(offset * per_thread + n))
        except Exception as exc:
            failures.append(exc)

    threads = [
        threading.Thread(target=worker, args=(i,)) for i in range(threads_count)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert failures == []
    report = ChainVerifier(audit_repo).verify()
    assert report.valid
    assert report.total_records == threads_count * per_thread

    entries = audit_repo.list_entries()
    assert len({e.previous_hash for e in entries}) == len(entries)
    assert all(a.created_at < b.created_at for a, b in zip(entries, entries[1:]))
