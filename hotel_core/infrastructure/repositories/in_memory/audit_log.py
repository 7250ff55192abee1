# =============================================================================
# FILE: infrastructure/repositories/in_memory/audit_log.py
# =============================================================================
"""
In-Memory Audit Log (hash-chained) for testing and development.

NOT FOR PRODUCTION USE - data is lost on restart.

The chain transaction is a process lock plus staged writes: inserts, head
moves and archival marks are applied only when the block exits cleanly.
"""

from __future__ import annotations

import dataclasses
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional
from uuid import UUID

from ....domain.audit import AuditEntry, ChainHead


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _sort_key(entry: AuditEntry):
    return (entry.created_at, str(entry.id))


class _InMemoryChainTransaction:
    def __init__(self, repo: "InMemoryAuditLogRepository") -> None:
        self._repo = repo
        self._head = repo._head
        self.inserts: List[AuditEntry] = []
        self.archives: Dict[UUID, datetime] = {}

    @property
    def staged_head(self) -> ChainHead:
        return self._head

    def head(self) -> ChainHead:
        return self._head

    def insert(self, entry: AuditEntry) -> None:
        self._repo._maybe_fail()
        if entry.id in self._repo._entries:
            raise ValueError(f"duplicate audit entry id {entry.id}")
        self.inserts.append(dataclasses.replace(entry))
        self._head = ChainHead(
            last_hash=entry.current_hash,
            last_entry_id=entry.id,
            last_created_at=entry.created_at,
            updated_at=_utcnow(),
        )

    def archive_older_than(
        self,
        cutoff: datetime,
        *,
        archived_at: datetime,
        exclude_ids: frozenset,
        exempt_actions: frozenset,
        exempt_entity_types: frozenset,
    ) -> int:
        count = 0
        for entry in self._repo._entries.values():
            if entry.archived or entry.created_at >= cutoff:
                continue
            if entry.id in exclude_ids:
                continue
            if entry.action in exempt_actions or entry.entity_type in exempt_entity_types:
                continue
            self.archives[entry.id] = archived_at
            count += 1
        return count


class InMemoryAuditLogRepository:
    """
    In-memory implementation of AuditLogRepository.

    Useful for:
      - Unit testing (tamper / delete helpers simulate a hostile DBA)
      - Local development without database
    """

    def __init__(self) -> None:
        self._entries: Dict[UUID, AuditEntry] = {}
        self._head = ChainHead()
        self._chain_lock = threading.Lock()
        self._data_lock = threading.RLock()
        self._failure: Optional[Exception] = None

    # -------------------------------------------------------------------------
    # Chain transaction
    # -------------------------------------------------------------------------
    @contextmanager
    def chain_transaction(self) -> Iterator[_InMemoryChainTransaction]:
        with self._chain_lock:
            tx = _InMemoryChainTransaction(self)
            yield tx
            self._commit(tx)

    def _commit(self, tx: _InMemoryChainTransaction) -> None:
        with self._data_lock:
            for entry in tx.inserts:
                self._entries[entry.id] = entry
            for entry_id, archived_at in tx.archives.items():
                entry = self._entries[entry_id]
                entry.archived = True
                entry.archived_at = archived_at
            if tx.inserts:
                self._head = tx.staged_head

    def _maybe_fail(self) -> None:
        if self._failure is not None:
            raise self._failure

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    def read_head(self) -> Optional[ChainHead]:
        with self._data_lock:
            return self._head

    def get(self, entry_id: UUID) -> Optional[AuditEntry]:
        with self._data_lock:
            entry = self._entries.get(entry_id)
            return dataclasses.replace(entry) if entry else None

    def _sorted(self) -> List[AuditEntry]:
        with self._data_lock:
            return [
                dataclasses.replace(e)
                for e in sorted(self._entries.values(), key=_sort_key)
            ]

    def list_entries(
        self,
        *,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
    ) -> List[AuditEntry]:
        return [
            e
            for e in self._sorted()
            if (start_at is None or e.created_at >= start_at)
            and (end_at is None or e.created_at <= end_at)
        ]

    def list_recent(self, limit: int) -> List[AuditEntry]:
        if limit <= 0:
            return []
        ordered = self._sorted()
        live = [e for e in ordered if not e.archived][-limit:]
        if not live:
            return []
        return [e for e in ordered if _sort_key(e) >= _sort_key(live[0])]

    def entry_before(self, created_at: datetime) -> Optional[AuditEntry]:
        older = [e for e in self._sorted() if e.created_at < created_at]
        return older[-1] if older else None

    def iter_for_hotel(
        self,
        hotel_id: object,
        *,
        start_at: datetime,
        end_at: datetime,
        include_archived: bool = False,
    ) -> Iterator[AuditEntry]:
        for entry in self._sorted():
            if entry.hotel_id != str(hotel_id):
                continue
            if entry.archived and not include_archived:
                continue
            if start_at <= entry.created_at <= end_at:
                yield entry

    def list_entity_history(
        self, hotel_id: object, entity_type: str, entity_id: str
    ) -> List[AuditEntry]:
        return [
            e
            for e in self._sorted()
            if e.hotel_id == str(hotel_id)
            and e.entity_type == entity_type
            and e.entity_id == entity_id
        ]

    def mark_unverified(self, entry_id: UUID) -> None:
        with self._data_lock:
            entry = self._entries.get(entry_id)
            if entry is not None:
                entry.verified = False

    def count_live(self) -> int:
        with self._data_lock:
            return sum(1 for e in self._entries.values() if not e.archived)

    def count_unverified(self) -> int:
        with self._data_lock:
            return sum(
                1 for e in self._entries.values() if not e.archived and not e.verified
            )

    # -------------------------------------------------------------------------
    # Testing helpers
    # -------------------------------------------------------------------------
    def tamper(self, entry_id: UUID, **changes) -> None:
        """Edit a stored row in place, bypassing the chain (simulated attack)."""
        with self._data_lock:
            entry = self._entries[entry_id]
            for key, value in changes.items():
                setattr(entry, key, value)

    def delete(self, entry_id: UUID) -> None:
        """Remove a stored row, bypassing the chain (simulated attack)."""
        with self._data_lock:
            del self._entries[entry_id]

    def fail_inserts_with(self, exc: Optional[Exception]) -> None:
        """Make every insert raise `exc` (None restores normal behavior)."""
        self._failure = exc

    def get_all_entries(self) -> List[AuditEntry]:
        return self._sorted()

    def clear(self) -> None:
        with self._data_lock:
            self._entries.clear()
            self._head = ChainHead()
