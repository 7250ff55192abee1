"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define the persistence contracts of the authorization/audit core (ports).
- Keep identity/application independent from PostgreSQL or in-memory storage.
- Make the chain-head critical section explicit (ChainTransaction).

Collaborators
- domain.permissions: Grant
- domain.audit: AuditEntry, ChainHead
- infrastructure.repositories.{postgres,in_memory}: implementations

Constraints
- Pure interfaces only: no SQL, no infrastructure imports.
- List results are ordered by (created_at ASC, id ASC) unless stated otherwise.

Notes
- Implementations of PermissionCatalog raise CatalogUnavailableError when the
  store cannot answer; an empty list always means "the role has no grants".
- Implementations of AuditLogRepository raise DatabaseError on storage faults.
"""

from datetime import datetime
from typing import ContextManager, Iterator, List, Optional, Protocol
from uuid import UUID

from .audit import AuditEntry, ChainHead
from .permissions import Grant


class PermissionCatalog(Protocol):
    """Read-only source of (role -> grants)."""

    def fetch_grants(self, role: str) -> List[Grant]:
        """Return every grant assigned to `role` (possibly empty)."""
        ...


class ChainTransaction(Protocol):
    """
    Exclusive view over the chain head.

    Only one ChainTransaction is open at a time; everything done through it
    commits together when the context exits cleanly and is discarded
    otherwise.
    """

    def head(self) -> ChainHead:
        """Current head (genesis head when the log is empty)."""
        ...

    def insert(self, entry: AuditEntry) -> None:
        """Insert `entry` and advance the head to it."""
        ...

    def archive_older_than(
        self,
        cutoff: datetime,
        *,
        archived_at: datetime,
        exclude_ids: frozenset,
        exempt_actions: frozenset,
        exempt_entity_types: frozenset,
    ) -> int:
        """Mark live entries created before `cutoff` as archived; return the count."""
        ...


class AuditLogRepository(Protocol):
    """Append-only hash-chained audit log."""

    def chain_transaction(self) -> ContextManager[ChainTransaction]:
        """Open the serialization boundary around the chain head."""
        ...

    def read_head(self) -> Optional[ChainHead]:
        """Head snapshot without locking (None if the state row is missing)."""
        ...

    def get(self, entry_id: UUID) -> Optional[AuditEntry]: ...

    def list_entries(
        self,
        *,
        start_at: Optional[datetime] = None,
        end_at: Optional[datetime] = None,
    ) -> List[AuditEntry]:
        """Live and archived entries with start_at <= created_at <= end_at."""
        ...

    def list_recent(self, limit: int) -> List[AuditEntry]:
        """
        Tail of the chain covering the newest `limit` live entries, ascending.

        Archived entries interleaved in that window are included so the
        fold can carry their hashes forward; they do not count toward
        `limit`.
        """
        ...

    def entry_before(self, created_at: datetime) -> Optional[AuditEntry]:
        """Newest entry (live or archived) strictly older than `created_at`."""
        ...

    def iter_for_hotel(
        self,
        hotel_id: object,
        *,
        start_at: datetime,
        end_at: datetime,
        include_archived: bool = False,
    ) -> Iterator[AuditEntry]:
        """Entries of one hotel within [start_at, end_at], ascending."""
        ...

    def list_entity_history(
        self, hotel_id: object, entity_type: str, entity_id: str
    ) -> List[AuditEntry]:
        """Every entry (live and archived) about one entity, ascending."""
        ...

    def mark_unverified(self, entry_id: UUID) -> None:
        """Flip `verified` to False (idempotent)."""
        ...

    def count_live(self) -> int: ...

    def count_unverified(self) -> int:
        """Live entries with verified = False."""
        ...
