"""
CRC — domain/repositories.py

Name
- Persistence ports (Protocols)

Responsibilities
- Define the contracts the application layer depends on:
  KeyValueStore (substrate), RecordStore (per-collection CRUD) and
  AuditLogRepository (audit list persistence).
- Keep application code independent from the concrete backend
  (memory / JSON file / Redis).

Collaborators
- domain.audit: AuditLogEntry
- infrastructure.storage: substrate implementations
- infrastructure.repositories: record / audit repositories

Constraints
- Pure interfaces only: no side effects, no infrastructure imports.

Notes
- We use typing.Protocol for structural subtyping ("duck typing").
- Records cross these ports as plain dicts (JSON-compatible values).
"""

from typing import Any, Iterable, List, Mapping, Optional, Protocol

from .audit import AuditLogEntry


class KeyValueStore(Protocol):
    """
    R: Size-bounded persistent key-value substrate.

    Semantics:
      - get(key, default) returns `default` for missing (or undecodable) keys
      - set(key, value) serializes the value; failures raise StorageError
      - no atomicity across keys
    """

    def get(self, key: str, default: Any = None) -> Any:
        """R: Read and decode a value."""
        ...

    def set(self, key: str, value: Any) -> None:
        """R: Encode and persist a value (whole-value replace)."""
        ...

    def remove(self, key: str) -> None:
        """R: Delete a key (no-op if missing)."""
        ...

    def keys(self) -> List[str]:
        """R: List stored keys."""
        ...

    def size(self) -> int:
        """R: Total persisted size in bytes."""
        ...


class RecordStore(Protocol):
    """R: CRUD over one named collection of records."""

    @property
    def name(self) -> str:
        ...

    def list(self) -> List[dict]:
        """R: All records in collection order (copies)."""
        ...

    def get(self, record_id: Any) -> Optional[dict]:
        """R: One record or None."""
        ...

    def add(self, partial: Mapping[str, Any]) -> dict:
        """R: Create with next id + defaults; emits `create`."""
        ...

    def update(self, record_id: Any, partial: Mapping[str, Any]) -> Optional[dict]:
        """R: Shallow merge; None when missing; emits `update`."""
        ...

    def delete(self, record_id: Any) -> bool:
        """R: Remove by id; emits `delete` only when found."""
        ...

    def find_duplicates(self, key_field: str) -> List[dict]:
        """R: [{original, duplicate}] grouped by lower-cased key."""
        ...

    def delete_many(self, ids: Iterable[Any]) -> int:
        """R: Remove several ids in one write, no per-record audit."""
        ...

    def update_many(self, ids: Iterable[Any], changes: Mapping[str, Any]) -> int:
        """R: Merge `changes` into several ids in one write, no per-record audit."""
        ...

    def append_many(self, records: Iterable[Mapping[str, Any]]) -> int:
        """R: Append pre-identified records (imports), no per-record audit."""
        ...


class AuditSink(Protocol):
    """R: Receiver of audit actions emitted by mutating operations."""

    def log_action(
        self,
        action: str,
        target_type: str,
        target_id: Any,
        details: Any = None,
    ) -> Optional[AuditLogEntry]:
        """R: Record one action; must never raise."""
        ...


class AuditLogRepository(Protocol):
    """R: Interface for audit log persistence (newest first)."""

    def prepend(self, entry: AuditLogEntry, *, max_entries: int) -> None:
        """R: Insert at the head and truncate to `max_entries`."""
        ...

    def list_entries(self) -> List[AuditLogEntry]:
        """R: Every stored entry, newest first."""
        ...

    def retain(self, keep: Any) -> int:
        """R: Keep entries for which `keep(entry)` is true; return removed count."""
        ...
