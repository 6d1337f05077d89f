"""
============================================================
TARJETA CRC — infrastructure/repositories/audit_repository.py
============================================================
Class: KeyValueAuditLogRepository

Responsibilities:
  - Persistir el audit log como una lista JSON (más nuevo primero) bajo una
    única clave del substrate.
  - Insertar al inicio y truncar al tope configurado.
  - Poda por predicado (retain) para la limpieza por antigüedad.

Collaborators:
  - domain.audit.AuditLogEntry
  - domain.repositories.KeyValueStore

Constraints / Notes:
  - Thread-safe: Lock alrededor de cada read-modify-write.
  - Entradas inválidas en storage se ignoran al leer.
============================================================
"""

from __future__ import annotations

from threading import Lock
from typing import Any, Callable, List

from ...domain.audit import AuditLogEntry
from ...domain.repositories import KeyValueStore


class KeyValueAuditLogRepository:
    def __init__(self, store: KeyValueStore, *, key: str = "db_admin_audit_log") -> None:
        self._store = store
        self._key = key
        self._lock = Lock()

    @property
    def storage_key(self) -> str:
        return self._key

    def _load(self) -> List[dict[str, Any]]:
        raw = self._store.get(self._key, [])
        if not isinstance(raw, list):
            return []
        return [item for item in raw if isinstance(item, dict)]

    def prepend(self, entry: AuditLogEntry, *, max_entries: int) -> None:
        with self._lock:
            rows = self._load()
            rows.insert(0, entry.to_dict())
            del rows[max_entries:]
            self._store.set(self._key, rows)

    def list_entries(self) -> List[AuditLogEntry]:
        with self._lock:
            rows = self._load()
        return [AuditLogEntry.from_dict(row) for row in rows]

    def retain(self, keep: Callable[[AuditLogEntry], bool]) -> int:
        with self._lock:
            rows = self._load()
            kept = [row for row in rows if keep(AuditLogEntry.from_dict(row))]
            removed = len(rows) - len(kept)
            if removed:
                self._store.set(self._key, kept)
        return removed
