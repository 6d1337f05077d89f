"""
TARJETA CRC — infrastructure/storage/memory.py

Class: InMemoryKeyValueStore

Responsibilities:
  - Substrate en memoria (tests / dev / storage_backend=memory).
  - Guardar el texto JSON tal como lo haría un backend persistente, para que
    el comportamiento de cuota y size() sea idéntico.

Constraints:
  - Thread-safe: acceso protegido por Lock.
  - Se pierde al terminar el proceso.
"""

from __future__ import annotations

from threading import Lock
from typing import Dict, List, Optional

from .base import KeyValueBackend, _byte_len


class InMemoryKeyValueStore(KeyValueBackend):
    backend_name = "memory"

    def __init__(self, *, quota_bytes: int | None = None) -> None:
        super().__init__(quota_bytes=quota_bytes)
        self._data_lock = Lock()
        self._data: Dict[str, str] = {}

    def _read_raw(self, key: str) -> Optional[str]:
        with self._data_lock:
            return self._data.get(key)

    def _write_raw(self, key: str, text: str) -> None:
        with self._data_lock:
            self._data[key] = text

    def _delete_raw(self, key: str) -> None:
        with self._data_lock:
            self._data.pop(key, None)

    def _raw_keys(self) -> List[str]:
        with self._data_lock:
            return list(self._data)

    def _raw_size(self) -> int:
        with self._data_lock:
            return sum(_byte_len(k) + _byte_len(v) for k, v in self._data.items())

    def clear(self) -> None:
        with self._data_lock:
            self._data.clear()
