"""
===============================================================================
TARJETA CRC — infrastructure/storage/base.py
===============================================================================

Componentes:
  - KeyValueBackend (ABC): plantilla común de los substrates

Responsabilidades:
  - Codificar / decodificar valores como JSON (texto UTF-8).
  - Aplicar la cuota en bytes antes de cada escritura.
  - Tratar valores corruptos como "missing" (warning, no excepción).
  - Delegar en el backend concreto las operaciones de texto crudo.

Colaboradores:
  - infrastructure/storage/memory.py
  - infrastructure/storage/json_file.py
  - infrastructure/storage/redis_store.py
  - infrastructure/storage/errors.py

Notas:
  - size() = suma de bytes UTF-8 de claves + valores serializados.
  - set() es whole-value replace; no hay transacciones entre claves.
===============================================================================
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from threading import RLock
from typing import Any, List, Optional

from ...crosscutting.logger import logger
from .errors import StorageQuotaExceededError, StorageSerializationError


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


class KeyValueBackend(ABC):
    """Template: JSON codec + quota over a raw text store."""

    backend_name: str = "abstract"

    def __init__(self, *, quota_bytes: int | None = None) -> None:
        self._quota_bytes = quota_bytes
        self._lock = RLock()

    # -------------------------------------------------------------------------
    # Operaciones crudas (implementadas por cada backend)
    # -------------------------------------------------------------------------
    @abstractmethod
    def _read_raw(self, key: str) -> Optional[str]:
        """Return the stored text or None."""

    @abstractmethod
    def _write_raw(self, key: str, text: str) -> None:
        """Persist text under key."""

    @abstractmethod
    def _delete_raw(self, key: str) -> None:
        """Delete key (no-op if missing)."""

    @abstractmethod
    def _raw_keys(self) -> List[str]:
        """Every stored key."""

    @abstractmethod
    def _raw_size(self) -> int:
        """Total bytes of keys + stored text."""

    # -------------------------------------------------------------------------
    # API pública (KeyValueStore)
    # -------------------------------------------------------------------------
    def get(self, key: str, default: Any = None) -> Any:
        text = self._read_raw(key)
        if text is None:
            return default
        try:
            return json.loads(text)
        except ValueError:
            logger.warning(
                "Valor corrupto en storage, se usa el default",
                extra={"key": key, "backend": self.backend_name},
            )
            return default

    def set(self, key: str, value: Any) -> None:
        try:
            text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise StorageSerializationError(key, original_error=exc) from exc

        with self._lock:
            if self._quota_bytes is not None:
                previous = self._read_raw(key)
                current = self._raw_size()
                if previous is not None:
                    current -= _byte_len(key) + _byte_len(previous)
                required = current + _byte_len(key) + _byte_len(text)
                if required > self._quota_bytes:
                    raise StorageQuotaExceededError(key, required, self._quota_bytes)
            self._write_raw(key, text)

    def remove(self, key: str) -> None:
        with self._lock:
            self._delete_raw(key)

    def keys(self) -> List[str]:
        return sorted(self._raw_keys())

    def size(self) -> int:
        return self._raw_size()

    def stats(self) -> dict:
        return {
            "backend": self.backend_name,
            "keys": len(self._raw_keys()),
            "size_bytes": self._raw_size(),
            "quota_bytes": self._quota_bytes,
        }
