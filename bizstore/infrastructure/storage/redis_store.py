"""
TARJETA CRC — infrastructure/storage/redis_store.py

Class: RedisKeyValueStore

Responsibilities:
  - Substrate sobre Redis (redis-py), un string JSON por clave.
  - Prefijar claves para no colisionar con otros usos del mismo Redis.
  - Reintentar caídas transitorias (tenacity) y mapear RedisError ->
    StorageUnavailableError.

Collaborators:
  - KeyValueBackend (codec + cuota)
  - redis-py (cliente)
  - storage.retry.create_retry_decorator

Notes:
  - La cuota se aplica en el adaptador (Redis no tiene cuota por prefijo).
  - size() recorre las claves del prefijo con SCAN + STRLEN.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, TypeVar

import redis

from .base import KeyValueBackend, _byte_len
from .errors import StorageUnavailableError
from .retry import create_retry_decorator

T = TypeVar("T")


class RedisKeyValueStore(KeyValueBackend):
    backend_name = "redis"

    def __init__(
        self,
        *,
        redis_url: str,
        key_prefix: str = "bizstore:",
        quota_bytes: int | None = None,
        retry_decorator: Callable[[Callable[..., Any]], Callable[..., Any]] | None = None,
    ) -> None:
        if not redis_url:
            raise ValueError("redis_url is required")
        super().__init__(quota_bytes=quota_bytes)
        self._client = redis.from_url(redis_url, decode_responses=True)
        self._prefix = key_prefix
        # R: inyectable para tests (sin esperas reales)
        self._retry = retry_decorator or create_retry_decorator()

    def _k(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return self._retry(fn)()
        except redis.RedisError as exc:
            raise StorageUnavailableError(
                f"Redis no disponible ({operation})", original_error=exc
            ) from exc

    def _read_raw(self, key: str) -> Optional[str]:
        return self._call("get", lambda: self._client.get(self._k(key)))

    def _write_raw(self, key: str, text: str) -> None:
        self._call("set", lambda: self._client.set(self._k(key), text))

    def _delete_raw(self, key: str) -> None:
        self._call("delete", lambda: self._client.delete(self._k(key)))

    def _raw_keys(self) -> List[str]:
        found = self._call(
            "scan", lambda: list(self._client.scan_iter(match=f"{self._prefix}*"))
        )
        return [k[len(self._prefix) :] for k in found]

    def _raw_size(self) -> int:
        total = 0
        for key in self._raw_keys():
            length = self._call("strlen", lambda: self._client.strlen(self._k(key)))
            total += _byte_len(key) + int(length or 0)
        return total
