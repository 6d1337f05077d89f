"""
Key-value substrate backends.

Backend selection (STORAGE_BACKEND):
  - memory => InMemoryKeyValueStore
  - file   => JsonFileKeyValueStore(STORAGE_PATH)
  - redis  => RedisKeyValueStore(REDIS_URL)
"""

from __future__ import annotations

from ...crosscutting.config import Settings
from .base import KeyValueBackend
from .errors import (
    StorageError,
    StorageQuotaExceededError,
    StorageSerializationError,
    StorageUnavailableError,
)
from .json_file import JsonFileKeyValueStore
from .memory import InMemoryKeyValueStore
from .redis_store import RedisKeyValueStore


def create_store(settings: Settings) -> KeyValueBackend:
    """Build the substrate configured in `settings`."""
    quota = settings.storage_quota_bytes
    if settings.storage_backend == "memory":
        return InMemoryKeyValueStore(quota_bytes=quota)
    if settings.storage_backend == "redis":
        return RedisKeyValueStore(redis_url=settings.redis_url, quota_bytes=quota)
    return JsonFileKeyValueStore(settings.storage_path, quota_bytes=quota)


__all__ = [
    "KeyValueBackend",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "RedisKeyValueStore",
    "StorageError",
    "StorageQuotaExceededError",
    "StorageSerializationError",
    "StorageUnavailableError",
    "create_store",
]
