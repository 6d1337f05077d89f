"""Repositories over the key-value substrate."""

from .audit_repository import KeyValueAuditLogRepository
from .record_repository import KeyValueRecordRepository, same_id

__all__ = ["KeyValueAuditLogRepository", "KeyValueRecordRepository", "same_id"]
