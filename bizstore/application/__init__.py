"""Application services: audit log, backup/restore, bulk/import/export, panels."""

from .audit_log import AuditLogService, AuditStatistics, format_action
from .backup import AutoBackupScheduler, BackupService, BackupSnapshot
from .bulk import BulkOperationsService, export_to_csv, export_to_json
from .notifications import NotificationService
from .results import BulkResult, ErrorCode, ImportResult, OperationError, RestoreResult
from .site_settings import SiteSettingsService

__all__ = [
    "AuditLogService",
    "AuditStatistics",
    "AutoBackupScheduler",
    "BackupService",
    "BackupSnapshot",
    "BulkOperationsService",
    "BulkResult",
    "ErrorCode",
    "ImportResult",
    "NotificationService",
    "OperationError",
    "RestoreResult",
    "SiteSettingsService",
    "export_to_csv",
    "export_to_json",
    "format_action",
]
