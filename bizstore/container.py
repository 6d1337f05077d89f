"""
===============================================================================
TARJETA CRC — bizstore/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer dependencias (substrate, repositorios, servicios) siguiendo DIP.
  - Exponer factories para la CLI y para los paneles que consumen el core.
  - Mantener singletons con caching (lru_cache): un repositorio (y un lock)
    por colección en todo el proceso.
  - Centralizar decisiones runtime basadas en Settings (backend, caps).

Colaboradores:
  - bizstore.crosscutting.config.get_settings
  - bizstore.infrastructure.storage.create_store
  - bizstore.infrastructure.repositories.*
  - bizstore.application.*

Patrones aplicados:
  - Composition Root
  - Lazy singletons con lru_cache

Notas:
  - Este archivo NO contiene lógica de negocio.
  - reset_container() limpia los singletons (tests / cambio de settings).
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, List

from .application.audit_log import AuditLogService
from .application.backup import AutoBackupScheduler, BackupService
from .application.bulk import BulkOperationsService
from .application.notifications import NotificationService
from .application.site_settings import SiteSettingsService
from .crosscutting.config import get_settings
from .domain.collections import CollectionRegistry, default_registry
from .infrastructure.repositories import (
    KeyValueAuditLogRepository,
    KeyValueRecordRepository,
)
from .infrastructure.storage import KeyValueBackend, create_store


@lru_cache
def get_store() -> KeyValueBackend:
    return create_store(get_settings())


@lru_cache
def get_registry() -> CollectionRegistry:
    return default_registry(
        notifications_max_items=get_settings().notifications_max_items
    )


@lru_cache
def get_audit_log() -> AuditLogService:
    settings = get_settings()
    repository = KeyValueAuditLogRepository(
        get_store(), key=f"{settings.storage_namespace}audit_log"
    )
    return AuditLogService(
        repository,
        max_entries=settings.audit_log_max_entries,
        default_page_size=settings.default_page_size,
        default_origin=settings.audit_origin,
    )


@lru_cache
def get_repositories() -> Dict[str, KeyValueRecordRepository]:
    settings = get_settings()
    store = get_store()
    audit = get_audit_log()
    return {
        spec.name: KeyValueRecordRepository(
            store, spec, namespace=settings.storage_namespace, audit=audit
        )
        for spec in get_registry().specs()
    }


def get_repository(name: str) -> KeyValueRecordRepository:
    """R: Valida el nombre contra el registry (UnknownCollectionError)."""
    get_registry().get(name)
    return get_repositories()[name]


@lru_cache
def get_backup_service() -> BackupService:
    return BackupService(
        get_store(),
        get_repositories(),
        namespace=get_settings().storage_namespace,
    )


@lru_cache
def get_bulk_service() -> BulkOperationsService:
    return BulkOperationsService(get_repositories(), audit=get_audit_log())


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService(get_repository("notifications"))


@lru_cache
def get_site_settings_service() -> SiteSettingsService:
    return SiteSettingsService(
        get_store(),
        namespace=get_settings().storage_namespace,
        audit=get_audit_log(),
    )


@lru_cache
def get_auto_backup_scheduler() -> AutoBackupScheduler:
    return AutoBackupScheduler(
        get_backup_service(),
        interval_seconds=get_settings().auto_backup_interval_seconds,
    )


def seed_defaults() -> List[str]:
    """Write seed records for collections whose key does not exist yet."""
    return [name for name, repo in get_repositories().items() if repo.seed_defaults()]


def start_background_tasks() -> AutoBackupScheduler | None:
    """Start the auto-backup timer when enabled in settings."""
    if not get_settings().auto_backup_enabled:
        return None
    scheduler = get_auto_backup_scheduler()
    scheduler.start()
    return scheduler


def reset_container() -> None:
    if get_auto_backup_scheduler.cache_info().currsize:
        get_auto_backup_scheduler().stop()
    for factory in (
        get_store,
        get_registry,
        get_audit_log,
        get_repositories,
        get_backup_service,
        get_bulk_service,
        get_notification_service,
        get_site_settings_service,
        get_auto_backup_scheduler,
    ):
        factory.cache_clear()
