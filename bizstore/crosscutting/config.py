"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults that match the admin panel behavior (namespace, caps, intervals)

Collaborators:
  - container.py: reads settings to pick the storage backend and build services
  - crosscutting/logger.py: reads log_level / log_json
  - cli.py: reads output directories and confirmation defaults

Constraints:
  - No business logic — pure configuration

Notes:
  - Uses pydantic-settings for env parsing and validation
  - Singleton via lru_cache
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKENDS = {"memory", "file", "redis"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_env: Application environment (development/test/production)
        log_level: Logging level name (default: INFO)
        log_json: Emit JSON log lines (default: True)
        storage_backend: memory|file|redis (default: file)
        storage_path: JSON document used by the file backend
        redis_url: Redis connection string (required for the redis backend)
        storage_namespace: Prefix for every substrate key (default: db_admin_)
        storage_quota_bytes: Max persisted size in bytes (default: 5MB)
        storage_retry_max_attempts: Attempts for transient Redis failures (default: 3)
        storage_retry_base_delay_seconds: Initial backoff delay (default: 0.2s)
        storage_retry_max_delay_seconds: Backoff ceiling (default: 2s)
        audit_log_max_entries: Audit log ceiling (default: 1000)
        audit_retention_days: Default age for audit pruning (default: 90)
        audit_origin: Origin recorded when the actor context has none
        auto_backup_enabled: Start the auto-backup timer (default: False)
        auto_backup_interval_seconds: Auto-backup period (default: 30 min)
        notifications_max_items: Notifications kept (default: 50)
        default_page_size: Page size for audit listings (default: 20)
        export_dir: Default directory for backup / export files
    """

    # Environment
    app_env: str = "development"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Storage substrate
    storage_backend: str = "file"
    storage_path: str = "./data/bizstore.json"
    redis_url: str = ""
    storage_namespace: str = "db_admin_"
    storage_quota_bytes: int = 5 * 1024 * 1024  # 5MB
    storage_retry_max_attempts: int = 3
    storage_retry_base_delay_seconds: float = 0.2
    storage_retry_max_delay_seconds: float = 2.0

    # Audit log
    audit_log_max_entries: int = 1000
    audit_retention_days: int = 90
    audit_origin: str = "127.0.0.1"

    # Backups
    auto_backup_enabled: bool = False
    auto_backup_interval_seconds: float = 30 * 60

    # Panels
    notifications_max_items: int = 50
    default_page_size: int = 20

    # Files
    export_dir: str = "."

    @field_validator("storage_backend")
    @classmethod
    def storage_backend_valid(cls, v: str) -> str:
        backend = (v or "file").strip().lower()
        if backend not in _BACKENDS:
            raise ValueError("storage_backend must be memory, file, or redis")
        return backend

    @field_validator(
        "storage_quota_bytes",
        "storage_retry_max_attempts",
        "audit_log_max_entries",
        "notifications_max_items",
        "default_page_size",
    )
    @classmethod
    def limits_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("limits must be greater than 0")
        return v

    @field_validator("audit_retention_days")
    @classmethod
    def retention_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("audit_retention_days must be >= 0")
        return v

    @field_validator("auto_backup_interval_seconds")
    @classmethod
    def interval_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("auto_backup_interval_seconds must be greater than 0")
        return v

    @model_validator(mode="after")
    def validate_backend_requirements(self):
        if self.storage_backend == "redis" and not self.redis_url.strip():
            raise ValueError("REDIS_URL is required when STORAGE_BACKEND=redis")
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings singleton (validated on first call)
    """
    return Settings()
