"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Provide reusable fixtures (in-memory substrate, actor context, services)
  - Keep tests isolated from .env files and from the process-wide container
  - Register the `unit` marker

Collaborators:
  - pytest: Test framework
  - bizstore.infrastructure / bizstore.application: objects under test

Notes:
  - Every fixture is function-scoped for per-test isolation
"""

import os
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_JSON", "false")

from bizstore.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

from bizstore.application.audit_log import AuditLogService  # noqa: E402
from bizstore.application.backup import BackupService  # noqa: E402
from bizstore.application.bulk import BulkOperationsService  # noqa: E402
from bizstore.context import clear_context, set_actor  # noqa: E402
from bizstore.domain.audit import Actor  # noqa: E402
from bizstore.domain.collections import default_registry  # noqa: E402
from bizstore.infrastructure.repositories import (  # noqa: E402
    KeyValueAuditLogRepository,
    KeyValueRecordRepository,
)
from bizstore.infrastructure.storage import InMemoryKeyValueStore  # noqa: E402


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


# ============================================================================
# Actor context
# ============================================================================


@pytest.fixture
def actor() -> Actor:
    """R: Authenticated actor for the duration of the test."""
    current = Actor(
        id="admin-1", name="Abebe Kebede", email="abebe@example.com", origin="10.0.0.7"
    )
    set_actor(current)
    yield current
    clear_context()


@pytest.fixture
def no_actor():
    """R: Explicitly anonymous context."""
    clear_context()
    yield
    clear_context()


# ============================================================================
# Substrate / repositories
# ============================================================================


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def audit_log(store) -> AuditLogService:
    return AuditLogService(
        KeyValueAuditLogRepository(store, key="db_admin_audit_log"),
        max_entries=1000,
        default_origin="127.0.0.1",
    )


@pytest.fixture
def repositories(store, registry, audit_log) -> dict:
    return {
        spec.name: KeyValueRecordRepository(store, spec, audit=audit_log)
        for spec in registry.specs()
    }


@pytest.fixture
def projects(repositories) -> KeyValueRecordRepository:
    return repositories["projects"]


@pytest.fixture
def clients(repositories) -> KeyValueRecordRepository:
    return repositories["clients"]


# ============================================================================
# Services
# ============================================================================


@pytest.fixture
def backup_service(store, repositories) -> BackupService:
    return BackupService(store, repositories)


@pytest.fixture
def bulk_service(repositories, audit_log) -> BulkOperationsService:
    return BulkOperationsService(repositories, audit=audit_log)
