"""
Name: Audit Log Service Tests

Responsibilities:
  - Fail-closed behaviour (no actor, storage failure)
  - Cap at max entries, newest first
  - Filters, search, pagination, statistics
  - CSV export format and pruning by age
"""

import logging
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from bizstore.application.audit_log import AUDIT_CSV_HEADER, AuditLogService, format_action
from bizstore.domain.audit import Actor, AuditLogEntry
from bizstore.domain.clock import to_iso, utc_now
from bizstore.infrastructure.repositories import KeyValueAuditLogRepository
from bizstore.infrastructure.storage import StorageQuotaExceededError

pytestmark = pytest.mark.unit


def _entry(n: int, *, days_ago: int = 0, **overrides) -> AuditLogEntry:
    values = dict(
        id=f"audit_{n}",
        actor_id="u1",
        actor_name="Abebe",
        actor_email="a@x.com",
        action="create",
        target_type="project",
        target_id=str(n),
        timestamp=to_iso(utc_now() - timedelta(days=days_ago)),
        details={},
        origin="127.0.0.1",
    )
    values.update(overrides)
    return AuditLogEntry(**values)


class TestLogAction:
    def test_records_actor_and_target(self, audit_log, actor):
        entry = audit_log.log_action("update", "client", 7, {"status": "Active"})

        assert entry is not None
        assert entry.id.startswith("audit_")
        assert entry.actor_name == actor.name
        assert entry.actor_email == actor.email
        assert entry.origin == actor.origin
        assert entry.target_id == "7"
        assert entry.timestamp.endswith("Z")
        assert audit_log.get_audit_log() == [entry]

    def test_without_actor_returns_none_and_warns(self, audit_log, no_actor, caplog):
        with caplog.at_level(logging.WARNING, logger="bizstore"):
            assert audit_log.log_action("create", "project", 1) is None

        assert audit_log.get_audit_log() == []
        assert any(r.levelno == logging.WARNING for r in caplog.records)

    def test_storage_failure_is_swallowed(self, caplog):
        repository = MagicMock()
        repository.prepend.side_effect = StorageQuotaExceededError("k", 10, 5)
        service = AuditLogService(
            repository, actor_provider=lambda: Actor(id="u1", name="A")
        )

        with caplog.at_level(logging.WARNING, logger="bizstore"):
            assert service.log_action("create", "project", 1) is None

    def test_default_origin_when_actor_has_none(self, audit_log):
        service = AuditLogService(
            audit_log._repository,
            default_origin="127.0.0.1",
            actor_provider=lambda: Actor(id="u1", name="A"),
        )
        assert service.log_action("create", "project", 1).origin == "127.0.0.1"

    def test_details_are_sanitized(self, audit_log, actor):
        entry = audit_log.log_action("create", "project", 1, {"when": utc_now(), "tags": ("a",)})
        assert isinstance(entry.details["when"], str)
        assert entry.details["tags"] == ["a"]


class TestRetentionCap:
    def test_1001_actions_keep_newest_1000(self, audit_log, actor):
        for n in range(1001):
            audit_log.log_action("create", "project", n)

        entries = audit_log.get_audit_log()

        assert len(entries) == 1000
        assert entries[0].target_id == "1000"
        assert entries[-1].target_id == "1"
        assert all(e.target_id != "0" for e in entries)

    def test_custom_cap(self, store):
        service = AuditLogService(
            KeyValueAuditLogRepository(store),
            max_entries=3,
            actor_provider=lambda: Actor(id="u1", name="A"),
        )
        for n in range(5):
            service.log_action("create", "project", n)

        assert [e.target_id for e in service.get_audit_log()] == ["4", "3", "2"]


class TestQueries:
    @pytest.fixture
    def populated(self, store):
        repository = KeyValueAuditLogRepository(store)
        entries = [
            _entry(1, days_ago=10, action="create", target_type="project"),
            _entry(2, days_ago=5, action="update", target_type="client", actor_id="u2", actor_name="Sara"),
            _entry(3, days_ago=1, action="delete", target_type="project", details={"name": "Bridge"}),
        ]
        for e in entries:
            repository.prepend(e, max_entries=1000)
        return AuditLogService(repository, default_page_size=2)

    def test_newest_first(self, populated):
        assert [e.id for e in populated.get_audit_log()] == ["audit_3", "audit_2", "audit_1"]

    def test_filters_are_anded(self, populated):
        result = populated.get_audit_log(action="delete", target_type="project")
        assert [e.id for e in result] == ["audit_3"]
        assert populated.get_audit_log(action="delete", target_type="client") == []

    def test_actor_filter(self, populated):
        assert [e.id for e in populated.get_audit_log(actor_id="u2")] == ["audit_2"]

    def test_date_range(self, populated):
        start = utc_now() - timedelta(days=7)
        end = utc_now() - timedelta(days=2)
        assert [e.id for e in populated.get_audit_log(start_date=start, end_date=end)] == ["audit_2"]

    def test_search_covers_details_and_actor(self, populated):
        assert [e.id for e in populated.get_audit_log(search="BRIDGE")] == ["audit_3"]
        assert [e.id for e in populated.get_audit_log(search="sara")] == ["audit_2"]

    def test_paginated_uses_default_page_size(self, populated):
        page = populated.get_audit_log_paginated(page=2)

        assert page.total == 3
        assert page.total_pages == 2
        assert [e.id for e in page.items] == ["audit_1"]

    def test_paginated_rejects_zero_page_size(self, populated):
        with pytest.raises(ValueError):
            populated.get_audit_log_paginated(page=1, page_size=0)

    def test_statistics(self, populated):
        stats = populated.get_statistics()

        assert stats.total_entries == 3
        assert stats.action_counts == {"create": 1, "update": 1, "delete": 1}
        assert stats.target_type_counts == {"project": 2, "client": 1}
        assert stats.actor_counts == {"Abebe": 2, "Sara": 1}
        assert [e.id for e in stats.recent_activity] == ["audit_3", "audit_2", "audit_1"]
        assert stats.to_dict()["totalEntries"] == 3

    def test_export_to_csv(self, populated):
        csv_text = populated.export_to_csv(action="delete")
        lines = csv_text.split("\n")

        assert lines[0] == ",".join(AUDIT_CSV_HEADER)
        assert len(lines) == 2
        assert lines[1].startswith('"')
        assert '"{""name"": ""Bridge""}"' in lines[1]
        assert lines[1].endswith('"127.0.0.1"')

    def test_write_csv_file(self, populated, tmp_path):
        path = populated.write_csv_file(tmp_path)

        assert path.name.startswith("audit_log_")
        assert path.suffix == ".csv"
        assert path.read_text(encoding="utf-8").startswith("Timestamp,Actor Name")


class TestClearOldEntries:
    def test_removes_only_old_entries(self, store):
        repository = KeyValueAuditLogRepository(store)
        for n, days in ((1, 200), (2, 100), (3, 10)):
            repository.prepend(_entry(n, days_ago=days), max_entries=1000)
        service = AuditLogService(repository)

        assert service.clear_old_entries(90) == 2
        assert [e.id for e in service.get_audit_log()] == ["audit_3"]
        assert service.clear_old_entries(90) == 0


def test_format_action():
    assert format_action("create") == "Created"
    assert format_action("login") == "Logged In"
    assert format_action("bulk_delete") == "Bulk_delete"
