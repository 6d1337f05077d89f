"""
Name: Record Repository Tests

Responsibilities:
  - Id allocation (strictly increasing, never reused)
  - Defaults, validation, merge-update and delete semantics
  - Audit emission per mutation (and none for batch helpers)
  - Collection hooks (tasks / notes) and prepend + cap collections
"""

import threading
from unittest.mock import MagicMock

import pytest

from bizstore.crosscutting.exceptions import RecordValidationError
from bizstore.infrastructure.repositories import KeyValueRecordRepository
from bizstore.infrastructure.storage import InMemoryKeyValueStore, StorageQuotaExceededError

pytestmark = pytest.mark.unit


class _KeyRejectingStore(InMemoryKeyValueStore):
    """In-memory store whose writes to one key hit the quota."""

    def __init__(self, rejected_key):
        super().__init__()
        self.rejected_key = rejected_key

    def set(self, key, value):
        if key == self.rejected_key:
            raise StorageQuotaExceededError(key, 1, 0)
        super().set(key, value)


class TestIds:
    def test_sequential_ids_start_at_one(self, projects):
        ids = [projects.add({"name": f"P{i}"})["id"] for i in range(5)]
        assert ids == [1, 2, 3, 4, 5]

    def test_ids_are_not_reused_after_delete(self, projects):
        projects.add({"name": "A"})
        second = projects.add({"name": "B"})
        assert projects.delete(second["id"]) is True

        assert projects.add({"name": "C"})["id"] == 3

    def test_id_in_partial_is_ignored(self, projects):
        assert projects.add({"id": 99, "name": "A"})["id"] == 1

    def test_existing_ids_drive_next_id(self, store, registry):
        store.set("db_admin_clients", [{"id": 41, "name": "Old"}])
        repo = KeyValueRecordRepository(store, registry.get("clients"))

        assert repo.add({"name": "New"})["id"] == 42


class TestAdd:
    def test_defaults_are_filled(self, projects):
        record = projects.add({"name": "Tower A", "budget": "5000 ETB"})

        assert record["client"] == "N/A"
        assert record["status"] == "Planning"
        assert record["progress"] == 0
        assert record["budget"] == "5000 ETB"
        assert record["category"] == []
        assert projects.get(record["id"]) == record

    def test_invalid_record_is_rejected_without_side_effects(self, projects, store):
        with pytest.raises(RecordValidationError) as exc_info:
            projects.add({"name": "", "progress": 300})

        assert "name is required" in exc_info.value.errors
        assert projects.list() == []
        assert store.get("db_admin_projects:seq") is None

    def test_returned_record_is_a_copy(self, projects):
        record = projects.add({"name": "A"})
        record["name"] = "mutated"
        assert projects.get(1)["name"] == "A"

    def test_quota_failure_propagates(self, registry):
        tiny = InMemoryKeyValueStore(quota_bytes=30)
        repo = KeyValueRecordRepository(tiny, registry.get("projects"))

        with pytest.raises(StorageQuotaExceededError):
            repo.add({"name": "Tower A"})
        assert repo.list() == []

    def test_quota_on_seq_key_leaves_nothing_saved(self, registry):
        store = _KeyRejectingStore("db_admin_tags:seq")
        repo = KeyValueRecordRepository(store, registry.get("tags"))

        with pytest.raises(StorageQuotaExceededError):
            repo.add({"name": "a"})
        assert repo.list() == []

    def test_failed_collection_write_only_burns_an_id(self, registry):
        store = _KeyRejectingStore("db_admin_tags")
        repo = KeyValueRecordRepository(store, registry.get("tags"))

        with pytest.raises(StorageQuotaExceededError):
            repo.add({"name": "a"})
        assert repo.list() == []

        store.rejected_key = None
        assert repo.add({"name": "b"})["id"] == 2


class TestUpdateDelete:
    def test_update_merges_shallowly(self, projects):
        projects.add({"name": "A", "status": "Planning"})
        updated = projects.update(1, {"status": "Active", "progress": 40})

        assert updated["name"] == "A"
        assert updated["status"] == "Active"
        assert updated["progress"] == 40

    def test_update_missing_returns_none(self, projects):
        assert projects.update(123, {"name": "x"}) is None

    def test_empty_update_is_idempotent(self, projects):
        projects.add({"name": "A"})
        once = projects.update(1, {})
        twice = projects.update(1, {})
        assert once == twice == projects.get(1)

    def test_update_cannot_change_id(self, projects):
        projects.add({"name": "A"})
        assert projects.update(1, {"id": 7, "name": "B"})["id"] == 1

    def test_update_rejects_blanking_required_fields(self, projects):
        projects.add({"name": "A"})
        with pytest.raises(RecordValidationError):
            projects.update(1, {"name": ""})
        assert projects.get(1)["name"] == "A"

    def test_delete_then_get_is_none(self, projects):
        projects.add({"name": "A"})
        assert projects.delete(1) is True
        assert projects.get(1) is None
        assert projects.delete(1) is False

    def test_ids_given_as_text_match(self, projects):
        projects.add({"name": "A"})
        assert projects.get("1")["name"] == "A"

    def test_bool_ids_match_nothing(self, projects):
        projects.add({"name": "A"})

        assert projects.get(True) is None
        assert projects.update(True, {"name": "B"}) is None
        assert projects.delete(True) is False
        assert projects.get(1)["name"] == "A"


class TestAudit:
    def test_each_mutation_emits_one_entry(self, store, registry):
        audit = MagicMock()
        repo = KeyValueRecordRepository(store, registry.get("projects"), audit=audit)

        created = repo.add({"name": "A"})
        repo.update(1, {"status": "Active"})
        repo.delete(1)
        repo.delete(1)
        repo.update(1, {"status": "x"})

        assert [c.args[0] for c in audit.log_action.call_args_list] == [
            "create",
            "update",
            "delete",
        ]
        audit.log_action.assert_any_call("create", "project", 1, created)
        audit.log_action.assert_any_call("update", "project", 1, {"status": "Active"})

    def test_batch_helpers_do_not_audit(self, store, registry):
        audit = MagicMock()
        repo = KeyValueRecordRepository(store, registry.get("projects"), audit=audit)
        repo.append_many([{"id": 1, "name": "A"}, {"id": 2, "name": "B"}])
        audit.reset_mock()

        assert repo.update_many([1, 2, 3], {"status": "Active"}) == 2
        assert repo.delete_many([1, 3]) == 1

        audit.log_action.assert_not_called()
        assert [r["id"] for r in repo.list()] == [2]

    def test_unaudited_collection(self, store, registry):
        audit = MagicMock()
        repo = KeyValueRecordRepository(store, registry.get("notifications"), audit=audit)
        repo.add({"message": "hello"})
        audit.log_action.assert_not_called()

    def test_entries_reach_the_audit_log(self, projects, audit_log, actor):
        projects.add({"name": "Tower A"})

        entries = audit_log.get_audit_log()
        assert len(entries) == 1
        assert entries[0].action == "create"
        assert entries[0].target_type == "project"
        assert entries[0].target_id == "1"
        assert entries[0].actor_id == actor.id

    def test_mutation_succeeds_without_actor(self, projects, audit_log, no_actor):
        assert projects.add({"name": "Tower A"})["id"] == 1
        assert audit_log.get_audit_log() == []


class TestHooksAndShapes:
    def test_task_completion_is_stamped(self, repositories):
        tasks = repositories["tasks"]
        tasks.add({"title": "Pour concrete"})
        assert tasks.get(1)["completedDate"] is None

        updated = tasks.update(1, {"status": "Completed"})
        assert updated["completedDate"] is not None

    def test_note_last_modified_only_changes_on_real_updates(self, repositories):
        notes = repositories["notes"]
        created = notes.add({"title": "Site visit"})

        assert notes.update(1, {})["lastModified"] == created["lastModified"]
        assert notes.update(1, {"content": "ok"})["lastModified"] is not None

    def test_prepend_collection_keeps_newest_within_cap(self, store):
        from bizstore.domain.collections import default_registry

        spec = default_registry(notifications_max_items=3).get("notifications")
        repo = KeyValueRecordRepository(store, spec)
        for i in range(5):
            repo.add({"message": f"m{i}"})

        assert [n["message"] for n in repo.list()] == ["m4", "m3", "m2"]

    def test_find_duplicates_scenario(self, projects):
        for name in ("Tower A", "tower a", "Bridge B"):
            projects.add({"name": name})

        pairs = projects.find_duplicates("name")

        assert len(pairs) == 1
        assert pairs[0]["original"]["name"] == "Tower A"
        assert pairs[0]["duplicate"]["name"] == "tower a"

    def test_search_composes_filter_sort_and_paginate(self, projects):
        for name, budget in (("Tower", 300), ("Bridge", 100), ("Tower B", 200)):
            projects.add({"name": name, "budget": budget})

        page = projects.search({"name": "tower"}, sort_by="budget", page=1, per_page=1)

        assert page.total == 2
        assert page.total_pages == 2
        assert page.items[0]["name"] == "Tower B"

    def test_seed_defaults_only_when_absent(self, repositories):
        categories = repositories["categories"]
        assert categories.seed_defaults() is True
        assert [c["name"] for c in categories.list()] == [
            "Residential",
            "Commercial",
            "Industrial",
        ]
        assert categories.seed_defaults() is False
        assert categories.add({"name": "Civil"})["id"] == 4

    def test_concurrent_adds_do_not_lose_records(self, projects):
        def worker(prefix):
            for i in range(10):
                projects.add({"name": f"{prefix}{i}"})

        threads = [threading.Thread(target=worker, args=(p,)) for p in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ids = [r["id"] for r in projects.list()]
        assert len(ids) == 40
        assert sorted(ids) == list(range(1, 41))
