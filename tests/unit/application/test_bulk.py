"""
Name: Bulk / Import / Export Tests

Responsibilities:
  - Import JSON / CSV: defaults, time-based ids, importedAt, error results
  - Bulk delete / status update: one summary audit entry, idempotent reruns
  - Merge duplicates
  - Export formats and export files
"""

import json

import pytest

from bizstore.application.bulk import BulkOperationsService, export_to_csv, export_to_json
from bizstore.application.results import ErrorCode
from bizstore.infrastructure.repositories import KeyValueRecordRepository
from bizstore.infrastructure.storage import InMemoryKeyValueStore, StorageUnavailableError

pytestmark = pytest.mark.unit


class TestImportJson:
    def test_import_fills_defaults_and_stamps(self, bulk_service, clients):
        result = bulk_service.import_from_json("clients", '[{"name":"X"}]')

        assert result.to_dict() == {"success": True, "count": 1}
        [record] = clients.list()
        assert record["name"] == "X"
        assert record["email"] == "N/A"
        assert record["status"] == "Active"
        assert record["importedAt"].endswith("Z")
        assert isinstance(record["id"], int)
        assert record["id"] > 1_000_000_000_000

    def test_ids_are_unique_within_a_batch(self, bulk_service, clients):
        rows = [{"name": f"C{i}"} for i in range(50)]

        assert bulk_service.import_from_json("clients", rows).count == 50
        ids = [c["id"] for c in clients.list()]
        assert len(set(ids)) == 50

    def test_ids_in_payload_are_replaced(self, bulk_service, clients):
        clients.add({"name": "Existing"})
        bulk_service.import_from_json("clients", [{"id": 1, "name": "Imported"}])

        ids = [c["id"] for c in clients.list()]
        assert ids[0] == 1
        assert ids[1] != 1

    def test_non_array_is_rejected(self, bulk_service, clients):
        result = bulk_service.import_from_json("clients", '{"name": "X"}')

        assert result.to_dict() == {
            "success": False,
            "error": "Data must be an array",
            "code": "VALIDATION_ERROR",
        }
        assert clients.list() == []

    def test_invalid_json_is_rejected(self, bulk_service):
        result = bulk_service.import_from_json("clients", "[{oops")

        assert result.success is False
        assert result.error.message.startswith("Invalid JSON")

    def test_invalid_element_rejects_whole_payload(self, bulk_service, clients):
        result = bulk_service.import_from_json(
            "clients", [{"name": "Ok"}, "nope", {"name": "Bad", "email": "not-an-email"}]
        )

        assert result.success is False
        assert "[1]: element must be an object" in result.error.message
        assert "[2]: Valid email is required" in result.error.message
        assert clients.list() == []

    def test_unknown_collection(self, bulk_service):
        result = bulk_service.import_from_json("analytics", [])

        assert result.success is False
        assert result.error.code == ErrorCode.VALIDATION_ERROR

    def test_empty_array_imports_nothing(self, bulk_service, clients):
        assert bulk_service.import_from_json("clients", []).to_dict() == {
            "success": True,
            "count": 0,
        }

    def test_quota_is_reported(self, registry):
        store = InMemoryKeyValueStore(quota_bytes=64)
        service = BulkOperationsService(
            {"clients": KeyValueRecordRepository(store, registry.get("clients"))}
        )

        result = service.import_from_json("clients", [{"name": "X" * 100}])

        assert result.success is False
        assert result.error.code == ErrorCode.QUOTA_EXCEEDED

    def test_storage_read_failure_is_a_result(self, registry):
        class UnreadableStore(InMemoryKeyValueStore):
            def get(self, key, default=None):
                raise StorageUnavailableError("backend down")

        service = BulkOperationsService(
            {"clients": KeyValueRecordRepository(UnreadableStore(), registry.get("clients"))}
        )

        result = service.import_from_json("clients", '[{"name":"X"}]')

        assert result.success is False
        assert result.error.code == ErrorCode.STORAGE_ERROR

    def test_import_is_audited_once(self, bulk_service, audit_log, actor):
        bulk_service.import_from_json("clients", [{"name": "A"}, {"name": "B"}])

        [entry] = audit_log.get_audit_log()
        assert entry.action == "import"
        assert entry.target_type == "client"
        assert entry.details == {"count": 2, "format": "json"}


class TestImportCsv:
    def test_csv_rows_become_records(self, bulk_service, repositories):
        text = 'name,color\n"Steel","#111"\n\n"Glass","#222"\n'

        result = bulk_service.import_from_csv("tags", text)

        assert result.count == 2
        names = [t["name"] for t in repositories["tags"].list()]
        assert names == ["Steel", "Glass"]
        assert repositories["tags"].list()[0]["count"] == 0

    def test_exported_csv_can_be_reimported(self, bulk_service, repositories):
        tags = repositories["tags"]
        tags.add({"name": 'Say "hi", twice'})
        exported = bulk_service.export_all("tags", "csv")

        tags.delete(1)
        assert bulk_service.import_from_csv("tags", exported).success is True
        assert tags.list()[0]["name"] == 'Say "hi", twice'

    def test_oversized_field_is_a_validation_result(self, bulk_service, repositories):
        text = "name\n" + "x" * 200_000 + "\n"

        result = bulk_service.import_from_csv("tags", text)

        assert result.success is False
        assert result.error.code == ErrorCode.VALIDATION_ERROR
        assert result.error.message.startswith("Invalid CSV")
        assert repositories["tags"].list() == []


class TestBulkMutations:
    @pytest.fixture
    def seeded(self, projects):
        for name in ("A", "B", "C"):
            projects.add({"name": name})
        return projects

    def test_bulk_delete_logs_one_summary_entry(self, bulk_service, seeded, audit_log, actor):
        result = bulk_service.bulk_delete("projects", [1, 3, 99])

        assert result.to_dict() == {"success": True, "count": 2}
        assert [p["id"] for p in seeded.list()] == [2]
        entries = audit_log.get_audit_log(action="bulk_delete")
        assert len(entries) == 1
        assert entries[0].details["count"] == 2
        assert entries[0].details["requested"] == 3

    def test_bulk_delete_rerun_is_idempotent(self, bulk_service, seeded, audit_log, actor):
        bulk_service.bulk_delete("projects", [1, 3])
        result = bulk_service.bulk_delete("projects", [1, 3])

        assert result.affected == 0
        assert len(audit_log.get_audit_log(action="bulk_delete")) == 1

    def test_bulk_update_status(self, bulk_service, seeded, audit_log, actor):
        result = bulk_service.bulk_update_status("projects", ["1", 2], "Completed")

        assert result.affected == 2
        assert seeded.get(1)["status"] == "Completed"
        assert seeded.get(1)["updatedAt"].endswith("Z")
        assert seeded.get(3)["status"] == "Planning"
        [entry] = audit_log.get_audit_log(action="bulk_update_status")
        assert entry.details["status"] == "Completed"

    def test_bulk_update_status_requires_status(self, bulk_service, seeded):
        result = bulk_service.bulk_update_status("projects", [1], "  ")

        assert result.success is False
        assert result.error.code == ErrorCode.VALIDATION_ERROR

    def test_unknown_collection_is_a_result(self, bulk_service):
        result = bulk_service.bulk_delete("nope", [1])

        assert result.success is False
        assert result.error.code == ErrorCode.VALIDATION_ERROR

    def test_merge_duplicates(self, bulk_service, seeded, audit_log, actor):
        result = bulk_service.merge_duplicates("projects", 1, [1, 2, 3])

        assert result.affected == 2
        assert [p["id"] for p in seeded.list()] == [1]
        [entry] = audit_log.get_audit_log(action="merge")
        assert entry.details["keepId"] == 1

    def test_merge_requires_existing_keep(self, bulk_service, seeded):
        result = bulk_service.merge_duplicates("projects", 42, [1])

        assert result.error.code == ErrorCode.NOT_FOUND
        assert len(seeded.list()) == 3


class TestExport:
    def test_csv_quoting(self):
        text = export_to_csv([{"id": 1, "name": 'Tower "A"', "tags": ["x"], "done": None}])

        assert text == 'id,name,tags,done\n"1","Tower ""A""","[""x""]",""'

    def test_empty_export_is_none(self):
        assert export_to_csv([]) is None
        assert export_to_json([]) is None

    def test_bulk_export_selects_ids(self, bulk_service, projects):
        for name in ("A", "B", "C"):
            projects.add({"name": name})

        data = json.loads(bulk_service.bulk_export("projects", ["2", 3], "json"))

        assert [p["name"] for p in data] == ["B", "C"]

    def test_bad_format(self, bulk_service, projects):
        projects.add({"name": "A"})
        with pytest.raises(ValueError):
            bulk_service.export_all("projects", "xml")

    def test_write_export_file(self, bulk_service, projects, tmp_path):
        assert bulk_service.write_export_file("projects", tmp_path) is None

        projects.add({"name": "A"})
        path = bulk_service.write_export_file("projects", tmp_path, "csv")

        assert path.name.startswith("projects_export_")
        assert path.suffix == ".csv"
        assert path.read_text(encoding="utf-8").startswith("id,name,")
