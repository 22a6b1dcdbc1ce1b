"""Tests for the audit trail."""
import pytest

from confdb.database import Database, DatabaseException
from confdb.utils.audit_log import (
    ChangeRecord,
    ChangeTracker,
    get_recent_changes,
    setup_audit_logging,
)


@pytest.fixture
def audit_file(tmp_path):
    return setup_audit_logging(tmp_path / "audit")


class TestChangeRecord:
    """Tests for ChangeRecord serialization."""

    def test_json(self):
        record = ChangeRecord(
            timestamp="2026-10-19T10:00:00+00:00",
            operation="replace",
            model_id="service.ssh",
            path="/config/services/ssh",
            user="admin",
            success=True,
            after_state={"enable": True, "port": 22},
        )

        parsed = ChangeRecord.from_json(record.to_json())

        assert parsed == record


class TestChangeTracker:
    """Tests for ChangeTracker and reading the log back."""

    def test_log_change(self, audit_file):
        """Test a change is written as one JSON line."""
        tracker = ChangeTracker(user="admin")

        record = tracker.log_change("delete", True, model_id="network.interface", path="/x")

        lines = audit_file.read_text().splitlines()
        assert len(lines) == 1
        assert ChangeRecord.from_json(lines[0]) == record
        assert record.user == "admin"

    def test_recent_changes_filters(self, audit_file):
        tracker = ChangeTracker()
        tracker.log_change("insert", True, model_id="network.interface")
        tracker.log_change("delete", True, model_id="network.interface")
        tracker.log_change("replace", True, model_id="service.ssh")

        assert [r.operation for r in get_recent_changes(audit_file)] == ["replace", "delete", "insert"]
        assert len(get_recent_changes(audit_file, model_id="network.interface")) == 2
        assert [r.model_id for r in get_recent_changes(audit_file, operation="replace")] == ["service.ssh"]
        assert len(get_recent_changes(audit_file, limit=1)) == 1

    def test_skips_malformed_lines(self, audit_file):
        ChangeTracker().log_change("insert", True)
        with open(audit_file, "a") as f:
            f.write("not json\n\n")

        assert len(get_recent_changes(audit_file)) == 1

    def test_missing_log(self, tmp_path):
        assert get_recent_changes(tmp_path / "none.log") == []


class TestDatabaseAudit:
    """Tests for audit records written by Database."""

    def test_mutations_recorded(self, store, registry, audit_file):
        """Test successes and failures are both recorded."""
        db = Database(store, registry, ChangeTracker(user="tester"))

        obj = db.set(db.create("network.interface", {"name": "eth0"}))
        db.delete(obj)
        with pytest.raises(DatabaseException):
            db.delete(obj)

        records = get_recent_changes(audit_file)

        assert [(r.operation, r.success) for r in records] == [
            ("delete", False),
            ("delete", True),
            ("insert", True),
        ]
        assert records[-1].after_state["name"] == "eth0"
        assert records[1].before_state["uuid"] == obj.get_identifier()
        assert records[0].error
        assert all(r.user == "tester" for r in records)

    def test_revert_recorded(self, store, registry, audit_file):
        db = Database(store, registry, ChangeTracker())
        db.set(db.get("service.ssh"))

        db.revert()

        assert get_recent_changes(audit_file, operation="revert")[0].success
