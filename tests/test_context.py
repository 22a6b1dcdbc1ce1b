"""Tests for settings and the process-wide database context."""
import pytest

from confdb import get_database
from confdb.context import DatabaseContext
from confdb.settings import DatabaseSettings


@pytest.fixture
def env(monkeypatch, document_path, models_dir, tmp_path):
    """Environment pointing at the test document and models."""
    for name in (
        "CONFDB_REVISIONS_DIR",
        "CONFDB_VERSIONING",
        "CONFDB_MAX_REVISIONS",
        "CONFDB_LOCK_TIMEOUT",
        "CONFDB_AUDIT_LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONFDB_DOCUMENT", str(document_path))
    monkeypatch.setenv("CONFDB_DATAMODELS_DIR", str(models_dir))
    return monkeypatch


class TestDatabaseSettings:
    """Tests for DatabaseSettings."""

    def test_defaults(self, tmp_path):
        settings = DatabaseSettings(document_path=tmp_path / "config.yaml")

        assert settings.versioning is True
        assert settings.max_revisions == 0
        assert settings.effective_revisions_dir == tmp_path / "revisions"

    def test_from_env(self, env, document_path, tmp_path):
        """Test settings are read from environment variables."""
        env.setenv("CONFDB_VERSIONING", "0")
        env.setenv("CONFDB_MAX_REVISIONS", "25")
        env.setenv("CONFDB_LOCK_TIMEOUT", "2.5")
        env.setenv("CONFDB_REVISIONS_DIR", str(tmp_path / "history"))

        settings = DatabaseSettings.from_env()

        assert settings.document_path == document_path
        assert settings.versioning is False
        assert settings.max_revisions == 25
        assert settings.lock_timeout == 2.5
        assert settings.effective_revisions_dir == tmp_path / "history"
        assert settings.audit_log_dir is None

    def test_from_file(self, tmp_path):
        """Test relative paths resolve against the settings file."""
        path = tmp_path / "confdb.yaml"
        path.write_text(
            "document: config.yaml\n"
            "datamodels_dir: models\n"
            "versioning: false\n"
            "max_revisions: 5\n"
        )

        settings = DatabaseSettings.from_file(path)

        assert settings.document_path == tmp_path / "config.yaml"
        assert settings.datamodels_dir == tmp_path / "models"
        assert settings.versioning is False
        assert settings.max_revisions == 5

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DatabaseSettings.from_file(tmp_path / "missing.yaml")

    def test_invalid_values(self, tmp_path):
        with pytest.raises(ValueError):
            DatabaseSettings(document_path=tmp_path / "c.yaml", max_revisions=-1)
        with pytest.raises(ValueError):
            DatabaseSettings(document_path=tmp_path / "c.yaml", lock_timeout=-1)


class TestDatabaseContext:
    """Tests for DatabaseContext."""

    def test_initialize(self, document_path, registry):
        db = DatabaseContext.initialize(DatabaseSettings(document_path=document_path), registry)

        assert DatabaseContext.is_initialized()
        assert DatabaseContext.get_database() is db
        assert DatabaseContext.get_registry() is registry
        assert DatabaseContext.get_settings().document_path == document_path

    def test_lazy_from_env(self, env):
        """Test the first access initializes from the environment."""
        db = get_database()

        assert get_database() is db
        assert db.get("service.ssh").get("port") == 22

    def test_reset(self, document_path, registry):
        DatabaseContext.initialize(DatabaseSettings(document_path=document_path), registry)

        DatabaseContext.reset()

        assert not DatabaseContext.is_initialized()
        assert DatabaseContext.get_settings() is None

    def test_missing_document(self, tmp_path, registry):
        """Test initialization fails when the document cannot be loaded."""
        from confdb.backend import BackendError

        with pytest.raises(BackendError):
            DatabaseContext.initialize(DatabaseSettings(document_path=tmp_path / "missing.yaml"), registry)

        assert not DatabaseContext.is_initialized()

    def test_audit_trail(self, document_path, registry, tmp_path):
        """Test mutations are recorded when an audit directory is set."""
        settings = DatabaseSettings(document_path=document_path, audit_log_dir=tmp_path / "audit")
        db = DatabaseContext.initialize(settings, registry)

        db.set(db.create("network.interface", {"name": "eth0"}))

        log = (tmp_path / "audit" / "audit.log").read_text()
        assert '"operation": "insert"' in log
        assert '"model_id": "network.interface"' in log
