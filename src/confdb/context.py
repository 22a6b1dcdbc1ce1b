"""Process-wide database context.

One Database (and therefore one BackendStore and one in-memory document) is
held per process. Call `DatabaseContext.initialize()` at process start, or let
the first `get_database()` call initialize it from the environment. The
instance lives until `reset()` is called or the process exits.
"""
import logging
from typing import Optional

from .backend import BackendStore
from .database import Database
from .datamodel import ModelRegistry
from .settings import DatabaseSettings
from .utils.audit_log import ChangeTracker, setup_audit_logging

logger = logging.getLogger(__name__)


class DatabaseContext:
    """Holder of the process-wide Database."""

    _settings: Optional[DatabaseSettings] = None
    _database: Optional[Database] = None

    @classmethod
    def initialize(
        cls,
        settings: Optional[DatabaseSettings] = None,
        registry: Optional[ModelRegistry] = None,
    ) -> Database:
        """Create the process-wide Database.

        Args:
            settings: Database settings (default: from environment)
            registry: Data models (default: loaded from settings.datamodels_dir)

        Raises:
            BackendError: If the configuration document cannot be loaded
        """
        settings = settings or DatabaseSettings.from_env()

        if registry is None:
            registry = ModelRegistry(settings.datamodels_dir)

        backend = BackendStore(
            settings.document_path,
            revisions_dir=settings.revisions_dir,
            versioning=settings.versioning,
            max_revisions=settings.max_revisions,
            lock_timeout=settings.lock_timeout,
        )
        backend.load()

        tracker = None
        if settings.audit_log_dir is not None:
            setup_audit_logging(settings.audit_log_dir)
            tracker = ChangeTracker()

        cls._settings = settings
        cls._database = Database(backend, registry, tracker)

        logger.info(
            f"Database initialized: document={settings.document_path}, "
            f"models={len(registry)}, versioning={settings.versioning}"
        )
        return cls._database

    @classmethod
    def get_database(cls) -> Database:
        """Get the process-wide Database, initializing it on first use."""
        if cls._database is None:
            cls.initialize()
        return cls._database

    @classmethod
    def get_registry(cls) -> ModelRegistry:
        """Get the model registry of the process-wide Database."""
        return cls.get_database().registry

    @classmethod
    def get_settings(cls) -> Optional[DatabaseSettings]:
        return cls._settings

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._database is not None

    @classmethod
    def reset(cls) -> None:
        """Drop the process-wide Database (for testing)."""
        cls._settings = None
        cls._database = None


def get_database() -> Database:
    """Get the process-wide Database."""
    return DatabaseContext.get_database()
