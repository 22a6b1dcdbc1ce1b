"""Hierarchical configuration database.

Stores all configuration state in one YAML document, addressed by path
expressions derived from declarative data models:

    from confdb import DatabaseContext, DatabaseSettings

    db = DatabaseContext.initialize(DatabaseSettings(
        document_path="/etc/confdb/config.yaml",
        datamodels_dir="/usr/share/confdb/datamodels",
    ))
    iface = db.create("network.interface", {"name": "eth0"})
    db.set(iface)
    db.get("network.interface")
    db.revert()
"""

from .backend import BackendError, BackendStore, NOT_FOUND, Revision
from .context import DatabaseContext, get_database
from .database import CheckResult, Database, DatabaseException
from .datamodel import DataModel, ModelKind, ModelNotFoundError, ModelRegistry
from .objects import ConfigObject
from .query import PathSyntaxError, QueryBuilder
from .settings import DatabaseSettings

__version__ = "0.1.0"

__all__ = [
    "BackendError",
    "BackendStore",
    "NOT_FOUND",
    "Revision",
    "DatabaseContext",
    "get_database",
    "CheckResult",
    "Database",
    "DatabaseException",
    "DataModel",
    "ModelKind",
    "ModelNotFoundError",
    "ModelRegistry",
    "ConfigObject",
    "PathSyntaxError",
    "QueryBuilder",
    "DatabaseSettings",
]
