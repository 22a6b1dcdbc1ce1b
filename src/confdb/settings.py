"""Database settings.

Environment variables:
- CONFDB_DOCUMENT: Path of the configuration document (default: ~/.confdb/config.yaml)
- CONFDB_REVISIONS_DIR: Revision directory (default: <document dir>/revisions)
- CONFDB_VERSIONING: Set to "0" to disable revisions (default: "1")
- CONFDB_MAX_REVISIONS: Revisions to keep, 0 = unlimited (default: 0)
- CONFDB_LOCK_TIMEOUT: Seconds to wait for the document lock (default: 10)
- CONFDB_DATAMODELS_DIR: Directory of data model YAML files
- CONFDB_AUDIT_LOG_DIR: Enables the audit trail in this directory
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


DEFAULT_DOCUMENT = Path.home() / ".confdb" / "config.yaml"
DEFAULT_LOCK_TIMEOUT = 10.0

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class DatabaseSettings:
    """Configuration of the database and its backend."""
    document_path: Path = field(default_factory=lambda: DEFAULT_DOCUMENT)
    revisions_dir: Optional[Path] = None
    versioning: bool = True
    max_revisions: int = 0
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    datamodels_dir: Optional[Path] = None
    audit_log_dir: Optional[Path] = None

    def __post_init__(self):
        self.document_path = Path(self.document_path).expanduser()
        if self.revisions_dir is not None:
            self.revisions_dir = Path(self.revisions_dir).expanduser()
        if self.datamodels_dir is not None:
            self.datamodels_dir = Path(self.datamodels_dir).expanduser()
        if self.audit_log_dir is not None:
            self.audit_log_dir = Path(self.audit_log_dir).expanduser()
        if self.max_revisions < 0:
            raise ValueError(f"max_revisions must be >= 0, got {self.max_revisions}")
        if self.lock_timeout < 0:
            raise ValueError(f"lock_timeout must be >= 0, got {self.lock_timeout}")

    @property
    def effective_revisions_dir(self) -> Path:
        return self.revisions_dir or self.document_path.parent / "revisions"

    @classmethod
    def from_env(cls) -> "DatabaseSettings":
        """Load settings from environment variables."""
        revisions_dir = os.environ.get("CONFDB_REVISIONS_DIR")
        datamodels_dir = os.environ.get("CONFDB_DATAMODELS_DIR")
        audit_log_dir = os.environ.get("CONFDB_AUDIT_LOG_DIR")

        return cls(
            document_path=Path(os.environ.get("CONFDB_DOCUMENT", str(DEFAULT_DOCUMENT))),
            revisions_dir=Path(revisions_dir) if revisions_dir else None,
            versioning=os.environ.get("CONFDB_VERSIONING", "1").lower() in _TRUE_VALUES,
            max_revisions=int(os.environ.get("CONFDB_MAX_REVISIONS", "0")),
            lock_timeout=float(os.environ.get("CONFDB_LOCK_TIMEOUT", str(DEFAULT_LOCK_TIMEOUT))),
            datamodels_dir=Path(datamodels_dir) if datamodels_dir else None,
            audit_log_dir=Path(audit_log_dir) if audit_log_dir else None,
        )

    @classmethod
    def from_file(cls, path: Path) -> "DatabaseSettings":
        """Load settings from a YAML file.

        Relative paths in the file are resolved against the file's directory.

        ```yaml
        document: config.yaml
        revisions_dir: revisions
        versioning: true
        max_revisions: 50
        lock_timeout: 5
        datamodels_dir: datamodels
        ```
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")

        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        def resolve(value: Optional[str]) -> Optional[Path]:
            if value is None:
                return None
            p = Path(value).expanduser()
            return p if p.is_absolute() else path.parent / p

        return cls(
            document_path=resolve(raw.get("document")) or DEFAULT_DOCUMENT,
            revisions_dir=resolve(raw.get("revisions_dir")),
            versioning=bool(raw.get("versioning", True)),
            max_revisions=int(raw.get("max_revisions", 0)),
            lock_timeout=float(raw.get("lock_timeout", DEFAULT_LOCK_TIMEOUT)),
            datamodels_dir=resolve(raw.get("datamodels_dir")),
            audit_log_dir=resolve(raw.get("audit_log_dir")),
        )
