"""Storage backend for the configuration document.

This package provides:
- BackendStore: the YAML document with path-based primitives
- RevisionManager/Revision: snapshot files taken before each mutation
- FileLock: advisory lock serializing writers across processes

Files managed:
    /etc/confdb/
    ├── config.yaml          # Live document
    ├── config.yaml.lock     # Advisory lock file
    └── revisions/           # config.yaml.<sequence>.<timestamp>
"""

from .errors import (
    BackendError,
    DuplicateNodeError,
    LockTimeout,
    NoMatchError,
    RevisionNotFoundError,
)
from .locking import FileLock
from .revisions import Revision, RevisionManager
from .store import BackendStore, NOT_FOUND

__all__ = [
    "BackendStore",
    "NOT_FOUND",
    "Revision",
    "RevisionManager",
    "FileLock",
    "BackendError",
    "LockTimeout",
    "NoMatchError",
    "DuplicateNodeError",
    "RevisionNotFoundError",
]
