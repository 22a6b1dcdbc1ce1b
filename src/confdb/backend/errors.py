"""Errors raised inside the storage backend."""


class BackendError(Exception):
    """Exception raised for document storage failures."""
    pass


class LockTimeout(BackendError):
    """Raised when the document lock cannot be acquired in time."""
    pass


class NoMatchError(BackendError):
    """Raised when a path expression matches no node."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No node matches {path}")


class DuplicateNodeError(BackendError):
    """Raised when an insert would create a node that already exists."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Node already exists: {path}")


class RevisionNotFoundError(BackendError):
    """Raised when a named revision does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Revision '{name}' not found")
