"""Backend store owning the configuration document.

Handles:
- Reading/writing the YAML document (atomic replace on write)
- Path-based get/set/replace/delete/exists primitives
- Revision snapshots before every mutation
- Inter-process locking around load -> mutate -> save cycles

Mutating primitives never raise for storage failures: they return False and
keep the reason in `last_error`.
"""
import copy
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional, Union

import yaml

from ..query.path import Node, PathSyntaxError, select
from ..utils.logging_config import timed, timed_section
from .errors import BackendError, DuplicateNodeError, NoMatchError
from .locking import FileLock
from .revisions import Revision, RevisionManager

logger = logging.getLogger(__name__)


class _NotFound:
    """Sentinel type for reads that match nothing."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


def _assign(node: Node, value: Any) -> None:
    """Overwrite the value at a node's location."""
    if node.is_root:
        raise BackendError("Cannot overwrite the document root")
    if node.index is None:
        node.container[node.key] = value
    else:
        node.container[node.key][node.index] = value


def _remove(node: Node) -> None:
    if node.is_root:
        raise BackendError("Cannot delete the document root")
    if node.index is None:
        del node.container[node.key]
    else:
        del node.container[node.key][node.index]


class BackendStore:
    """Owns the configuration document and its revisions.

    Usage:
        store = BackendStore(Path("/etc/confdb/config.yaml"))
        store.load()
        store.get_list("/config/network/interfaces/interface")
        if not store.delete("/config/network/interfaces/interface[uuid='u1']"):
            print(store.last_error)
    """

    def __init__(
        self,
        document_path: Union[str, Path],
        revisions_dir: Optional[Union[str, Path]] = None,
        versioning: bool = True,
        max_revisions: int = 0,
        lock_timeout: float = 10.0,
    ):
        """
        Initialize the backend store.

        Args:
            document_path: Path of the YAML document (must already exist)
            revisions_dir: Directory for revision files (default: <document dir>/revisions)
            versioning: Snapshot the document before each mutation (default: True)
            max_revisions: Keep at most this many revisions (0 = unlimited)
            lock_timeout: Seconds to wait for the document lock
        """
        self.document_path = Path(document_path)
        self.versioning = versioning
        self.revisions = RevisionManager(
            self.document_path,
            Path(revisions_dir) if revisions_dir else None,
            max_revisions=max_revisions,
        )
        self.lock = FileLock(
            self.document_path.with_name(self.document_path.name + ".lock"),
            timeout=lock_timeout,
        )
        self._data: Optional[dict] = None
        self._signature: Optional[tuple] = None
        self._last_error: Optional[str] = None

    @property
    def label(self) -> str:
        return self.document_path.name

    @property
    def last_error(self) -> Optional[str]:
        """Message of the most recent failed operation."""
        return self._last_error

    # === Document I/O ===

    def _stat_signature(self) -> Optional[tuple]:
        try:
            st = self.document_path.stat()
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _parse(self, text: str, source: str) -> dict:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise BackendError(f"Failed to parse {source}: {e}") from e
        if not isinstance(data, dict):
            raise BackendError(f"{source} does not contain a configuration document")
        return data

    def _read_document(self) -> dict:
        if not self.document_path.exists():
            raise BackendError(f"Configuration document not found: {self.document_path}")
        try:
            text = self.document_path.read_text(encoding="utf-8")
        except OSError as e:
            raise BackendError(f"Failed to read {self.document_path}: {e}") from e
        return self._parse(text, str(self.document_path))

    def _write_text(self, text: str) -> None:
        """Atomically replace the document file with `text`."""
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.document_path.name}.",
            suffix=".tmp",
            dir=self.document_path.parent,
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            if self.document_path.exists():
                shutil.copymode(self.document_path, tmp_path)
            os.replace(tmp_path, self.document_path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def _write_document(self, document: dict) -> None:
        self._write_text(
            yaml.safe_dump(document, default_flow_style=False, sort_keys=False, allow_unicode=True)
        )

    def _remember(self, document: dict) -> None:
        self._data = document
        self._signature = self._stat_signature()

    def load(self) -> None:
        """Read the persisted document into memory.

        Raises:
            BackendError: If the document is missing or corrupt
        """
        with self.lock.hold(exclusive=False):
            self._remember(self._read_document())
        logger.debug(f"Loaded configuration document {self.document_path}")

    def _refresh(self) -> dict:
        """Reload the document if it changed on disk since the last load."""
        if self._data is None or self._stat_signature() != self._signature:
            self.load()
        return self._data

    @property
    def document(self) -> dict:
        """Deep copy of the current document."""
        return copy.deepcopy(self._refresh())

    # === Read primitives ===

    @timed("backend.get")
    def get(self, path: str) -> Any:
        """Raw data of the first node matching `path`, or NOT_FOUND."""
        nodes = select(self._refresh(), path)
        if not nodes:
            return NOT_FOUND
        return copy.deepcopy(nodes[0].value)

    @timed("backend.get_list")
    def get_list(self, path: str) -> Any:
        """Raw data of every node matching `path`, or NOT_FOUND."""
        nodes = select(self._refresh(), path)
        if not nodes:
            return NOT_FOUND
        return [copy.deepcopy(node.value) for node in nodes]

    @timed("backend.exists")
    def exists(self, path: str) -> bool:
        """Whether any node matches `path`."""
        return len(select(self._refresh(), path)) > 0

    # === Mutating primitives ===

    def _mutate(self, operation: str, path: str, apply: Callable[[dict], None]) -> bool:
        """Run load -> apply -> snapshot -> save under the exclusive lock."""
        self._last_error = None
        try:
            with self.lock.hold(exclusive=True):
                document = self._read_document()
                apply(document)
                if self.versioning:
                    self.revisions.create()
                self._write_document(document)
                self._remember(document)
        except (BackendError, PathSyntaxError, OSError) as e:
            self._last_error = str(e)
            logger.error(f"{operation} failed for {path}: {e}")
            return False

        logger.debug(f"{operation} {path}")
        return True

    @timed("backend.set")
    def set(
        self,
        path: str,
        values: dict[str, Any],
        repeated: bool = True,
        unless_exists: Optional[str] = None,
    ) -> bool:
        """Append new nodes below every node matching `path`.

        Each `name: data` item of `values` becomes a new `name` sibling after
        the existing ones. With `repeated=False` the node is stored as a
        single element and must not exist yet.

        Args:
            path: Parent node(s)
            values: Element name -> node data
            repeated: Store nodes as list items (siblings)
            unless_exists: Fail if this path matches anything, checked under
                the same lock as the write
        """
        def apply(document: dict) -> None:
            if unless_exists and select(document, unless_exists):
                raise DuplicateNodeError(unless_exists)

            parents = select(document, path)
            if not parents:
                raise NoMatchError(path)

            for parent in parents:
                target = parent.value
                if target is None:
                    target = {}
                    _assign(parent, target)
                if not isinstance(target, dict):
                    raise BackendError(f"Cannot insert below non-element node {path}")

                for name, data in values.items():
                    existing = target.get(name)
                    if not repeated:
                        if existing is not None:
                            raise DuplicateNodeError(f"{path}/{name}")
                        target[name] = copy.deepcopy(data)
                    elif existing is None:
                        target[name] = [copy.deepcopy(data)]
                    elif isinstance(existing, list):
                        existing.append(copy.deepcopy(data))
                    else:
                        target[name] = [existing, copy.deepcopy(data)]

        return self._mutate("set", path, apply)

    @timed("backend.replace")
    def replace(self, path: str, values: Any) -> bool:
        """Overwrite every node matching `path` with `values`."""
        def apply(document: dict) -> None:
            nodes = select(document, path)
            if not nodes:
                raise NoMatchError(path)
            for node in nodes:
                _assign(node, copy.deepcopy(values))

        return self._mutate("replace", path, apply)

    @timed("backend.delete")
    def delete(self, path: str) -> bool:
        """Remove every node matching `path`; False if nothing matched."""
        def apply(document: dict) -> None:
            nodes = select(document, path)
            if not nodes:
                raise NoMatchError(path)
            # Remove list items from the highest index down so positions stay valid
            for node in sorted(
                nodes,
                key=lambda n: n.index if n.index is not None else -1,
                reverse=True,
            ):
                _remove(node)

        return self._mutate("delete", path, apply)

    # === Revisions ===

    def list_revisions(self) -> list[Revision]:
        """All revisions, oldest first."""
        return self.revisions.list_revisions()

    def delete_revision(self, name: str) -> bool:
        """Delete a single revision."""
        self._last_error = None
        try:
            with self.lock.hold(exclusive=True):
                self.revisions.delete(name)
        except (BackendError, OSError) as e:
            self._last_error = str(e)
            logger.error(f"Failed to delete revision {name}: {e}")
            return False
        return True

    def unlink_revisions(self) -> bool:
        """Remove all revisions; the live document is untouched."""
        self._last_error = None
        try:
            with self.lock.hold(exclusive=True):
                self.revisions.unlink_all()
        except (BackendError, OSError) as e:
            self._last_error = str(e)
            logger.error(f"Failed to remove revisions: {e}")
            return False
        return True

    def diff_revision(self, name: str) -> str:
        """Unified diff from a revision to the live document.

        Raises:
            BackendError: If the revision or the document cannot be read
        """
        with self.lock.hold(exclusive=False):
            revision = self.revisions.get(name)
            current = self.document_path.read_text(encoding="utf-8")
            return self.revisions.diff(revision, current)

    def revert(self, filename: Optional[str] = None, prune_newer_only: bool = False) -> bool:
        """Restore the live document from a revision.

        Args:
            filename: Revision to restore (default: the most recent one)
            prune_newer_only: Only drop revisions newer than the restored one
                instead of the whole history

        Returns:
            True on success; on failure see `last_error`
        """
        self._last_error = None
        try:
            with timed_section("backend.revert", target=self.label, revision=filename or "latest"):
                with self.lock.hold(exclusive=True):
                    if filename:
                        revision = self.revisions.get(filename)
                    else:
                        revision = self.revisions.latest()
                        if revision is None:
                            raise BackendError("No revisions available to revert to")

                    text = self.revisions.read(revision)
                    document = self._parse(text, revision.name)
                    self._write_text(text)
                    self._remember(document)

                    if prune_newer_only:
                        self.revisions.delete_newer(revision)
                    else:
                        self.revisions.unlink_all()
        except (BackendError, OSError) as e:
            self._last_error = str(e)
            logger.error(f"Revert failed: {e}")
            return False

        logger.info(f"Reverted {self.document_path} to revision {revision.name}")
        return True
