"""Database facade: the public API of the configuration database.

Combines the data model registry, the query builder and the backend store:

    db = Database(backend, registry)
    iface = registry.create_object("network.interface", {"name": "eth0"})
    db.set(iface)                              # insert
    db.get("network.interface")                # [<ConfigObject network.interface ...>]
    db.exists("network.interface", "name", ["eth0", "eth1"])
    db.delete(iface)

Every failure surfaces as a DatabaseException carrying the attempted path.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Union

from .backend import NOT_FOUND, BackendError, BackendStore, Revision
from .datamodel import DataModel, ModelKind, ModelRegistry
from .objects import ConfigObject
from .query import PathSyntaxError, QueryBuilder, candidate_values
from .utils.audit_log import ChangeTracker

logger = logging.getLogger(__name__)


class DatabaseException(Exception):
    """Raised when a database operation fails."""

    def __init__(self, message: str, path: Optional[str] = None, detail: Optional[str] = None):
        self.message = message
        self.path = path
        self.detail = detail

        text = message
        if path:
            text += f" (path: {path})"
        if detail:
            text += f": {detail}"
        super().__init__(text)


@dataclass
class CheckResult:
    """Outcome of an integrity check."""
    ok: bool
    message: str = ""
    path: Optional[str] = None

    def raise_for_failure(self) -> None:
        """Raise a DatabaseException if the check failed."""
        if not self.ok:
            raise DatabaseException(self.message, path=self.path)


def _is_empty(data: Any) -> bool:
    return data is None or (isinstance(data, (dict, list, str)) and not data)


class Database:
    """Model-aware access to the configuration document."""

    def __init__(
        self,
        backend: BackendStore,
        registry: ModelRegistry,
        tracker: Optional[ChangeTracker] = None,
    ):
        """
        Args:
            backend: Store owning the document
            registry: Data models available to this database
            tracker: Audit trail for mutations (optional)
        """
        self._backend = backend
        self._registry = registry
        self._tracker = tracker

    @property
    def backend(self) -> BackendStore:
        return self._backend

    @property
    def registry(self) -> ModelRegistry:
        return self._registry

    def get_model(self, model_id: str) -> DataModel:
        return self._registry.get_model(model_id)

    def create(self, model_id: str, values: Optional[dict[str, Any]] = None) -> ConfigObject:
        """Create a new (not yet stored) object of a model."""
        return self._registry.create_object(model_id, values)

    @contextmanager
    def _backend_errors(self, message: str, path: Optional[str] = None) -> Iterator[None]:
        """Wrap backend failures (I/O, parsing, locking) into DatabaseException."""
        try:
            yield
        except (BackendError, PathSyntaxError) as e:
            raise DatabaseException(message, path=path, detail=str(e)) from e

    def _check_property(self, model: DataModel, prop: str) -> None:
        if not model.has_property(prop):
            raise DatabaseException(f"Model '{model.id}' has no property '{prop}'")

    def _load(self, model: DataModel, data: Any, path: str) -> ConfigObject:
        """Wrap raw node data into a ConfigObject."""
        try:
            return ConfigObject.from_document(model, data)
        except ValueError as e:
            raise DatabaseException(
                f"Invalid stored data for '{model.id}'", path=path, detail=str(e)
            ) from e

    def _require_identifier(self, obj: ConfigObject) -> None:
        if obj.is_iterable() and not obj.get_identifier():
            raise DatabaseException(
                f"Object '{obj.model_id}' has no {obj.get_model().idproperty} and cannot be addressed"
            )

    def _audit(self, operation: str, success: bool, **kwargs) -> None:
        if self._tracker is not None:
            self._tracker.log_change(operation, success, **kwargs)

    # === Read ===

    def get(self, model_id: str, *args: Any) -> Union[ConfigObject, list[ConfigObject]]:
        """Read objects of a model.

        For a collection model without arguments, returns every object in
        document order (an empty list when there are none). Otherwise returns
        the single object addressed by the model (and identifier).

        Raises:
            DatabaseException: If a single object cannot be found
        """
        model = self._registry.get_model(model_id)
        path = QueryBuilder(model).build_get_query(*args)

        if model.kind == ModelKind.COLLECTION and not args:
            with self._backend_errors("Failed to read objects", path):
                data = self._backend.get_list(path)
            if data is NOT_FOUND:
                return []
            return [self._load(model, item, path) for item in data]

        with self._backend_errors("Failed to read object", path):
            data = self._backend.get(path)
        if data is NOT_FOUND or _is_empty(data):
            raise DatabaseException(f"Object '{model_id}' not found", path=path)
        return self._load(model, data, path)

    def get_by_filter(self, model_id: str, prop: str, value: Union[Any, Iterable[Any]]) -> list[ConfigObject]:
        """Objects of a model whose `prop` equals any of the candidate values."""
        model = self._registry.get_model(model_id)
        self._check_property(model, prop)
        if not candidate_values(value):
            return []

        path = QueryBuilder(model).build_filter_query(prop, value)
        with self._backend_errors("Failed to read objects", path):
            data = self._backend.get_list(path)
        if data is NOT_FOUND:
            return []
        return [self._load(model, item, path) for item in data]

    # === Write ===

    def set(self, obj: ConfigObject) -> ConfigObject:
        """Store an object.

        New objects of a collection model are inserted after their siblings;
        a singleton missing from the document is created below its parent;
        everything else is replaced in place.

        Raises:
            DatabaseException: If the backend rejects the write
        """
        self._require_identifier(obj)
        model = obj.get_model()
        qb = QueryBuilder(model)
        path = qb.build_set_query(obj)
        values = obj.get_assoc()

        if model.kind == ModelKind.COLLECTION and obj.is_new():
            operation = "insert"
            identity_path = qb.build_get_query(obj.get_identifier())
            with self._backend_errors("Failed to insert object", identity_path):
                duplicate = self._backend.exists(identity_path)
            if duplicate:
                raise DatabaseException(
                    f"Object '{obj.model_id}' with {model.idproperty} "
                    f"'{obj.get_identifier()}' already exists",
                    path=identity_path,
                )
            # Checked again under the write lock
            success = self._backend.set(path, {qb.element_name: values}, unless_exists=identity_path)
        elif model.kind == ModelKind.SINGLETON and not self._singleton_exists(path):
            operation = "insert"
            path = model.parent_xpath
            success = self._backend.set(path, {model.element_name: values}, repeated=False)
        else:
            operation = "replace"
            success = self._backend.replace(path, values)

        error = None if success else self._backend.last_error
        self._audit(operation, success, model_id=obj.model_id, path=path, after_state=values, error=error)

        if not success:
            raise DatabaseException(f"Failed to {operation} object '{obj.model_id}'", path=path, detail=error)

        obj.mark_persisted()
        logger.info(f"Stored {obj.model_id} ({operation}) at {path}")
        return obj

    def _singleton_exists(self, path: str) -> bool:
        with self._backend_errors("Failed to read object", path):
            return self._backend.exists(path)

    def delete(self, obj: ConfigObject) -> None:
        """Delete an object.

        Raises:
            DatabaseException: If nothing matched or the backend failed
        """
        self._require_identifier(obj)
        path = QueryBuilder(obj.get_model()).build_delete_query(obj)
        success = self._backend.delete(path)

        error = None if success else self._backend.last_error
        self._audit("delete", success, model_id=obj.model_id, path=path, before_state=obj.get_assoc(), error=error)

        if not success:
            raise DatabaseException(f"Failed to delete object '{obj.model_id}'", path=path, detail=error)

        logger.info(f"Deleted {obj.model_id} at {path}")

    # === Integrity checks ===

    def exists(self, model_id: str, prop: str, value: Union[Any, Iterable[Any]]) -> bool:
        """Whether any object of a model has `prop` equal to any candidate value."""
        model = self._registry.get_model(model_id)
        self._check_property(model, prop)
        if not candidate_values(value):
            return False

        path = QueryBuilder(model).build_exists_query(prop, value)
        with self._backend_errors("Failed to check existence", path):
            return self._backend.exists(path)

    def check_unique(self, obj: ConfigObject, prop: str) -> CheckResult:
        """Check that no OTHER object of the model shares `obj`'s value of `prop`."""
        model = obj.get_model()
        value = obj.get(prop)

        # A singleton has no siblings to clash with
        if model.kind == ModelKind.SINGLETON:
            return CheckResult(ok=True)

        path = QueryBuilder(model).build_is_unique_query(obj, prop)
        with self._backend_errors("Failed to check uniqueness", path):
            conflict = self._backend.exists(path)

        if conflict:
            return CheckResult(
                ok=False,
                message=f"The value '{value}' of property '{prop}' is already used by another '{obj.model_id}' object",
                path=path,
            )
        return CheckResult(ok=True, path=path)

    def is_unique(self, obj: ConfigObject, prop: str, quiet: bool = True) -> bool:
        """Whether `obj`'s value of `prop` is unique among objects of its model.

        Raises:
            DatabaseException: If not unique and `quiet` is False
        """
        result = self.check_unique(obj, prop)
        if not quiet:
            result.raise_for_failure()
        return result.ok

    def check_referenced(self, obj: ConfigObject) -> CheckResult:
        """Check that no node references `obj`; `ok` means unreferenced.

        Raises:
            DatabaseException: If the model is not referenceable
        """
        if not obj.is_referenceable():
            raise DatabaseException(f"The object '{obj.model_id}' is not referenceable")

        path = QueryBuilder(obj.get_model()).build_is_referenced_query(obj)
        with self._backend_errors("Failed to check references", path):
            referenced = self._backend.exists(path)

        if referenced:
            return CheckResult(
                ok=False,
                message=f"The object '{obj.model_id}' ({obj.get_identifier()}) is referenced by other objects",
                path=path,
            )
        return CheckResult(ok=True, path=path)

    def is_referenced(self, obj: ConfigObject, quiet: bool = True) -> bool:
        """Whether any other node references `obj` by its identifier.

        Raises:
            DatabaseException: If the model is not referenceable, or if the
                object is referenced and `quiet` is False
        """
        result = self.check_referenced(obj)
        if not quiet:
            result.raise_for_failure()
        return not result.ok

    # === Revisions ===

    def list_revisions(self) -> list[Revision]:
        """Stored revisions, oldest first."""
        return self._backend.list_revisions()

    def delete_revision(self, name: str) -> None:
        """Delete a single revision."""
        if not self._backend.delete_revision(name):
            raise DatabaseException(f"Failed to delete revision '{name}'", detail=self._backend.last_error)

    def diff_revision(self, name: str) -> str:
        """Unified diff from a revision to the live document."""
        with self._backend_errors(f"Failed to diff revision '{name}'"):
            return self._backend.diff_revision(name)

    def unlink_revisions(self) -> None:
        """Remove all revisions."""
        success = self._backend.unlink_revisions()
        error = None if success else self._backend.last_error
        self._audit("unlink_revisions", success, error=error)
        if not success:
            raise DatabaseException("Failed to remove revisions", detail=error)

    def revert(self, filename: Optional[str] = None, prune_newer_only: bool = False) -> None:
        """Restore the document from a revision (default: the most recent).

        Afterwards the revision history is cleared, or with `prune_newer_only`
        only the revisions newer than the restored one are removed.

        Raises:
            DatabaseException: Carrying the backend's error if the revert failed
        """
        success = self._backend.revert(filename, prune_newer_only=prune_newer_only)
        error = None if success else self._backend.last_error
        self._audit("revert", success, path=filename, error=error)
        if not success:
            raise DatabaseException("Failed to revert changes", detail=error)
