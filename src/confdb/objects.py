"""In-memory representation of configuration objects."""
import copy
import logging
import uuid
from typing import Any, Optional, Union

from .datamodel import DataModel, ModelKind, PropertyDef

logger = logging.getLogger(__name__)


class ConfigObject:
    """A typed configuration entity bound to a data model.

    New objects start from the model's defaults; collection objects get a
    fresh uuid4 identifier. Objects loaded from the database are built with
    `from_document()` and are not new.

    Nested properties can be addressed with dotted names, e.g.
    `obj.get("dns.servers")`.
    """

    def __init__(self, model: Union[DataModel, str], registry=None):
        """
        Args:
            model: DataModel or model id
            registry: ModelRegistry used to resolve a model id
                (default: the registry of the active DatabaseContext)
        """
        if isinstance(model, str):
            if registry is None:
                from .context import DatabaseContext
                registry = DatabaseContext.get_registry()
            model = registry.get_model(model)

        self._model = model
        self._properties: dict[str, Any] = model.get_defaults()
        self._new = True

        if model.is_iterable():
            self._properties[model.idproperty] = str(uuid.uuid4())

    @classmethod
    def from_document(cls, model: DataModel, data: Any) -> "ConfigObject":
        """Build an object from raw data loaded from the document.

        The identifier is taken from `data` only; a stored item without one
        keeps an empty identifier.

        Raises:
            ValueError: If a stored value cannot be converted
        """
        obj = cls(model)
        if model.is_iterable():
            obj._properties[model.idproperty] = model.get_property(model.idproperty).get_default()
        if isinstance(data, dict):
            obj.set_assoc(data)
        obj._new = False
        return obj

    # === Model information ===

    def get_model(self) -> DataModel:
        return self._model

    @property
    def model_id(self) -> str:
        return self._model.id

    @property
    def kind(self) -> ModelKind:
        return self._model.kind

    def is_iterable(self) -> bool:
        return self._model.is_iterable()

    def is_referenceable(self) -> bool:
        return self._model.is_referenceable()

    def is_new(self) -> bool:
        return self._new

    def mark_persisted(self) -> None:
        """Mark the object as stored in the database."""
        self._new = False

    def get_identifier(self) -> Optional[str]:
        """Value of the model's id property, if it has one."""
        if self._model.idproperty is None:
            return None
        return self._properties.get(self._model.idproperty)

    # === Property access ===

    def _resolve(self, name: str) -> tuple[dict, str, PropertyDef]:
        """Find the container, key and definition of a (dotted) property."""
        parts = name.split(".")
        container = self._properties
        key = parts[0]
        definition = self._model.get_property(key)

        # Walk down nested objects
        for part in parts[1:]:
            if part not in definition.properties:
                raise KeyError(f"Model '{self.model_id}' has no property '{name}'")
            container = container[key]
            key = part
            definition = definition.properties[part]

        return container, key, definition

    def get(self, name: str) -> Any:
        """Get a property value.

        Raises:
            KeyError: If the model has no such property
        """
        container, key, _ = self._resolve(name)
        return copy.deepcopy(container[key])

    def set(self, name: str, value: Any) -> None:
        """Set a property value, converted to the property's type.

        Raises:
            KeyError: If the model has no such property
            ValueError: If the value cannot be converted
        """
        container, key, definition = self._resolve(name)
        container[key] = definition.coerce(value)

    def set_assoc(self, values: dict[str, Any], strict: bool = False) -> None:
        """Set several properties at once.

        Unknown keys raise KeyError when `strict`, otherwise they are ignored.
        """
        for name, value in values.items():
            if not self._model.has_property(name):
                if strict:
                    raise KeyError(f"Model '{self.model_id}' has no property '{name}'")
                logger.debug(f"Ignoring unknown property '{name}' for {self.model_id}")
                continue
            self.set(name, value)

    def get_assoc(self) -> dict[str, Any]:
        """All property values as a plain dict."""
        return copy.deepcopy(self._properties)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfigObject):
            return NotImplemented
        return self.model_id == other.model_id and self._properties == other._properties

    def __repr__(self) -> str:
        ident = self.get_identifier()
        suffix = f" {ident}" if ident is not None else ""
        state = "new" if self._new else "stored"
        return f"<ConfigObject {self.model_id}{suffix} ({state})>"
