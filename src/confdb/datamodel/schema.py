"""Data model definitions describing configuration objects."""
import copy
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from ..query.path import PathSyntaxError, parse_path, to_text

DEFAULT_ID_PROPERTY = "uuid"


class ModelKind(str, Enum):
    """How many instances of a model the document holds."""
    SINGLETON = "singleton"    # exactly one node
    COLLECTION = "collection"  # zero or more sibling nodes


class PropertyType(str, Enum):
    """Value type of a model property."""
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


_SCALAR_ADAPTERS = {
    PropertyType.INTEGER: TypeAdapter(int),
    PropertyType.NUMBER: TypeAdapter(float),
    PropertyType.BOOLEAN: TypeAdapter(bool),
}

_EMPTY_VALUES = {
    PropertyType.STRING: "",
    PropertyType.INTEGER: 0,
    PropertyType.NUMBER: 0.0,
    PropertyType.BOOLEAN: False,
}


class PropertyDef(BaseModel):
    """Definition of a single model property."""
    model_config = ConfigDict(extra="ignore")

    type: PropertyType = PropertyType.STRING
    default: Any = None
    description: str = ""
    # Nested definitions for 'object' and 'array' types
    properties: dict[str, "PropertyDef"] = Field(default_factory=dict)
    items: Optional["PropertyDef"] = None

    def get_default(self) -> Any:
        """Default value for a freshly created object."""
        if self.default is not None:
            return self.coerce(copy.deepcopy(self.default))
        if self.type == PropertyType.OBJECT:
            return {name: prop.get_default() for name, prop in self.properties.items()}
        if self.type == PropertyType.ARRAY:
            return []
        return _EMPTY_VALUES[self.type]

    def coerce(self, value: Any) -> Any:
        """Convert a raw document value to this property's type.

        Raises:
            ValueError: If the value cannot be converted
        """
        if value is None:
            return self.get_default()

        if self.type == PropertyType.OBJECT:
            if not isinstance(value, dict):
                raise ValueError(f"Expected a mapping, got {type(value).__name__}")
            if not self.properties:
                return copy.deepcopy(value)
            return {
                name: prop.coerce(value.get(name))
                for name, prop in self.properties.items()
            }

        if self.type == PropertyType.ARRAY:
            # A single repeated element may be stored without its list
            if not isinstance(value, list):
                value = [value]
            if self.items is None:
                return copy.deepcopy(value)
            return [self.items.coerce(item) for item in value]

        if isinstance(value, (dict, list)):
            raise ValueError(f"Expected a {self.type.value}, got {type(value).__name__}")

        if self.type == PropertyType.STRING:
            return to_text(value)

        try:
            return _SCALAR_ADAPTERS[self.type].validate_python(value)
        except ValidationError as e:
            raise ValueError(f"Invalid {self.type.value} value {value!r}") from e


class QueryInfo(BaseModel):
    """Where and how a model's nodes live in the document."""
    model_config = ConfigDict(extra="ignore")

    xpath: str
    iterable: bool = False
    idproperty: Optional[str] = None
    refproperty: Optional[str] = None

    @field_validator("xpath")
    @classmethod
    def _check_xpath(cls, value: str) -> str:
        if not value.startswith("/") or value.startswith("//"):
            raise ValueError(f"xpath must be an absolute path: {value}")
        if "[" in value or "*" in value or "//" in value:
            raise ValueError(f"xpath must be a plain element path: {value}")
        if value.rstrip("/").count("/") < 2:
            raise ValueError(f"xpath must be nested below a root element: {value}")
        try:
            parse_path(value)
        except PathSyntaxError as e:
            raise ValueError(str(e)) from e
        return value.rstrip("/")


class DataModel(BaseModel):
    """Schema of one configuration entity."""
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    description: str = ""
    queryinfo: QueryInfo
    properties: dict[str, PropertyDef] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_identity(self) -> "DataModel":
        info = self.queryinfo
        if info.iterable and not info.idproperty:
            info.idproperty = DEFAULT_ID_PROPERTY
        if info.idproperty and info.idproperty not in self.properties:
            raise ValueError(
                f"Model '{self.id}': id property '{info.idproperty}' is not a declared property"
            )
        if info.refproperty and not info.idproperty:
            raise ValueError(
                f"Model '{self.id}': a referenceable model needs an id property"
            )
        return self

    @property
    def kind(self) -> ModelKind:
        return ModelKind.COLLECTION if self.queryinfo.iterable else ModelKind.SINGLETON

    def is_iterable(self) -> bool:
        return self.kind == ModelKind.COLLECTION

    def is_referenceable(self) -> bool:
        return self.queryinfo.refproperty is not None

    @property
    def xpath(self) -> str:
        return self.queryinfo.xpath

    @property
    def idproperty(self) -> Optional[str]:
        return self.queryinfo.idproperty

    @property
    def refproperty(self) -> Optional[str]:
        return self.queryinfo.refproperty

    @property
    def parent_xpath(self) -> str:
        """Path of the node holding this model's nodes."""
        return self.xpath.rsplit("/", 1)[0] or "/"

    @property
    def element_name(self) -> str:
        """Name of this model's nodes in the document."""
        return self.xpath.rsplit("/", 1)[1]

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def get_property(self, name: str) -> PropertyDef:
        if name not in self.properties:
            raise KeyError(f"Model '{self.id}' has no property '{name}'")
        return self.properties[name]

    def get_defaults(self) -> dict[str, Any]:
        """Default values of all properties."""
        return {name: prop.get_default() for name, prop in self.properties.items()}


PropertyDef.model_rebuild()
