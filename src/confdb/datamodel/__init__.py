"""Data models describing the configuration objects stored in the database."""
from .schema import (
    DataModel,
    ModelKind,
    PropertyDef,
    PropertyType,
    QueryInfo,
    DEFAULT_ID_PROPERTY,
)
from .registry import ModelRegistry, ModelNotFoundError, ModelDefinitionError

__all__ = [
    "DataModel",
    "ModelKind",
    "PropertyDef",
    "PropertyType",
    "QueryInfo",
    "DEFAULT_ID_PROPERTY",
    "ModelRegistry",
    "ModelNotFoundError",
    "ModelDefinitionError",
]
