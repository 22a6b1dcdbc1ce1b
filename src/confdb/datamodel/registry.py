"""Data model registry loaded from YAML definitions."""
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from .schema import DataModel

logger = logging.getLogger(__name__)


class ModelNotFoundError(KeyError):
    """Raised when a model id is not registered."""

    def __init__(self, model_id: str):
        self.model_id = model_id
        super().__init__(f"Unknown data model: {model_id}")

    def __str__(self) -> str:
        return self.args[0]


class ModelDefinitionError(ValueError):
    """Raised when a model definition is invalid."""
    pass


class ModelRegistry:
    """Holds the data models known to the database.

    Models are defined one per YAML file:

    ```yaml
    id: network.interface
    queryinfo:
      xpath: /config/network/interfaces/interface
      iterable: true
      idproperty: uuid
      refproperty: interfaceref
    properties:
      uuid: {type: string}
      name: {type: string}
      mtu: {type: integer, default: 1500}
    ```
    """

    def __init__(self, models_dir: Optional[Union[str, Path]] = None):
        self._models: dict[str, DataModel] = {}
        if models_dir is not None:
            self.load_directory(models_dir)

    def register(
        self,
        definition: Union[DataModel, dict[str, Any]],
        replace: bool = False,
    ) -> DataModel:
        """Register a model from a DataModel or a raw definition dict.

        Raises:
            ModelDefinitionError: If the definition is invalid or the id is taken
        """
        if isinstance(definition, DataModel):
            model = definition
        else:
            try:
                model = DataModel.model_validate(definition)
            except ValidationError as e:
                model_id = definition.get("id", "?") if isinstance(definition, dict) else "?"
                raise ModelDefinitionError(f"Invalid definition for model '{model_id}': {e}") from e

        if model.id in self._models and not replace:
            raise ModelDefinitionError(f"Model already registered: {model.id}")

        self._models[model.id] = model
        logger.debug(f"Registered model {model.id} ({model.kind.value}, {model.xpath})")
        return model

    def load_file(self, path: Union[str, Path]) -> DataModel:
        """Load and register a single model definition file."""
        path = Path(path)
        try:
            with open(path) as f:
                definition = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ModelDefinitionError(f"Failed to parse {path}: {e}") from e

        if not isinstance(definition, dict):
            raise ModelDefinitionError(f"{path} does not contain a model definition")

        return self.register(definition)

    def load_directory(self, path: Union[str, Path]) -> list[str]:
        """Load all *.yaml / *.yml model definitions in a directory.

        Returns:
            Ids of the loaded models
        """
        path = Path(path)
        if not path.is_dir():
            raise FileNotFoundError(f"Data model directory not found: {path}")

        files = sorted(list(path.glob("*.yaml")) + list(path.glob("*.yml")))
        loaded = [self.load_file(f).id for f in files]

        logger.info(f"Loaded {len(loaded)} data models from {path}")
        return loaded

    def get_model(self, model_id: str) -> DataModel:
        """Get a model by id.

        Raises:
            ModelNotFoundError: If no such model is registered
        """
        try:
            return self._models[model_id]
        except KeyError:
            raise ModelNotFoundError(model_id) from None

    def has_model(self, model_id: str) -> bool:
        return model_id in self._models

    def model_ids(self) -> list[str]:
        return sorted(self._models)

    def create_object(self, model_id: str, values: Optional[dict[str, Any]] = None):
        """Create a new ConfigObject of the given model."""
        from ..objects import ConfigObject

        obj = ConfigObject(self.get_model(model_id))
        if values:
            obj.set_assoc(values)
        return obj

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __len__(self) -> int:
        return len(self._models)
