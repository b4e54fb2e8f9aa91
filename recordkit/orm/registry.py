from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Type, Union

if TYPE_CHECKING:
    from recordkit.orm.entity import Entity


class ModelRegistry:
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ModelRegistry, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        # Only initialize once
        if not ModelRegistry._initialized:
            self.models: Dict[str, Type[Entity]] = {}
            ModelRegistry._initialized = True

    def register_model(self, name: str, model: Type[Entity]):
        self.models[name] = model

    def delete_model(self, name: str):
        del self.models[name]

    def get_model(self, name: str) -> Type[Entity]:
        try:
            return self.models[name]
        except KeyError:
            raise LookupError(f"No model registered under '{name}'") from None

    def resolve(self, model: Union[str, Type[Entity]]) -> Type[Entity]:
        """Accept a model class or the name it was registered under."""
        if isinstance(model, str):
            return self.get_model(model)
        return model
