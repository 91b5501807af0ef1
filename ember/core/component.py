"""
Component base class for data-only components.

Components carry the state that placed world objects persist: their
pose and their kind-specific payload. Because they are pydantic
models, a component dumps to plain JSON-safe data on save and is
re-validated on load.

Usage:
    @register_component
    class SignText(Component):
        text: str = ""
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class Component(BaseModel):
    """
    Base class for all components.

    IMPORTANT: Keep components data-only. Behaviour lives in the
    objects and registries that own them.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        extra='forbid',
    )

    # Name used when the component is written into a save record
    _type_name: ClassVar[str] = ""

    # Owning entity id (set by Entity.add)
    _entity_id: int | None = None

    @classmethod
    def get_type_name(cls) -> str:
        """Get the component type name used as a save key."""
        return cls._type_name or cls.__name__

    def clone(self) -> Component:
        """Create a deep copy of this component."""
        return self.model_copy(deep=True)


# Registry of component types for restoring placed objects
_component_registry: dict[str, type[Component]] = {}


def register_component(cls: type[Component]) -> type[Component]:
    """
    Decorator to register a component type by name.

    Registered components can be rebuilt from a save record without
    the loader importing the concrete class.
    """
    _component_registry[cls.get_type_name()] = cls
    return cls


def get_component_type(type_name: str) -> type[Component] | None:
    """Get component class by type name."""
    return _component_registry.get(type_name)
