"""
Entity class - a named container for components.

Placed world objects (signs, build pieces, tables) are entities: the
world object registry re-creates them from a save record by adding
their pose and payload components back onto a fresh entity.
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Iterator, TypeVar

from ember.core.component import Component

if TYPE_CHECKING:
    from ember.core.world import World


C = TypeVar('C', bound=Component)


class Entity:
    """
    A container for components.

    Entities are identified by a process-unique id. The id is NOT
    stable across runs and must never be used as a save key.
    """

    _id_counter = itertools.count(1)

    def __init__(self, name: str = ""):
        self._id = next(Entity._id_counter)
        self._name = name or f"Entity_{self._id}"
        self._components: dict[type[Component], Component] = {}
        self._tags: set[str] = set()
        self._world: World | None = None

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def world(self) -> World | None:
        """The World this entity belongs to, if any."""
        return self._world

    @property
    def alive(self) -> bool:
        """Whether the entity is still held by a world."""
        return self._world is not None

    def add(self, component: C) -> C:
        """
        Add a component to this entity.

        Raises:
            ValueError: If the entity already has this component type
        """
        comp_type = type(component)
        if comp_type in self._components:
            raise ValueError(
                f"Entity {self._name} already has component {comp_type.__name__}"
            )

        component._entity_id = self._id
        self._components[comp_type] = component
        if self._world:
            self._world._on_component_added(self, component)
        return component

    def remove(self, component_type: type[C]) -> C | None:
        """Remove a component, returning it (or None if absent)."""
        component = self._components.pop(component_type, None)
        if component:
            component._entity_id = None
            if self._world:
                self._world._on_component_removed(self, component)
        return component

    def get(self, component_type: type[C]) -> C:
        """
        Get a component by type.

        Raises:
            KeyError: If component not found
        """
        if component_type not in self._components:
            raise KeyError(
                f"Entity {self._name} does not have component {component_type.__name__}"
            )
        return self._components[component_type]  # type: ignore

    def try_get(self, component_type: type[C]) -> C | None:
        return self._components.get(component_type)  # type: ignore

    def has(self, *component_types: type[Component]) -> bool:
        return all(ct in self._components for ct in component_types)

    @property
    def components(self) -> Iterator[Component]:
        return iter(self._components.values())

    # Tags

    def add_tag(self, tag: str) -> None:
        self._tags.add(tag)
        if self._world:
            self._world._index(self._world._tag_index, tag, self)

    def has_tag(self, tag: str) -> bool:
        return tag in self._tags

    @property
    def tags(self) -> frozenset[str]:
        return frozenset(self._tags)

    def __repr__(self) -> str:
        components = ", ".join(c.__name__ for c in self._components)
        return f"Entity({self._name}, id={self._id}, components=[{components}])"

    def __hash__(self) -> int:
        return hash(self._id)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Entity):
            return self._id == other._id
        return False
