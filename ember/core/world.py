"""
World container for the live entities of one scene.

Each GameScene owns a World. When the scene unloads its World is
cleared, which destroys every entity in it; the ENTITY_DESTROYED
events let the world object registry forget placed objects that no
longer exist.

Usage:
    world = World(event_bus)
    sign = world.create_entity("Signpost")
    sign.add(Pose(x=4.0, z=-2.5))

    world.destroy_entity(sign)
    world.flush()  # destruction is deferred until here
"""

from __future__ import annotations

from typing import Iterator

from ember.core.component import Component
from ember.core.entity import Entity
from ember.core.events import EventBus, EngineEvent


class World:
    """
    Container for entities.

    Provides:
    - Entity management (create, destroy, query)
    - Component and tag indices for queries
    - Event bus notifications for entity lifecycle
    """

    def __init__(self, event_bus: EventBus | None = None):
        self.event_bus = event_bus or EventBus()

        self._entities: dict[int, Entity] = {}
        self._entities_to_destroy: list[int] = []

        # component type -> entity ids
        self._component_index: dict[type[Component], set[int]] = {}
        # tag -> entity ids
        self._tag_index: dict[str, set[int]] = {}

    # Entity Management

    def create_entity(self, name: str = "") -> Entity:
        """Create a new entity in this world."""
        entity = Entity(name)
        self._add_entity(entity)
        return entity

    def add_entity(self, entity: Entity) -> Entity:
        """
        Add an existing entity to this world.

        Raises:
            ValueError: If the entity is already in a world
        """
        if entity.id in self._entities or entity.world is not None:
            raise ValueError(f"Entity {entity.id} already in a world")
        self._add_entity(entity)
        return entity

    def _add_entity(self, entity: Entity) -> None:
        entity._world = self
        self._entities[entity.id] = entity

        for component in entity.components:
            self._index(self._component_index, type(component), entity)
        for tag in entity.tags:
            self._index(self._tag_index, tag, entity)

        self.event_bus.publish(EngineEvent.ENTITY_CREATED, entity=entity)

    def destroy_entity(self, entity: Entity | int) -> None:
        """
        Mark an entity for destruction.

        The entity is removed on the next flush().
        """
        entity_id = entity.id if isinstance(entity, Entity) else entity
        if entity_id in self._entities and entity_id not in self._entities_to_destroy:
            self._entities_to_destroy.append(entity_id)

    def flush(self) -> None:
        """Remove entities marked for destruction."""
        while self._entities_to_destroy:
            entity_id = self._entities_to_destroy.pop(0)
            entity = self._entities.pop(entity_id, None)
            if entity is None:
                continue

            for component in entity.components:
                self._unindex(self._component_index, type(component), entity)
            for tag in entity.tags:
                self._unindex(self._tag_index, tag, entity)

            entity._world = None
            self.event_bus.publish(EngineEvent.ENTITY_DESTROYED, entity=entity)

    def is_pending_destruction(self, entity: Entity | int) -> bool:
        """True if the entity is marked for destruction but not yet flushed."""
        entity_id = entity.id if isinstance(entity, Entity) else entity
        return entity_id in self._entities_to_destroy

    def get_entity(self, entity_id: int) -> Entity | None:
        return self._entities.get(entity_id)

    @property
    def entities(self) -> Iterator[Entity]:
        return iter(list(self._entities.values()))

    @property
    def entity_count(self) -> int:
        return len(self._entities)

    # Indexing

    @staticmethod
    def _index(index: dict, key, entity: Entity) -> None:
        index.setdefault(key, set()).add(entity.id)

    @staticmethod
    def _unindex(index: dict, key, entity: Entity) -> None:
        if key in index:
            index[key].discard(entity.id)

    def _on_component_added(self, entity: Entity, component: Component) -> None:
        self._index(self._component_index, type(component), entity)
        self.event_bus.publish(
            EngineEvent.COMPONENT_ADDED, entity=entity, component=component
        )

    def _on_component_removed(self, entity: Entity, component: Component) -> None:
        self._unindex(self._component_index, type(component), entity)
        self.event_bus.publish(
            EngineEvent.COMPONENT_REMOVED, entity=entity, component=component
        )

    # Queries

    def get_entities_with(self, *component_types: type[Component]) -> Iterator[Entity]:
        """Get all entities that have ALL specified components."""
        if not component_types:
            return
        candidate_ids = set(self._component_index.get(component_types[0], ()))
        for comp_type in component_types[1:]:
            candidate_ids &= self._component_index.get(comp_type, set())

        for entity_id in sorted(candidate_ids):
            entity = self._entities.get(entity_id)
            if entity:
                yield entity

    def get_entities_with_tag(self, tag: str) -> Iterator[Entity]:
        for entity_id in sorted(self._tag_index.get(tag, ())):
            entity = self._entities.get(entity_id)
            if entity:
                yield entity

    def clear(self) -> None:
        """Destroy every entity immediately."""
        for entity_id in list(self._entities):
            self.destroy_entity(entity_id)
        self.flush()
        self._component_index.clear()
        self._tag_index.clear()
