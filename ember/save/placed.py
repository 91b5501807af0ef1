"""
World object registry - persistence for player-placed objects.

Signs, build pieces and crafting tables placed by the player are not
part of any authored scene: after a reload they only exist if they
are re-created. The registry keeps every live placed entity, writes
them all into the scene record on save, and on load (setup phase)
spawns one entity per saved entry at its recorded pose.

Saved layout (scene record):
    placedObjects_count = 2
    placedObjects_0 = {kind: "sign", pose: Pose, payload: ["SignText"], SignText: {...}}
    placedObjects_1 = {kind: "woodWall", pose: Pose, payload: []}

Usage:
    registry.register_kind(PlacedKind("sign", payload_types=(SignText,)))
    sign = registry.place(scene.world, "sign", Pose(x=3.0), SignText(text="Home"))
    ...
    scene.world.destroy_entity(sign)  # forgotten once the world flushes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator

from pydantic import ValidationError
from ember.core.component import Component, get_component_type, register_component
from ember.core.entity import Entity
from ember.core.events import Event, EventBus, EngineEvent
from ember.core.transform import Pose
from ember.core.world import World
from ember.save.contracts import SetupStage
from ember.save.errors import RecordTypeError
from ember.save.record import KeyedRecord, RecordReader


logger = logging.getLogger(__name__)


@register_component
class Placement(Component):
    """Marks an entity as player-placed and names its kind."""
    kind: str


@dataclass(frozen=True)
class PlacedKind:
    """
    A kind of placeable object.

    Attributes:
        tag: Kind tag written into the save ("sign", "woodWall", ...)
        payload_types: Kind-specific components saved with the object
        on_spawn: Called with each entity re-created from a save
    """
    tag: str
    payload_types: tuple[type[Component], ...] = ()
    on_spawn: Callable[[Entity], None] | None = None


class WorldObjectRegistry:
    """Tracks live placed entities and rebuilds them on scene load."""

    SEQUENCE_PREFIX = "placedObjects"
    PLACED_TAG = "placed"

    def __init__(self, event_bus: EventBus):
        self._kinds: dict[str, PlacedKind] = {}
        self._placed: list[Entity] = []
        self._event_bus = event_bus
        event_bus.subscribe(EngineEvent.ENTITY_DESTROYED, self._on_entity_destroyed)

    # Kinds

    def register_kind(self, kind: PlacedKind) -> None:
        if not kind.tag:
            raise ValueError("Placed object kinds need a non-empty tag")
        self._kinds[kind.tag] = kind

    def get_kind(self, tag: str) -> PlacedKind | None:
        return self._kinds.get(tag)

    # Live objects

    def add_placed(self, entity: Entity) -> None:
        """
        Start tracking a placed entity. Adding it twice is a no-op.

        Raises:
            ValueError: If the entity has no Placement or its kind is unknown
        """
        placement = entity.try_get(Placement)
        if placement is None:
            raise ValueError(f"{entity} has no Placement component")
        if placement.kind not in self._kinds:
            raise ValueError(f"Unknown placed object kind: {placement.kind}")
        if entity not in self._placed:
            self._placed.append(entity)

    def remove_placed(self, entity: Entity) -> None:
        """Stop tracking an entity. Removing it twice is a no-op."""
        if entity in self._placed:
            self._placed.remove(entity)

    def place(
        self,
        world: World,
        kind_tag: str,
        pose: Pose | None = None,
        *payload: Component,
    ) -> Entity:
        """
        Create a placed object in a world and track it.

        Raises:
            ValueError: If the kind is unknown
        """
        kind = self._kinds.get(kind_tag)
        if kind is None:
            raise ValueError(f"Unknown placed object kind: {kind_tag}")

        entity = Entity(kind_tag)
        entity.add(Placement(kind=kind_tag))
        entity.add(pose.clone() if pose else Pose())
        for component in payload:
            entity.add(component)
        entity.add_tag(self.PLACED_TAG)

        world.add_entity(entity)
        self.add_placed(entity)
        return entity

    @property
    def placed(self) -> Iterator[Entity]:
        """Live placed entities; ones already marked for destruction are left out."""
        return iter([e for e in self._placed if not self._is_doomed(e)])

    def count(self, kind_tag: str | None = None) -> int:
        return sum(
            1 for e in self.placed
            if kind_tag is None or e.get(Placement).kind == kind_tag
        )

    @staticmethod
    def _is_doomed(entity: Entity) -> bool:
        world = entity.world
        return world is not None and world.is_pending_destruction(entity)

    def clear(self) -> None:
        self._placed.clear()

    def _on_entity_destroyed(self, event: Event) -> None:
        entity = event.get("entity")
        if entity is not None:
            self.remove_placed(entity)

    # Save / load

    def save(self, record: KeyedRecord) -> int:
        """Write every live placed object into the scene record."""
        entries = [self._entry_for(entity) for entity in self.placed]
        count = record.write_sequence(self.SEQUENCE_PREFIX, entries)
        logger.debug(f"Saved {count} placed objects")
        return count

    def _entry_for(self, entity: Entity) -> KeyedRecord:
        kind = self._kinds[entity.get(Placement).kind]
        entry = KeyedRecord()
        entry.set("kind", kind.tag)
        entry.set("pose", entity.try_get(Pose) or Pose())

        names = []
        for payload_type in kind.payload_types:
            component = entity.try_get(payload_type)
            if component is not None:
                name = payload_type.get_type_name()
                entry.set(name, component)
                names.append(name)
        entry.set("payload", names)
        return entry

    def restore(self, stage: SetupStage, world: World) -> int:
        """
        Re-create every placed object saved in the scene record.

        Entries of an unknown kind, or whose data no longer validates,
        are skipped with a warning so one bad entry does not stop the
        rest of the world from loading.

        Returns:
            Number of objects re-created
        """
        restored = 0
        for index, entry in enumerate(stage.record.read_sequence(self.SEQUENCE_PREFIX)):
            if not isinstance(entry, RecordReader):
                logger.warning("Skipping placed object entry that is not a record")
                continue

            try:
                tag = entry.get_str("kind")
                kind = self._kinds.get(tag)
                if kind is None:
                    logger.warning(f"Skipping placed object of unknown kind: {tag!r}")
                    continue
                pose = entry.get_model("pose", Pose) or Pose()
                payload = self._payload_for(kind, entry)
            except (RecordTypeError, ValueError) as e:
                logger.warning(f"Skipping corrupt placed object entry {index}: {e}")
                continue

            entity = self.place(world, tag, pose, *payload)
            if kind.on_spawn:
                kind.on_spawn(entity)
            restored += 1

        logger.info(f"Restored {restored} placed objects in {stage.scene_name}")
        return restored

    def _payload_for(self, kind: PlacedKind, entry: RecordReader) -> list[Component]:
        components: dict[type[Component], Component] = {}
        for name in entry.get_list("payload"):
            component_type = get_component_type(str(name))
            if component_type is None or component_type not in kind.payload_types:
                logger.warning(f"Ignoring payload {name!r} for placed kind {kind.tag!r}")
                continue
            component = entry.get_model(name, component_type)
            if component is not None:
                components[component_type] = component

        # Payload missing from an older save: fall back to defaults
        for payload_type in kind.payload_types:
            if payload_type in components:
                continue
            try:
                components[payload_type] = payload_type()
            except ValidationError:
                logger.warning(
                    f"No saved {payload_type.get_type_name()} for placed kind {kind.tag!r}"
                )
        return [components[t] for t in kind.payload_types if t in components]
