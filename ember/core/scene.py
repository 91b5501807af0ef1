"""
Scene management.

A GameScene is one loadable level of the game (a village, a desert,
a catacomb). Its authored persistent objects are created in
populate() when the scene is entered; each of them subscribes to the
save/load passes in its own activate() and unsubscribes again in
deactivate() when the scene exits.

The SceneDirector owns the catalogue of scene factories and the
single active scene. The persistence coordinator drives it one step
at a time during a scene transition:
- unload_current(): exit + destroy the active scene
- load(name): build the named scene and enter it
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable

import pygame

from ember.core.events import EngineEvent
from ember.core.world import World
from ember.save.errors import SceneNotFoundError

if TYPE_CHECKING:
    from ember.core.context import PersistenceContext
    from ember.core.transform import Pose


logger = logging.getLogger(__name__)

SceneFactory = Callable[["PersistenceContext"], "GameScene"]


class GameScene(ABC):
    """
    Abstract base class for game scenes.

    Lifecycle:
        1. __init__: Called by the scene factory
        2. on_enter: Called when the scene becomes active; calls populate()
        3. update/handle_event: Called each frame while active
        4. on_exit: Deactivates every object added with add_object()
        5. on_destroy: Clears the scene's World
    """

    def __init__(
        self,
        context: PersistenceContext,
        name: str,
        area_name: str = "",
        default_spawn: Pose | None = None,
    ):
        self.context = context
        self.name = name
        self.area_name = area_name or name
        self.default_spawn = default_spawn
        self.world = World(context.event_bus)
        self._objects: list[Any] = []
        self._is_active = False

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def objects(self) -> list[Any]:
        """Objects activated by this scene, in activation order."""
        return list(self._objects)

    def add_object(self, obj: Any) -> Any:
        """
        Activate a persistent object as part of this scene.

        The object is deactivated automatically when the scene exits.
        """
        self._objects.append(obj)
        obj.activate(self.context)
        return obj

    def remove_object(self, obj: Any) -> None:
        """Deactivate and forget an object destroyed during play."""
        if obj in self._objects:
            self._objects.remove(obj)
            obj.deactivate()

    @abstractmethod
    def populate(self) -> None:
        """Create the scene's authored objects (use add_object)."""

    def on_enter(self) -> None:
        self._is_active = True
        self.populate()

    def on_exit(self) -> None:
        self._is_active = False
        while self._objects:
            self._objects.pop().deactivate()

    def on_destroy(self) -> None:
        self.world.clear()

    def update(self, dt: float) -> None:
        """Per-frame update. Ticks scene objects, then processes deferred entity destruction."""
        for obj in list(self._objects):
            tick = getattr(obj, 'update', None)
            if tick is not None:
                tick(dt)
        self.world.flush()

    def handle_event(self, event: pygame.event.Event) -> bool:
        """
        Handle a pygame event.

        Returns:
            True if the event was consumed
        """
        return False


class SceneDirector:
    """
    Owns the scene catalogue and the active scene.

    Only one gameplay scene is active at a time; switching scenes is
    done in two explicit steps so the caller can yield between them.
    """

    def __init__(self, context: PersistenceContext):
        self.context = context
        self._factories: dict[str, SceneFactory] = {}
        self._area_names: dict[str, str] = {}
        self._current: GameScene | None = None

    def register(self, name: str, factory: SceneFactory, area_name: str = "") -> None:
        """
        Register a scene factory under a scene name.

        Args:
            name: Scene name used by load() and written into saves
            factory: Builds the scene from the context
            area_name: Display name shown on the loading panel and
                in the save header (defaults to the scene name)
        """
        self._factories[name] = factory
        self._area_names[name] = area_name or name

    def area_name(self, name: str) -> str:
        return self._area_names.get(name, name)

    def has_scene(self, name: str) -> bool:
        return name in self._factories

    @property
    def scene_names(self) -> list[str]:
        return list(self._factories)

    @property
    def current(self) -> GameScene | None:
        return self._current

    @property
    def current_name(self) -> str | None:
        return self._current.name if self._current else None

    def unload_current(self) -> None:
        """Exit and destroy the active scene, if any."""
        scene = self._current
        if scene is None:
            return
        self._current = None
        scene.on_exit()
        scene.on_destroy()
        logger.info(f"Unloaded scene: {scene.name}")
        self.context.event_bus.publish(EngineEvent.SCENE_UNLOADED, scene=scene.name)

    def load(self, name: str) -> GameScene:
        """
        Build and enter the named scene.

        Raises:
            SceneNotFoundError: If no factory is registered for the name
        """
        factory = self._factories.get(name)
        if factory is None:
            raise SceneNotFoundError(f"No scene registered with name: {name}")

        scene = factory(self.context)
        self._current = scene
        scene.on_enter()
        logger.info(f"Loaded scene: {name}")
        self.context.event_bus.publish(EngineEvent.SCENE_LOADED, scene=name)
        return scene

    def update(self, dt: float) -> None:
        if self._current:
            self._current.update(dt)

    def handle_event(self, event: pygame.event.Event) -> bool:
        """Pass an input event to the active scene (ignored while loading)."""
        if self._current is None or self.context.coordinator.loading_scene_data:
            return False
        return self._current.handle_event(event)
