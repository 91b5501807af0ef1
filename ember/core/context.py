"""
Persistence context - the object graph of the persistence core.

Creates and wires every collaborator once at startup:
- EventBus: save/load notifications
- PersistenceStore: files of the active save group
- PreferenceStore: player options, outside the save group
- SceneDirector: scene catalogue and active scene
- WorldObjectRegistry: player-placed objects
- RespawnTracker: last used save point
- PersistenceCoordinator: save/load orchestration

Gameplay code receives the context instead of reaching for globals;
configure-phase callbacks look shared objects up through
register_service()/get_service().

Usage:
    context = PersistenceContext(PersistenceConfig(save_root="saves"))
    context.scenes.register("The Village", VillageScene, area_name="Village")
    context.startup()
    context.coordinator.load_game()
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar

from ember.core.config import PersistenceConfig
from ember.core.events import EventBus
from ember.core.scene import SceneDirector
from ember.core.transform import Pose
from ember.save.contracts import PersistentObject
from ember.save.coordinator import PersistenceCoordinator
from ember.save.placed import WorldObjectRegistry
from ember.save.preferences import PreferenceStore
from ember.save.save_points import RespawnTracker
from ember.save.store import PersistenceStore


logger = logging.getLogger(__name__)

T = TypeVar('T')


class PlayerHandle(Protocol):
    """What the persistence core needs from the player controller."""

    def set_controls_enabled(self, enabled: bool) -> None: ...

    def move_to(self, pose: Pose) -> None: ...


class PersistenceContext:
    """Holds the persistence collaborators for one running game."""

    def __init__(
        self,
        config: PersistenceConfig | None = None,
        event_bus: EventBus | None = None,
    ):
        self.config = config or PersistenceConfig()
        self.event_bus = event_bus or EventBus()
        self.player: PlayerHandle | None = None

        self.store = PersistenceStore(
            self.config.save_path,
            validate_checksums=self.config.validate_checksums,
        )
        self.preferences = PreferenceStore(self.config.preferences_path)
        self.scenes = SceneDirector(self)
        self.placed_objects = WorldObjectRegistry(self.event_bus)
        self.coordinator = PersistenceCoordinator(self)
        self.respawn = RespawnTracker()

        self._services: dict[type, Any] = {}
        self._started = False

    def startup(self) -> None:
        """Activate the always-present global objects. Calling it again is a no-op."""
        if self._started:
            return
        self.respawn.activate(self)
        self._started = True
        logger.info(f"Persistence started (save path: {self.store.save_path})")

    def shutdown(self) -> None:
        """Unload the active scene and deactivate global objects."""
        if not self._started:
            return
        self.scenes.unload_current()
        self.placed_objects.clear()
        for service in self._services.values():
            if isinstance(service, PersistentObject):
                service.deactivate()
        self.respawn.deactivate()
        self._services.clear()
        self._started = False
        logger.info("Persistence shut down")

    def update(self, dt: float) -> None:
        """Per-frame update: advances loads, then the active scene."""
        if self.coordinator.update(dt):
            return
        self.scenes.update(dt)

    # Services

    def register_service(self, service: Any, service_type: type | None = None) -> None:
        """Make a shared object available to configure-phase callbacks."""
        key = service_type or type(service)
        if key in self._services:
            logger.warning(f"Replacing registered service: {key.__name__}")
        self._services[key] = service

    def unregister_service(self, service_type: type) -> None:
        self._services.pop(service_type, None)

    def get_service(self, service_type: type[T]) -> T | None:
        return self._services.get(service_type)
