"""
Portals, fire monuments and the global portal visibility list.

A portal may live in a different scene from the monument that
unlocks it, so whether a portal is showing is global state held by
the PortalRegistry. Portals read it in the configure phase.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from ember.core.transform import Pose
from ember.save.contracts import ConfigureStage, PersistentGlobalObject, SetupStage
from ember.save.record import KeyedRecord
from ember.save.save_points import SavePoint
from ember.world.base import SceneObject
from ember.world.events import NotificationType, WorldEvent


logger = logging.getLogger(__name__)


class PortalSaveInfo(BaseModel):
    id: str
    showing: bool = False


class PortalRegistry(PersistentGlobalObject):
    """
    Visibility of every portal in the game.

    Saved keys (global record):
        portalSave_count    int
        portalSave_<i>      PortalSaveInfo
    """

    SEQUENCE_PREFIX = "portalSave"

    def __init__(self, persistent_id: str = "portals"):
        super().__init__(persistent_id)
        self._portals: dict[str, PortalSaveInfo] = {}

    def is_showing(self, portal_id: str) -> bool:
        info = self._portals.get(portal_id)
        return info.showing if info else False

    def set_showing(self, portal_id: str, showing: bool) -> None:
        info = self._portals.get(portal_id)
        if info is None:
            self._portals[portal_id] = PortalSaveInfo(id=portal_id, showing=showing)
        else:
            info.showing = showing

    def on_save(self, record: KeyedRecord) -> None:
        logger.debug(f"Saving info for {len(self._portals)} portals")
        record.write_sequence(self.SEQUENCE_PREFIX, self._portals.values())

    def on_load_setup(self, stage: SetupStage) -> None:
        self._portals.clear()
        for info in stage.record.read_sequence(self.SEQUENCE_PREFIX, model=PortalSaveInfo):
            self._portals[info.id] = info


class Portal(SceneObject, SavePoint):
    """
    Moves the player to another scene. Also a save point: a reload
    after using a portal resumes on the other side.

    Args:
        persistent_id: Unique portal id (also its save point id)
        target_scene: Scene loaded when the portal is entered
        respawn_at: Where the player appears when arriving through it
        always_active: Shown from the start instead of by a monument
    """

    def __init__(
        self,
        persistent_id: str,
        target_scene: str,
        respawn_at: Pose | None = None,
        always_active: bool = False,
    ):
        super().__init__(persistent_id)
        self.target_scene = target_scene
        self.respawn_at = respawn_at or Pose()
        self.always_active = always_active
        self.showing = always_active

    @property
    def save_point_id(self) -> str:
        return self.persistent_id

    def respawn_pose(self) -> Pose:
        return self.respawn_at.clone()

    def on_activate(self) -> None:
        self.context.respawn.register_point(self)

    def on_deactivate(self) -> None:
        self.context.respawn.unregister_point(self)

    def show(self) -> None:
        """Reveal the portal (a connected monument was lit)."""
        self._set_showing(True)
        if not self.restoring:
            self.context.event_bus.publish(WorldEvent.PORTAL_SHOWN, portal=self.persistent_id)

    def _set_showing(self, showing: bool) -> None:
        self.showing = showing
        registry = self.context.get_service(PortalRegistry) if self.context else None
        if registry is not None:
            registry.set_showing(self.persistent_id, showing)

    def enter(self) -> bool:
        """
        The player walked into the portal.

        Saves with the target as the resume scene, then loads it.

        Returns:
            False if the portal is hidden or the load was rejected
        """
        if not self.showing or self.context is None:
            return False
        coordinator = self.context.coordinator
        self.set_as_used()
        coordinator.save_game_data(self.target_scene)
        return coordinator.load_game_scene(self.target_scene)

    def on_save(self, record: KeyedRecord) -> None:
        pass

    def on_load_setup(self, stage: SetupStage) -> None:
        pass

    def on_load_configure(self, stage: ConfigureStage) -> None:
        if self.always_active:
            return
        registry = stage.service(PortalRegistry)
        self.showing = registry.is_showing(self.persistent_id) if registry else False


class FireMonument(SceneObject, SavePoint):
    """
    Lighting a monument makes it the respawn anchor and reveals its
    connected portal, which may be in another scene.

    Saved keys (scene record):
        monumentLit_<id>    bool
    """

    def __init__(self, persistent_id: str, connected_portal: str = "", respawn_at: Pose | None = None):
        super().__init__(persistent_id)
        self.connected_portal = connected_portal
        self.respawn_at = respawn_at or Pose()
        self.lit = False

    @property
    def save_point_id(self) -> str:
        return self.persistent_id

    def respawn_pose(self) -> Pose:
        return self.respawn_at.clone()

    def on_activate(self) -> None:
        self.context.respawn.register_point(self)

    def on_deactivate(self) -> None:
        self.context.respawn.unregister_point(self)

    def light(self) -> bool:
        """Light the monument. Returns False if it was already lit."""
        if self.lit or self.context is None:
            return False
        self.lit = True
        self.set_as_used()
        self.play_sound("monumentLit")

        if self.connected_portal:
            portal = self._live_portal(self.connected_portal)
            if portal is not None:
                portal.show()
            else:
                registry = self.context.get_service(PortalRegistry)
                if registry is not None:
                    registry.set_showing(self.connected_portal, True)
            self.notify(NotificationType.PORTAL_UNLOCKED, portal=self.connected_portal)
        return True

    def _live_portal(self, portal_id: str) -> Portal | None:
        scene = self.context.scenes.current
        if scene is None:
            return None
        for obj in scene.objects:
            if isinstance(obj, Portal) and obj.persistent_id == portal_id:
                return obj
        return None

    def on_save(self, record: KeyedRecord) -> None:
        record.set(self.key("monumentLit"), self.lit)

    def on_load_setup(self, stage: SetupStage) -> None:
        self.lit = stage.record.get_bool(self.key("monumentLit"))
