"""
Manual save points and auto-save areas.
"""

from __future__ import annotations

import logging

from ember.core.transform import Pose
from ember.save.contracts import ConfigureStage, SetupStage
from ember.save.record import KeyedRecord
from ember.save.save_points import SavePoint
from ember.world.base import SceneObject
from ember.world.events import NotificationType


logger = logging.getLogger(__name__)


class ManualSavePoint(SceneObject, SavePoint):
    """
    Saves the game and sets the respawn point when interacted with.

    Interaction is disabled for SAVE_COOLDOWN seconds after a
    successful save. The point is highlighted while it is the last
    used one.
    """

    SAVE_COOLDOWN = 5.0

    def __init__(self, persistent_id: str, respawn_at: Pose | None = None):
        super().__init__(persistent_id)
        self.respawn_at = respawn_at or Pose()
        self.highlighted = False
        self._cooldown = 0.0

    @property
    def save_point_id(self) -> str:
        return self.persistent_id

    @property
    def can_interact(self) -> bool:
        return self._cooldown <= 0.0

    def respawn_pose(self) -> Pose:
        return self.respawn_at.clone()

    def on_activate(self) -> None:
        self.context.respawn.register_point(self)

    def on_deactivate(self) -> None:
        self.context.respawn.unregister_point(self)

    def interact(self) -> bool:
        """
        Try to save the game here.

        Returns:
            True if the game was saved
        """
        if not self.can_interact or self.context is None:
            return False

        logger.info(f"Attempting to save game at point: {self.persistent_id}")
        self.set_as_used()
        saved = self.context.coordinator.save_game_data()

        if saved:
            self.play_sound("save")
            self.notify(NotificationType.SAVE_SUCCESS)
            self._cooldown = self.SAVE_COOLDOWN
        else:
            self.notify(NotificationType.SAVE_ERROR)
        return saved

    def update(self, dt: float) -> None:
        if self._cooldown > 0.0:
            self._cooldown = max(0.0, self._cooldown - dt)

    def set_as_used(self) -> None:
        super().set_as_used()
        self.highlighted = True

    def set_as_unused(self) -> None:
        self.highlighted = False

    # The respawn tracker persists which point was used

    def on_save(self, record: KeyedRecord) -> None:
        pass

    def on_load_setup(self, stage: SetupStage) -> None:
        pass

    def on_load_configure(self, stage: ConfigureStage) -> None:
        self.highlighted = stage.context.respawn.is_last_used(self)


class AutoSaveArea(SceneObject, SavePoint):
    """
    Saves the game when the player walks in.

    With disable_when_used the area only fires once; that flag is
    saved so it stays spent after a reload.

    Saved keys (scene record):
        saveColliderDisabled_<id>   bool
    """

    def __init__(self, persistent_id: str, respawn_at: Pose | None = None, disable_when_used: bool = True):
        super().__init__(persistent_id)
        self.respawn_at = respawn_at or Pose()
        self.disable_when_used = disable_when_used
        self.collider_disabled = False

    @property
    def save_point_id(self) -> str:
        return self.persistent_id

    def respawn_pose(self) -> Pose:
        return self.respawn_at.clone()

    def on_activate(self) -> None:
        self.context.respawn.register_point(self)

    def on_deactivate(self) -> None:
        self.context.respawn.unregister_point(self)

    def on_player_enter(self) -> bool:
        """
        The player entered the area.

        Returns:
            True if the game was saved
        """
        if self.collider_disabled or self.context is None:
            return False
        if self.disable_when_used:
            self.collider_disabled = True

        logger.info(f"Attempting to save game at auto save point: {self.persistent_id}")
        self.set_as_used()
        saved = self.context.coordinator.save_game_data()
        self.notify(NotificationType.AUTO_SAVE_SUCCESS if saved else NotificationType.SAVE_ERROR)
        return saved

    def on_save(self, record: KeyedRecord) -> None:
        record.set(self.key("saveColliderDisabled"), self.collider_disabled)

    def on_load_setup(self, stage: SetupStage) -> None:
        self.collider_disabled = stage.record.get_bool(self.key("saveColliderDisabled"))
