"""
Save points and respawn tracking.

A save point is any location that can become the player's respawn
anchor: portals, fire monuments, manual save points, auto-save areas.
Exactly one save point is "last used" at a time; using another one
supersedes it (the previous point is told via set_as_unused so it can
drop its highlight).

The RespawnTracker is a global persistent object: the last used id
and the scene it belongs to survive scene transitions and restarts.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ember.core.transform import Pose
from ember.save.contracts import ConfigureStage, PersistentGlobalObject, SetupStage
from ember.save.record import KeyedRecord

if TYPE_CHECKING:
    from ember.core.context import PersistenceContext


logger = logging.getLogger(__name__)


class SavePoint(ABC):
    """
    Contract for locations the player can respawn at.

    Concrete points are also persistent objects, which provide the
    context they were activated with.
    """

    context: PersistenceContext | None

    @property
    @abstractmethod
    def save_point_id(self) -> str:
        """Stable unique id of this save point."""

    @abstractmethod
    def respawn_pose(self) -> Pose:
        """Where the player appears when respawning here."""

    def set_as_used(self) -> None:
        """
        Make this point the respawn anchor.

        Raises:
            RuntimeError: If the point is not active in a scene
        """
        if self.context is None:
            raise RuntimeError(f"Save point {self.save_point_id} is not active")
        self.context.coordinator.set_last_used_save_point(self)

    def set_as_unused(self) -> None:
        """Called when another save point supersedes this one."""


class RespawnTracker(PersistentGlobalObject):
    """
    Remembers the last used save point.

    Save points of the active scene register themselves while they
    are live, so the tracker can answer respawn queries with their
    current pose.
    """

    def __init__(self, persistent_id: str = "respawn"):
        super().__init__(persistent_id)
        self._used_id = ""
        self._used_scene = ""
        self._points: dict[str, SavePoint] = {}

    @property
    def last_used_id(self) -> str:
        return self._used_id

    @property
    def last_used_scene(self) -> str:
        return self._used_scene

    def is_last_used(self, point: SavePoint) -> bool:
        return bool(self._used_id) and point.save_point_id == self._used_id

    def register_point(self, point: SavePoint) -> None:
        """Make a live save point available for respawn queries."""
        point_id = point.save_point_id
        if not point_id:
            raise ValueError(f"{type(point).__name__} needs a non-empty save point id")
        existing = self._points.get(point_id)
        if existing is not None and existing is not point:
            logger.warning(f"Duplicate save point id: {point_id}")
        self._points[point_id] = point

    def unregister_point(self, point: SavePoint) -> None:
        if self._points.get(point.save_point_id) is point:
            del self._points[point.save_point_id]

    def get_point(self, point_id: str) -> SavePoint | None:
        return self._points.get(point_id)

    def mark_used(self, point: SavePoint, scene_name: str) -> None:
        """Record a save point as the last used one, superseding the previous."""
        point_id = point.save_point_id
        if not point_id:
            raise ValueError(f"{type(point).__name__} needs a non-empty save point id")

        previous = self._points.get(self._used_id)
        if previous is not None and previous is not point:
            previous.set_as_unused()

        self._used_id = point_id
        self._used_scene = scene_name
        logger.info(f"Last used save point: {point_id} ({scene_name})")

    def respawn_pose(self, default: Pose | None = None) -> Pose | None:
        """Pose of the last used save point if it is live in the active scene."""
        point = self._points.get(self._used_id) if self._used_id else None
        return point.respawn_pose() if point else default

    def reset(self) -> None:
        self._used_id = ""
        self._used_scene = ""

    # Persistence

    def on_save(self, record: KeyedRecord) -> None:
        if not self._used_id:
            logger.debug("Saving without a used save point")
            return
        record.set("usedSavePointId", self._used_id)
        record.set("usedSavePointScene", self._used_scene)

    def on_load_setup(self, stage: SetupStage) -> None:
        self._used_id = stage.record.get_str("usedSavePointId")
        self._used_scene = stage.record.get_str("usedSavePointScene")

    def on_load_configure(self, stage: ConfigureStage) -> None:
        for point_id, point in self._points.items():
            if point_id != self._used_id:
                point.set_as_unused()
