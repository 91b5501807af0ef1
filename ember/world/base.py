"""
Shared helpers for world objects.
"""

from __future__ import annotations

from typing import Any

from ember.save.contracts import PersistentSceneObject
from ember.world.events import NotificationType, WorldEvent


class SceneObject(PersistentSceneObject):
    """
    A persistent scene object that produces sounds and notifications.

    Both are dropped while a scene load is in flight.
    """

    @property
    def restoring(self) -> bool:
        """True while the active scene's saved state is being applied."""
        return self.context is not None and self.context.coordinator.loading_scene_data

    def play_sound(self, name: str, **data: Any) -> None:
        if self.context is None or self.restoring:
            return
        self.context.event_bus.publish(
            WorldEvent.SOUND, sound=name, source=self.persistent_id, **data
        )

    def notify(self, notification: NotificationType, **data: Any) -> None:
        if self.context is None or self.restoring:
            return
        self.context.event_bus.publish(
            WorldEvent.NOTIFICATION, notification=notification, **data
        )
