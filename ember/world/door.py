"""
Doors - scene-scoped open/locked state.

Saved keys (scene record):
    doorUnlocked_<id>   bool
    doorOpenState_<id>  DoorState
"""

from __future__ import annotations

import logging
from enum import Enum

from ember.save.contracts import SetupStage
from ember.save.record import KeyedRecord
from ember.world.base import SceneObject
from ember.world.events import NotificationType


logger = logging.getLogger(__name__)


class DoorState(Enum):
    CLOSED = 0
    OPEN_INWARD = 1
    OPEN_OUTWARD = 2


class Door(SceneObject):
    """
    A door that can be locked, opened inwards/outwards and closed.

    Args:
        persistent_id: Unique id of the door within its scene
        locked: Whether the door starts locked
        unlock_item: Name of the item that unlocks it (shown in the notification)
        state: Authored starting state
    """

    def __init__(
        self,
        persistent_id: str,
        locked: bool = False,
        unlock_item: str = "",
        state: DoorState = DoorState.CLOSED,
    ):
        super().__init__(persistent_id)
        self.unlocked = not locked
        self.unlock_item = unlock_item
        self.state = state

    @property
    def is_open(self) -> bool:
        return self.state is not DoorState.CLOSED

    def interact(self, inwards: bool = True) -> bool:
        """Toggle the door. Returns False if it is locked."""
        if not self.unlocked:
            logger.debug(f"Door {self.persistent_id} is locked")
            return False
        if self.is_open:
            self.close()
        else:
            self.open(inwards)
        return True

    def unlock(self) -> None:
        if self.unlocked:
            return
        self.unlocked = True
        self.notify(NotificationType.DOOR_UNLOCKED, item=self.unlock_item)

    def open(self, inwards: bool = True) -> None:
        state = DoorState.OPEN_INWARD if inwards else DoorState.OPEN_OUTWARD
        if self.state is state:
            return
        self.state = state
        self.play_sound("doorOpen")

    def close(self) -> None:
        if self.state is DoorState.CLOSED:
            return
        self.state = DoorState.CLOSED
        self.play_sound("doorClose")

    def on_save(self, record: KeyedRecord) -> None:
        record.set(self.key("doorUnlocked"), self.unlocked)
        record.set(self.key("doorOpenState"), self.state)

    def on_load_setup(self, stage: SetupStage) -> None:
        logger.debug(f"Loading data for door: {self.persistent_id}")
        self.unlocked = stage.record.get_bool(self.key("doorUnlocked"), self.unlocked)

        state = stage.record.get_enum(self.key("doorOpenState"), DoorState, self.state)
        if state is DoorState.CLOSED:
            self.close()
        else:
            self.open(inwards=state is DoorState.OPEN_INWARD)
