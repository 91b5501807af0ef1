"""
Gameplay events published by world objects.

Audio and the notification popup subscribe to these. Objects check
coordinator.loading_scene_data before publishing, so state applied
while a scene is being restored stays silent.
"""

from enum import Enum, auto


class WorldEvent(Enum):
    SOUND = auto()
    NOTIFICATION = auto()
    PORTAL_SHOWN = auto()


class NotificationType(Enum):
    SAVE_SUCCESS = auto()
    SAVE_ERROR = auto()
    AUTO_SAVE_SUCCESS = auto()
    DOOR_UNLOCKED = auto()
    PORTAL_UNLOCKED = auto()
    QUEST_COMPLETED = auto()
