"""
Player controller as seen by the persistence core.
"""

from __future__ import annotations

import logging

from ember.core.transform import Pose


logger = logging.getLogger(__name__)


class Player:
    """
    Minimal player controller: a pose and an input switch.

    Controls are disabled while a scene loads, and the coordinator
    moves the player to the respawn pose once the scene is restored.
    """

    def __init__(self, pose: Pose | None = None):
        self.pose = pose or Pose()
        self.controls_enabled = True

    def set_controls_enabled(self, enabled: bool) -> None:
        self.controls_enabled = enabled

    def move_to(self, pose: Pose) -> None:
        logger.debug(f"Player moved to {pose.position}")
        self.pose = pose.clone()
