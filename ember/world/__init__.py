"""
World module - gameplay objects that persist through the save contracts.

Exports:
- Door, DoorState: Scene-scoped door state
- PuzzleButton, ButtonSequence, DoorLink: Puzzle elements
- QuestBacklog, QuestGiver: Global quests and scene quest givers
- PortalRegistry, Portal, FireMonument: Portal visibility and travel
- ManualSavePoint, AutoSaveArea: Save points
- SignText, ModularPiece, register_placeables: Player-placed objects
- Player: Player controller
- WorldEvent, NotificationType: Gameplay events
- install: Activate the global world objects on a context
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ember.world.events import WorldEvent, NotificationType
from ember.world.door import Door, DoorState
from ember.world.puzzle import PuzzleButton, ButtonSequence, DoorLink
from ember.world.quests import QuestBacklog, QuestGiver
from ember.world.portals import PortalRegistry, PortalSaveInfo, Portal, FireMonument
from ember.world.save_points import ManualSavePoint, AutoSaveArea
from ember.world.placeables import SignText, ModularPiece, register_placeables
from ember.world.player import Player

if TYPE_CHECKING:
    from ember.core.context import PersistenceContext


def install(context: PersistenceContext) -> tuple[QuestBacklog, PortalRegistry]:
    """
    Create and activate the global world objects and register them as
    services, plus the placeable kinds.

    Call once after context.startup(), before the first load.
    """
    backlog = QuestBacklog()
    portals = PortalRegistry()
    for service in (backlog, portals):
        context.register_service(service)
        service.activate(context)
    register_placeables(context.placed_objects)
    return backlog, portals


__all__ = [
    "WorldEvent",
    "NotificationType",
    "Door",
    "DoorState",
    "PuzzleButton",
    "ButtonSequence",
    "DoorLink",
    "QuestBacklog",
    "QuestGiver",
    "PortalRegistry",
    "PortalSaveInfo",
    "Portal",
    "FireMonument",
    "ManualSavePoint",
    "AutoSaveArea",
    "SignText",
    "ModularPiece",
    "register_placeables",
    "Player",
    "install",
]
