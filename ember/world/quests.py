"""
Quest backlog (global) and quest givers (scene).

The backlog is the authority on which quests were accepted and handed
in. A quest giver decides what to offer from the backlog's state, so
it only does so in the configure phase, once the backlog is restored.
"""

from __future__ import annotations

import logging

from ember.save.contracts import ConfigureStage, PersistentGlobalObject, SetupStage
from ember.save.record import KeyedRecord
from ember.world.base import SceneObject
from ember.world.events import NotificationType, WorldEvent


logger = logging.getLogger(__name__)


class QuestBacklog(PersistentGlobalObject):
    """
    Accepted and completed quests for the whole playthrough.

    Saved keys (global record):
        questBacklog_<id>       list[str]
        questsCompleted_<id>    list[str]
    """

    def __init__(self, persistent_id: str = "player"):
        super().__init__(persistent_id)
        self.accepted: list[str] = []
        self.completed: list[str] = []

    def is_accepted(self, quest_id: str) -> bool:
        return quest_id in self.accepted

    def is_completed(self, quest_id: str) -> bool:
        return quest_id in self.completed

    def accept(self, quest_id: str) -> bool:
        if self.is_accepted(quest_id) or self.is_completed(quest_id):
            return False
        self.accepted.append(quest_id)
        logger.info(f"Quest accepted: {quest_id}")
        return True

    def complete(self, quest_id: str) -> bool:
        """Hand in an accepted quest."""
        if not self.is_accepted(quest_id):
            return False
        self.accepted.remove(quest_id)
        self.completed.append(quest_id)
        logger.info(f"Quest completed: {quest_id}")
        context = self.context
        if context is not None and not context.coordinator.loading_scene_data:
            context.event_bus.publish(
                WorldEvent.NOTIFICATION,
                notification=NotificationType.QUEST_COMPLETED,
                quest=quest_id,
            )
        return True

    def on_save(self, record: KeyedRecord) -> None:
        record.set(self.key("questBacklog"), self.accepted)
        record.set(self.key("questsCompleted"), self.completed)

    def on_load_setup(self, stage: SetupStage) -> None:
        self.accepted = [str(q) for q in stage.record.get_list(self.key("questBacklog"))]
        self.completed = [str(q) for q in stage.record.get_list(self.key("questsCompleted"))]


class QuestGiver(SceneObject):
    """
    An NPC offering quests in order.

    Saved keys (scene record):
        questGiverMet_<id>  bool
    """

    def __init__(self, persistent_id: str, quests: list[str]):
        super().__init__(persistent_id)
        self.quests = list(quests)
        self.met = False
        self.offered_quest: str | None = None

    def talk(self) -> str | None:
        """Talk to the giver. Returns the quest on offer, if any."""
        self.met = True
        self.refresh_offer()
        return self.offered_quest

    def refresh_offer(self, backlog: QuestBacklog | None = None) -> None:
        if backlog is None and self.context is not None:
            backlog = self.context.get_service(QuestBacklog)
        if backlog is None:
            logger.warning(f"Quest giver {self.persistent_id} has no quest backlog")
            self.offered_quest = None
            return

        self.offered_quest = next(
            (
                q for q in self.quests
                if not backlog.is_accepted(q) and not backlog.is_completed(q)
            ),
            None,
        )

    def on_save(self, record: KeyedRecord) -> None:
        record.set(self.key("questGiverMet"), self.met)

    def on_load_setup(self, stage: SetupStage) -> None:
        self.met = stage.record.get_bool(self.key("questGiverMet"))

    def on_load_configure(self, stage: ConfigureStage) -> None:
        self.refresh_offer(stage.service(QuestBacklog))
