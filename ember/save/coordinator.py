"""
Persistence coordinator - decides when save/load callbacks run and in
which order.

Gameplay objects subscribe their callbacks to one of two lists:
- global: state spanning the whole playthrough (quests, portals)
- scene: state of the scene currently loaded (doors, buttons)

Saving runs every save callback against a fresh record per scope and
writes the records plus a header to the PersistenceStore.

Loading a scene is a cooperative sequence that advances one step per
frame (update()):
    unload -> load content -> read data -> setup -> configure -> place player
Setup always completes for every subscriber before any configure
callback runs, so configure callbacks may read other objects'
restored state. While the sequence is in flight loading_scene_data
is True; other systems check it to suppress sounds and notifications
that restored state would otherwise trigger.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, Iterator

from ember.core.transform import Pose
from ember.save.contracts import (
    ConfigureCallback,
    ConfigureStage,
    SaveCallback,
    SaveScope,
    SetupCallback,
    SetupStage,
    SubscriptionList,
)
from ember.save.errors import LoadInProgressError, SaveError, SceneNotFoundError
from ember.save.record import KeyedRecord, RecordReader
from ember.save.store import SaveHeader

if TYPE_CHECKING:
    from ember.core.context import PersistenceContext
    from ember.save.save_points import SavePoint


logger = logging.getLogger(__name__)


class SaveEvent(Enum):
    """Save system events."""
    SAVE_STARTED = auto()
    SAVE_COMPLETED = auto()
    SAVE_FAILED = auto()
    LOAD_STARTED = auto()
    LOAD_PROGRESS = auto()
    LOAD_COMPLETED = auto()
    LOAD_FAILED = auto()
    PLAYER_PLACED = auto()


class LoadStep(Enum):
    """Steps of a scene load, reported with LOAD_PROGRESS."""
    UNLOAD = auto()
    CONTENT = auto()
    READ = auto()
    SETUP = auto()
    CONFIGURE = auto()
    PLACE_PLAYER = auto()


class PersistenceCoordinator:
    """
    Orchestrates subscriptions, saving and scene loading.

    Usage:
        coordinator = context.coordinator
        coordinator.subscribe_scene(door.on_save, door.on_load_setup, door.on_load_configure)

        coordinator.save_game_data()
        coordinator.load_game_scene("Desert")
        while coordinator.update(dt):
            ...  # render loading panel
    """

    def __init__(self, context: PersistenceContext):
        self.context = context
        self.player_name = context.config.default_player_name

        self._global = SubscriptionList(SaveScope.GLOBAL)
        self._scene = SubscriptionList(SaveScope.SCENE)

        self._loading = False
        self._loading_scene: str | None = None
        self._loading_after_death = False
        self._load_steps: Iterator[LoadStep] | None = None

    # Properties

    @property
    def loading_scene_data(self) -> bool:
        """True while a scene load is in flight."""
        return self._loading

    @property
    def loading_scene(self) -> str | None:
        """Name of the scene being loaded, if any."""
        return self._loading_scene

    @property
    def loading_after_death(self) -> bool:
        return self._loading_after_death

    @loading_after_death.setter
    def loading_after_death(self, value: bool) -> None:
        self._loading_after_death = value

    @property
    def global_subscriber_count(self) -> int:
        return len(self._global)

    @property
    def scene_subscriber_count(self) -> int:
        return len(self._scene)

    # Subscriptions

    def subscribe_global(
        self,
        on_save: SaveCallback,
        on_setup: SetupCallback,
        on_configure: ConfigureCallback,
        weak: bool = True,
    ) -> bool:
        """
        Subscribe a global object. Subscribing the same callbacks twice is a no-op.

        Callbacks are held weakly by default. Lambdas and closures have no
        other owner and must be subscribed with weak=False.
        """
        return self._global.add(on_save, on_setup, on_configure, weak=weak)

    def unsubscribe_global(
        self,
        on_save: SaveCallback,
        on_setup: SetupCallback,
        on_configure: ConfigureCallback,
    ) -> bool:
        """Unsubscribe a global object. Unknown callbacks are ignored."""
        return self._global.remove(on_save, on_setup, on_configure)

    def subscribe_scene(
        self,
        on_save: SaveCallback,
        on_setup: SetupCallback,
        on_configure: ConfigureCallback,
        weak: bool = True,
    ) -> bool:
        """Subscribe an object of the active scene. Same weak rules as subscribe_global."""
        return self._scene.add(on_save, on_setup, on_configure, weak=weak)

    def unsubscribe_scene(
        self,
        on_save: SaveCallback,
        on_setup: SetupCallback,
        on_configure: ConfigureCallback,
    ) -> bool:
        """Unsubscribe a scene object. Unknown callbacks are ignored."""
        return self._scene.remove(on_save, on_setup, on_configure)

    # Saving

    def save_game_data(self, next_scene: str | None = None) -> bool:
        """
        Save global and scene state.

        Args:
            next_scene: Scene to resume in when the save is loaded
                (defaults to the active scene). Portals pass their
                destination so a reload continues on the other side.

        Returns:
            True if all files were written
        """
        event_bus = self.context.event_bus
        scene_name = self.context.scenes.current_name

        if self._loading:
            logger.warning("Save rejected: a scene load is in progress")
            event_bus.publish(SaveEvent.SAVE_FAILED, error="loading")
            return False
        if scene_name is None and next_scene is None:
            logger.warning("Save rejected: no scene is active")
            event_bus.publish(SaveEvent.SAVE_FAILED, error="no scene")
            return False

        target_scene = next_scene or scene_name
        event_bus.publish(SaveEvent.SAVE_STARTED, scene=scene_name, next_scene=target_scene)

        try:
            global_record = KeyedRecord()
            scene_record = KeyedRecord()

            for _, (on_save, _, _) in self._global.live():
                on_save(global_record)
            for _, (on_save, _, _) in self._scene.live():
                on_save(scene_record)
            if scene_name is not None:
                self.context.placed_objects.save(scene_record)

            header = SaveHeader(
                last_scene=target_scene,
                player_name=self.player_name,
                area_name=self.context.scenes.area_name(target_scene),
            )

            # Header last: it marks the save as complete
            store = self.context.store
            if scene_name is not None:
                store.write_scene(scene_name, scene_record)
            store.write_global(global_record)
            store.write_header(header)

        except SaveError as e:
            logger.error(f"Save failed: {e}")
            event_bus.publish(SaveEvent.SAVE_FAILED, error=str(e))
            return False
        except Exception as e:
            logger.exception("Save failed in a save callback")
            event_bus.publish(SaveEvent.SAVE_FAILED, error=str(e))
            return False

        logger.info(
            f"Game data saved ({len(global_record)} global keys, "
            f"{len(scene_record)} keys for {scene_name})"
        )
        event_bus.publish(SaveEvent.SAVE_COMPLETED, scene=scene_name, next_scene=target_scene)
        return True

    # Loading

    def load_game_info(self) -> SaveHeader | None:
        """
        Read the save header without restoring any state.

        Returns:
            The header, or None if no save exists (offer New Game)
        """
        header = self.context.store.read_header()
        if header is None:
            logger.info(f"No saved game found in {self.context.store.save_path}")
        return header

    def load_game(self, starting_scene: str | None = None) -> bool:
        """
        Continue the saved game, or start in the starting scene if
        there is no save.
        """
        starting_scene = starting_scene or self.context.config.starting_scene
        header = self.load_game_info()
        scene_name = starting_scene

        if header is not None:
            self.player_name = header.player_name or self.player_name
            if self.context.scenes.has_scene(header.last_scene):
                scene_name = header.last_scene
            else:
                logger.warning(
                    f"Saved scene {header.last_scene!r} is not registered, "
                    f"starting in {starting_scene!r}"
                )
        return self.load_game_scene(scene_name)

    def new_game(self, player_name: str | None = None) -> None:
        """
        Discard the active save and reset restoration state.

        Raises:
            LoadInProgressError: If a scene load is in flight
        """
        if self._loading:
            raise LoadInProgressError(
                f"Cannot start a new game while loading {self._loading_scene!r}"
            )
        self.context.store.delete_save()
        self.context.respawn.reset()
        self._global.reset_restored()
        self.player_name = player_name or self.context.config.default_player_name
        logger.info(f"Starting new game as {self.player_name}")

    def load_game_scene(self, scene_name: str) -> bool:
        """
        Begin loading a scene and restoring its saved state.

        The first step runs immediately; call update() once per frame
        (or finish_loading()) to drive the rest.

        Returns:
            False if a load is already in flight

        Raises:
            SceneNotFoundError: If the scene is not registered
        """
        if self._loading:
            logger.warning(
                f"Load of {scene_name!r} rejected: already loading {self._loading_scene!r}"
            )
            return False
        if not self.context.scenes.has_scene(scene_name):
            raise SceneNotFoundError(f"No scene registered with name: {scene_name}")

        self._loading = True
        self._loading_scene = scene_name
        self._load_steps = self._load_scene_steps(scene_name)

        logger.info(f"Loading scene: {scene_name}")
        self.context.event_bus.publish(
            SaveEvent.LOAD_STARTED,
            scene=scene_name,
            area_name=self.context.scenes.area_name(scene_name),
        )
        self._advance()
        return True

    def update(self, dt: float) -> bool:
        """
        Advance an in-flight load by one step.

        Returns:
            True while a load is still in flight
        """
        if self._loading:
            self._advance()
        return self._loading

    def finish_loading(self) -> None:
        """Run the in-flight load to completion."""
        while self._loading:
            self._advance()

    def _advance(self) -> None:
        steps = self._load_steps
        if steps is None:
            return
        try:
            step = next(steps)
        except StopIteration:
            # A LOAD_COMPLETED handler may already have started another load
            if self._load_steps is steps:
                self._load_steps = None
            return
        except Exception:
            self._abort_load()
            raise
        self.context.event_bus.publish(
            SaveEvent.LOAD_PROGRESS, scene=self._loading_scene, step=step
        )

    def _abort_load(self) -> None:
        scene_name = self._loading_scene
        logger.error(f"Loading {scene_name!r} failed")
        self._loading = False
        self._loading_scene = None
        self._load_steps = None
        self._set_player_controls(True)
        self.context.event_bus.publish(SaveEvent.LOAD_FAILED, scene=scene_name)

    def _load_scene_steps(self, scene_name: str) -> Iterator[LoadStep]:
        context = self.context
        scenes = context.scenes

        self._set_player_controls(False)

        # Unload: objects of the old scene unsubscribe as they deactivate
        scenes.unload_current()
        context.placed_objects.clear()
        stale = self._scene.clear()
        if stale:
            logger.warning(f"Dropped {stale} scene subscribers left after unload")
        yield LoadStep.UNLOAD

        # Content: objects of the new scene subscribe as they activate
        scene = scenes.load(scene_name)
        yield LoadStep.CONTENT

        global_record = context.store.read_global()
        scene_record = context.store.read_scene(scene_name)
        if scene_record is None:
            logger.info(f"No saved data for {scene_name}, keeping authored state")
        yield LoadStep.READ

        # Setup: every subscriber reads its own state
        scene_subs = self._scene.live()
        global_subs = self._global.live()

        if scene_record is not None:
            logger.debug(f"Scene load stage 1: setup ({len(scene_subs)} subscribers)")
            stage = SetupStage(RecordReader(scene_record), scene_name, SaveScope.SCENE)
            context.placed_objects.restore(stage, scene.world)
            for subscription, (_, on_setup, _) in scene_subs:
                on_setup(stage)
                subscription.restored = True

        pending = [(sub, callbacks) for sub, callbacks in global_subs if not sub.restored]
        if global_record is not None:
            logger.debug(f"Global load stage 1: setup ({len(pending)} subscribers)")
            stage = SetupStage(RecordReader(global_record), scene_name, SaveScope.GLOBAL)
            for _, (_, on_setup, _) in pending:
                on_setup(stage)
        for subscription, _ in pending:
            subscription.restored = True
        yield LoadStep.SETUP

        # Configure: cross-object reads are safe from here on
        if scene_record is not None:
            logger.debug("Scene load stage 2: configure")
            stage = ConfigureStage(
                RecordReader(scene_record), scene_name, SaveScope.SCENE, context
            )
            for _, (_, _, on_configure) in scene_subs:
                on_configure(stage)

        if global_record is not None:
            logger.debug("Global load stage 2: configure")
            stage = ConfigureStage(
                RecordReader(global_record), scene_name, SaveScope.GLOBAL, context
            )
            for _, (_, _, on_configure) in global_subs:
                on_configure(stage)
        yield LoadStep.CONFIGURE

        pose = self.respawn_pose()
        if pose is not None and context.player is not None:
            context.player.move_to(pose)
            context.event_bus.publish(SaveEvent.PLAYER_PLACED, scene=scene_name, pose=pose)
        yield LoadStep.PLACE_PLAYER

        self._loading = False
        self._loading_scene = None
        self._loading_after_death = False
        self._set_player_controls(True)
        logger.info(f"Finished loading data for {scene_name}")
        context.event_bus.publish(SaveEvent.LOAD_COMPLETED, scene=scene_name)

    def _set_player_controls(self, enabled: bool) -> None:
        if self.context.player is not None:
            self.context.player.set_controls_enabled(enabled)

    # Save points / respawn

    def set_last_used_save_point(self, point: SavePoint) -> None:
        """Make a save point the player's respawn anchor."""
        scene_name = self.context.scenes.current_name or ""
        self.context.respawn.mark_used(point, scene_name)

    def respawn_pose(self) -> Pose | None:
        """
        Where the player should appear in the active scene.

        The last used save point if it is in this scene (raised by
        the configured height offset), else the scene's default spawn.
        """
        pose = self.context.respawn.respawn_pose()
        if pose is not None:
            return pose.offset(dy=self.context.config.respawn_height_offset)

        scene = self.context.scenes.current
        if scene is not None and scene.default_spawn is not None:
            return scene.default_spawn.clone()
        return None

    def respawn_player(self) -> bool:
        """
        Move the player to the respawn pose after death.

        Returns:
            False if there is no player or no pose to respawn at
        """
        pose = self.respawn_pose()
        if pose is None or self.context.player is None:
            return False
        self.context.player.move_to(pose)
        self.context.event_bus.publish(
            SaveEvent.PLAYER_PLACED, scene=self.context.scenes.current_name, pose=pose
        )
        return True
