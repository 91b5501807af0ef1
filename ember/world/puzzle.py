"""
Puzzle buttons and button sequences.

A button drives linked doors: pressing it flips each door away from
its default state, releasing it puts the door back. A sequence opens
its doors once its buttons were pressed in order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ember.save.contracts import ConfigureStage, SetupStage
from ember.save.record import KeyedRecord
from ember.world.base import SceneObject
from ember.world.door import Door


logger = logging.getLogger(__name__)


@dataclass
class DoorLink:
    """
    A door affected by a puzzle element.

    Attributes:
        door: The linked door
        open_inwards: Direction the door opens in
        open_by_default: Whether the door is open while the button is up
    """
    door: Door
    open_inwards: bool = True
    open_by_default: bool = False


class PuzzleButton(SceneObject):
    """
    A pressure button. Stays pressed once pressed unless latch is False.

    Saved keys (scene record):
        buttonPressed_<id>  bool
    """

    def __init__(self, persistent_id: str, doors: list[DoorLink] | None = None, latch: bool = True):
        super().__init__(persistent_id)
        self.doors = list(doors or [])
        self.latch = latch
        self.pressed = False
        self.sequence: ButtonSequence | None = None

    def press(self) -> None:
        if self.pressed:
            return
        self.pressed = True
        self._apply_doors()
        self.play_sound("buttonPress")
        if self.sequence is not None:
            self.sequence.button_pressed(self)

    def release(self) -> None:
        if not self.pressed or self.latch:
            return
        self.pressed = False
        self._apply_doors()
        self.play_sound("buttonRelease")

    def reset(self) -> None:
        """Pop the button back up, latched or not."""
        if not self.pressed:
            return
        self.pressed = False
        self._apply_doors()

    def _apply_doors(self) -> None:
        for link in self.doors:
            # Pressed inverts the default
            if self.pressed == link.open_by_default:
                link.door.close()
            else:
                link.door.open(link.open_inwards)

    def on_save(self, record: KeyedRecord) -> None:
        record.set(self.key("buttonPressed"), self.pressed)

    def on_load_setup(self, stage: SetupStage) -> None:
        self.pressed = stage.record.get_bool(self.key("buttonPressed"))

    def on_load_configure(self, stage: ConfigureStage) -> None:
        # Doors restored their own state in setup; only a pressed button overrides it
        if self.pressed:
            self._apply_doors()


class ButtonSequence(SceneObject):
    """
    Buttons that must be pressed in a given order.

    A wrong button resets progress, pops the buttons back up and puts
    the linked doors back in their default state. Completing the
    sequence flips the doors away from their default for good.

    Saved keys (scene record):
        sequenceProgress_<id>   int
        sequenceComplete_<id>   bool
    """

    def __init__(self, persistent_id: str, buttons: list[PuzzleButton], doors: list[DoorLink] | None = None):
        super().__init__(persistent_id)
        self.buttons = list(buttons)
        self.doors = list(doors or [])
        self.progress = 0
        self.complete = False
        for button in self.buttons:
            button.sequence = self

    def button_pressed(self, button: PuzzleButton) -> None:
        if self.complete or self.restoring:
            return

        if self.buttons[self.progress] is button:
            self.progress += 1
            if self.progress == len(self.buttons):
                self.complete = True
                self.play_sound("puzzleSolved")
                self._apply_doors(solved=True)
            return

        logger.debug(f"Sequence {self.persistent_id} reset")
        self.play_sound("puzzleFailed")
        # Every other button pops back up so the order can be retried
        for other in self.buttons:
            if other is not button:
                other.reset()
        self.progress = 1 if self.buttons[0] is button else 0
        if self.progress == 0:
            button.reset()
        self._apply_doors(solved=False)

    def _apply_doors(self, solved: bool) -> None:
        for link in self.doors:
            # Solving inverts the default
            if solved == link.open_by_default:
                link.door.close()
            else:
                link.door.open(link.open_inwards)

    def on_save(self, record: KeyedRecord) -> None:
        record.set(self.key("sequenceProgress"), self.progress)
        record.set(self.key("sequenceComplete"), self.complete)

    def on_load_setup(self, stage: SetupStage) -> None:
        self.progress = stage.record.get_int(self.key("sequenceProgress"))
        self.complete = stage.record.get_bool(self.key("sequenceComplete"))
        if not 0 <= self.progress <= len(self.buttons):
            logger.warning(f"Sequence {self.persistent_id} has invalid progress {self.progress}")
            self.progress = 0

    def on_load_configure(self, stage: ConfigureStage) -> None:
        if self.complete:
            self._apply_doors(solved=True)
