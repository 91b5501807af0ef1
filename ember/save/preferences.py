"""
Player preferences (volume, screen shake, view bobbing).

Preferences are not part of a save game: they live in their own file
under the save root and survive New Game and save deletion.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from ember.save.errors import CorruptSaveError, RecordTypeError
from ember.save.record import KeyedRecord


logger = logging.getLogger(__name__)


DEFAULT_PREFERENCES: dict[str, int | bool] = {
    "musicVolume": 8,
    "soundEffectsVolume": 8,
    "screenShake": True,
    "viewBobbing": True,
}


class PreferenceStore:
    """
    Key/value option storage with per-key defaults.

    Every set_* call writes the file immediately.
    """

    def __init__(self, path: str | Path, defaults: dict[str, int | bool] | None = None):
        self.path = Path(path)
        self.defaults = dict(DEFAULT_PREFERENCES if defaults is None else defaults)
        self._values: KeyedRecord | None = None

    def get_int(self, key: str) -> int:
        default = self.defaults.get(key)
        if default is None:
            logger.warning(f"No default int value set for preference: {key}")
            default = 0
        try:
            return self._load().get_int(key, int(default))
        except RecordTypeError:
            logger.warning(f"Preference {key} is not an int, using default")
            return int(default)

    def get_bool(self, key: str) -> bool:
        default = self.defaults.get(key)
        if default is None:
            logger.warning(f"No default bool value set for preference: {key}")
            default = False
        try:
            return self._load().get_bool(key, bool(default))
        except RecordTypeError:
            logger.warning(f"Preference {key} is not a bool, using default")
            return bool(default)

    def set_int(self, key: str, value: int) -> None:
        self._load().set(key, int(value))
        self.save()

    def set_bool(self, key: str, value: bool) -> None:
        self._load().set(key, bool(value))
        self.save()

    def reset(self) -> None:
        """Forget every stored value (defaults apply again)."""
        self._values = KeyedRecord()
        self.save()

    def save(self) -> None:
        values = self._load()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(values.to_dict(), f, indent=2)
        except OSError as e:
            logger.error(f"Could not write preferences to {self.path}: {e}")

    def _load(self) -> KeyedRecord:
        if self._values is not None:
            return self._values

        self._values = KeyedRecord()
        if self.path.exists():
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    self._values = KeyedRecord.from_dict(json.load(f))
            except (OSError, json.JSONDecodeError, CorruptSaveError) as e:
                logger.error(f"Could not read preferences from {self.path}: {e}")
        return self._values
