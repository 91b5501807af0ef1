"""
Persistence configuration.
"""

from __future__ import annotations

from pathlib import Path


class PersistenceConfig:
    """Configuration for the persistence core."""

    def __init__(
        self,
        save_root: str | Path = "game/saves",
        save_directory: str = "Maps",
        starting_scene: str = "The Village",
        default_player_name: str = "Player",
        validate_checksums: bool = True,
        respawn_height_offset: float = 3.0,
        preferences_file: str = "preferences.json",
    ):
        self.save_root = Path(save_root)
        self.save_directory = save_directory
        self.starting_scene = starting_scene
        self.default_player_name = default_player_name
        self.validate_checksums = validate_checksums
        self.respawn_height_offset = respawn_height_offset
        self.preferences_file = preferences_file

    @property
    def save_path(self) -> Path:
        """Directory holding the active save group."""
        return self.save_root / self.save_directory

    @property
    def preferences_path(self) -> Path:
        return self.save_root / self.preferences_file
