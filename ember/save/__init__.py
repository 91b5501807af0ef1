"""
Save module - game state persistence.

Provides:
- Keyed records with typed getters and defaults
- Per-scene and global save files with checksum validation
- Two-phase loading (setup, then configure)
- Save points and respawn tracking
- Persistence of player-placed objects
- Player preferences
"""

from ember.save.errors import (
    PersistenceError,
    RecordTypeError,
    SaveError,
    CorruptSaveError,
    SceneNotFoundError,
    LoadInProgressError,
)
from ember.save.record import KeyedRecord, RecordReader, TaggedValue, ValueKind
from ember.save.store import PersistenceStore, SaveHeader
from ember.save.contracts import (
    SaveScope,
    SetupStage,
    ConfigureStage,
    PersistentObject,
    PersistentGlobalObject,
    PersistentSceneObject,
)
from ember.save.coordinator import PersistenceCoordinator, SaveEvent, LoadStep
from ember.save.placed import Placement, PlacedKind, WorldObjectRegistry
from ember.save.save_points import SavePoint, RespawnTracker
from ember.save.preferences import PreferenceStore, DEFAULT_PREFERENCES

__all__ = [
    # Errors
    "PersistenceError",
    "RecordTypeError",
    "SaveError",
    "CorruptSaveError",
    "SceneNotFoundError",
    "LoadInProgressError",
    # Records
    "KeyedRecord",
    "RecordReader",
    "TaggedValue",
    "ValueKind",
    # Storage
    "PersistenceStore",
    "SaveHeader",
    # Contracts
    "SaveScope",
    "SetupStage",
    "ConfigureStage",
    "PersistentObject",
    "PersistentGlobalObject",
    "PersistentSceneObject",
    # Coordination
    "PersistenceCoordinator",
    "SaveEvent",
    "LoadStep",
    # Placed objects
    "Placement",
    "PlacedKind",
    "WorldObjectRegistry",
    # Save points
    "SavePoint",
    "RespawnTracker",
    # Preferences
    "PreferenceStore",
    "DEFAULT_PREFERENCES",
]
