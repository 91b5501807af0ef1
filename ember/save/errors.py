"""
Persistence error types.

Most recoverable conditions (missing keys, missing saves, duplicate
subscriptions) never raise; these exceptions cover the cases where
a caller made a programming error or a file on disk is unusable.
"""

from __future__ import annotations


class PersistenceError(Exception):
    """Base class for persistence errors."""


class RecordTypeError(PersistenceError, TypeError):
    """A record key holds a different kind than the one requested,
    or a value of an unsupported type was written."""


class SaveError(PersistenceError):
    """Saved data could not be written."""


class CorruptSaveError(PersistenceError):
    """A save file exists but is unreadable or failed validation."""


class SceneNotFoundError(PersistenceError, KeyError):
    """No scene is registered under the requested name."""


class LoadInProgressError(PersistenceError):
    """An operation was attempted while a scene load is in flight."""
