"""
Durable storage for saved game data.

A save group directory holds three kinds of JSON file:
- LoadInfo.json: the header (last scene, player name, area name),
  readable on its own to render a "Continue" menu entry
- GlobalSave.json: the global record
- <scene>.scene.json: one record per scene, each persisted
  independently, so returning to a scene restores the state saved
  the last time it was active

Every file is an envelope validated with jsonschema and protected by
a SHA-256 checksum. Unreadable or invalid files are logged and
treated as absent; loading degrades to defaults instead of crashing.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any

import jsonschema
from pydantic import BaseModel, ValidationError

from ember.save.errors import CorruptSaveError, SaveError
from ember.save.record import KeyedRecord


logger = logging.getLogger(__name__)


ENVELOPE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["format", "version", "kind", "data"],
    "properties": {
        "format": {"const": "ember-save"},
        "version": {"type": "integer", "minimum": 1},
        "kind": {"enum": ["header", "global", "scene"]},
        "scene": {"type": "string"},
        "data": {"type": "object"},
        "checksum": {"type": "string"},
    },
}


class SaveHeader(BaseModel):
    """Summary of a save, readable without loading any game state."""
    last_scene: str
    player_name: str = ""
    area_name: str = ""
    saved_at: str = ""


class PersistenceStore:
    """
    Reads and writes the files of one save group.

    Usage:
        store = PersistenceStore(Path("saves/Maps"))
        store.write_scene("Desert", scene_record)
        record = store.read_scene("Desert")  # None if never saved
    """

    FORMAT = "ember-save"
    VERSION = 1

    HEADER_FILE = "LoadInfo.json"
    GLOBAL_FILE = "GlobalSave.json"
    SCENE_SUFFIX = ".scene.json"

    def __init__(self, save_path: str | Path, validate_checksums: bool = True):
        self._save_path = Path(save_path)
        self.validate_checksums = validate_checksums

    @property
    def save_path(self) -> Path:
        return self._save_path

    def set_save_path(self, save_path: str | Path) -> None:
        """Switch to another save group directory."""
        self._save_path = Path(save_path)

    def has_save(self) -> bool:
        """Whether a header exists for this save group."""
        return self._header_path().exists()

    # Header

    def write_header(self, header: SaveHeader) -> None:
        if not header.saved_at:
            header = header.model_copy(update={"saved_at": datetime.now().isoformat()})
        self._write_envelope(self._header_path(), "header", header.model_dump())

    def read_header(self) -> SaveHeader | None:
        """Read the header, or None if there is no usable save."""
        data = self._try_read(self._header_path(), "header")
        if data is None:
            return None
        try:
            return SaveHeader.model_validate(data)
        except ValidationError as e:
            logger.error(f"Invalid save header in {self._header_path()}: {e}")
            return None

    # Records

    def write_global(self, record: KeyedRecord) -> None:
        self._write_envelope(self._global_path(), "global", record.to_dict())

    def read_global(self) -> KeyedRecord | None:
        return self._read_record(self._global_path(), "global")

    def write_scene(self, scene_name: str, record: KeyedRecord) -> None:
        self._write_envelope(
            self._scene_path(scene_name), "scene", record.to_dict(), scene=scene_name
        )

    def read_scene(self, scene_name: str) -> KeyedRecord | None:
        return self._read_record(self._scene_path(scene_name), "scene")

    def scene_names(self) -> list[str]:
        """Names of all scenes with a saved record."""
        if not self._save_path.exists():
            return []
        return sorted(
            path.name[:-len(self.SCENE_SUFFIX)]
            for path in self._save_path.glob(f"*{self.SCENE_SUFFIX}")
        )

    def delete_save(self) -> bool:
        """Delete every file of this save group."""
        if not self._save_path.exists():
            return False
        try:
            shutil.rmtree(self._save_path)
        except OSError as e:
            logger.error(f"Could not delete save directory {self._save_path}: {e}")
            return False
        logger.info(f"Deleted save data in {self._save_path}")
        return True

    # Paths

    def _header_path(self) -> Path:
        return self._save_path / self.HEADER_FILE

    def _global_path(self) -> Path:
        return self._save_path / self.GLOBAL_FILE

    def _scene_path(self, scene_name: str) -> Path:
        if not scene_name or any(c in scene_name for c in '/\\:') or scene_name in ('.', '..'):
            raise SaveError(f"Scene name cannot be used as a file name: {scene_name!r}")
        return self._save_path / f"{scene_name}{self.SCENE_SUFFIX}"

    # Envelopes

    def _write_envelope(self, path: Path, kind: str, data: dict, scene: str = "") -> None:
        envelope: dict[str, Any] = {
            "format": self.FORMAT,
            "version": self.VERSION,
            "kind": kind,
            "data": data,
        }
        if scene:
            envelope["scene"] = scene
        envelope["checksum"] = calculate_checksum(envelope)

        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(envelope, f, indent=2)
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            raise SaveError(f"Could not write save file {path}: {e}") from e

    def _read_envelope(self, path: Path, kind: str) -> dict:
        """
        Read and validate an envelope.

        Raises:
            CorruptSaveError: If the file is unreadable or invalid
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                envelope = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CorruptSaveError(f"Could not read {path}: {e}") from e

        try:
            jsonschema.validate(instance=envelope, schema=ENVELOPE_SCHEMA)
        except jsonschema.ValidationError as e:
            raise CorruptSaveError(f"Invalid save file {path}: {e.message}") from e

        if envelope["kind"] != kind:
            raise CorruptSaveError(f"{path} holds {envelope['kind']} data, expected {kind}")
        if envelope["version"] > self.VERSION:
            raise CorruptSaveError(
                f"{path} was written by a newer version ({envelope['version']})"
            )

        if self.validate_checksums:
            checksum = envelope.get("checksum")
            if checksum and not verify_checksum(envelope, checksum):
                raise CorruptSaveError(f"Checksum mismatch in {path}")

        return envelope["data"]

    def _try_read(self, path: Path, kind: str) -> dict | None:
        if not path.exists():
            return None
        try:
            return self._read_envelope(path, kind)
        except CorruptSaveError as e:
            logger.error(str(e))
            return None

    def _read_record(self, path: Path, kind: str) -> KeyedRecord | None:
        data = self._try_read(path, kind)
        if data is None:
            return None
        try:
            return KeyedRecord.from_dict(data)
        except CorruptSaveError as e:
            logger.error(f"Could not decode record in {path}: {e}")
            return None


def calculate_checksum(envelope: dict) -> str:
    """Checksum of an envelope, ignoring any checksum it already holds."""
    content = {k: v for k, v in envelope.items() if k != "checksum"}
    json_str = json.dumps(content, sort_keys=True, separators=(',', ':'))
    hash_bytes = hashlib.sha256(json_str.encode('utf-8')).digest()
    return base64.b64encode(hash_bytes).decode('ascii')


def verify_checksum(envelope: dict, expected_checksum: str) -> bool:
    return calculate_checksum(envelope) == expected_checksum
