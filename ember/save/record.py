"""
KeyedRecord - the unit of data passed to every save/load callback.

A record is an insertion-ordered mapping from string keys to tagged
values. Every value carries its ValueKind, so a read with the wrong
typed accessor fails loudly instead of silently handing back the
wrong type, while a read of an absent key quietly yields a default
(restoring from an older or partial save must never crash).

Keys are namespaced by the caller, usually with a stable object id:

    record.set(f"doorUnlocked_{door_id}", True)
    record.set(f"doorOpenState_{door_id}", DoorState.OPEN_INWARD)

    unlocked = record.get_bool(f"doorUnlocked_{door_id}")
    state = record.get_enum(f"doorOpenState_{door_id}", DoorState, DoorState.CLOSED)

Collections of unknown size are stored as a count key followed by
indexed entries:

    record.write_sequence("portalSave", [info.model_copy() for info in infos])
    infos = record.read_sequence("portalSave", model=PortalSaveInfo)
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, TypeVar

from pydantic import BaseModel, ValidationError

from ember.save.errors import CorruptSaveError, RecordTypeError


logger = logging.getLogger(__name__)

E = TypeVar('E', bound=Enum)
M = TypeVar('M', bound=BaseModel)

_MISSING: Any = object()


class ValueKind(Enum):
    """Tag stored alongside every record value."""
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BYTES = "bytes"
    ENUM = "enum"
    LIST = "list"
    RECORD = "record"
    MODEL = "model"


_PRIMITIVES = (bool, int, float, str)


@dataclass(frozen=True)
class TaggedValue:
    """
    A stored value and its kind.

    ENUM and MODEL values also keep the name of their Python type
    in type_name; the value itself is the member name / dumped dict.
    """
    kind: ValueKind
    value: Any
    type_name: str = ""


def tag_value(value: Any) -> TaggedValue:
    """
    Infer the kind of a Python value and normalise it for storage.

    Raises:
        RecordTypeError: If the value is not a supported type
    """
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return TaggedValue(ValueKind.BOOL, value)
    if isinstance(value, Enum):
        return TaggedValue(ValueKind.ENUM, value.name, type(value).__name__)
    if isinstance(value, int):
        return TaggedValue(ValueKind.INT, value)
    if isinstance(value, float):
        return TaggedValue(ValueKind.FLOAT, value)
    if isinstance(value, str):
        return TaggedValue(ValueKind.STRING, value)
    if isinstance(value, (bytes, bytearray)):
        return TaggedValue(ValueKind.BYTES, bytes(value))
    if isinstance(value, KeyedRecord):
        return TaggedValue(ValueKind.RECORD, value.copy())
    if isinstance(value, RecordReader):
        return TaggedValue(ValueKind.RECORD, value._record.copy())
    if isinstance(value, BaseModel):
        return TaggedValue(
            ValueKind.MODEL, value.model_dump(mode="json"), type(value).__name__
        )
    if isinstance(value, (list, tuple)):
        for item in value:
            if not isinstance(item, _PRIMITIVES):
                raise RecordTypeError(
                    f"Lists may only hold bool/int/float/str, got {type(item).__name__}"
                )
        return TaggedValue(ValueKind.LIST, list(value))

    raise RecordTypeError(f"Unsupported record value type: {type(value).__name__}")


class KeyedRecord:
    """
    Insertion-ordered string-keyed store of tagged values.

    Created fresh for each save or load pass; it mirrors live state
    transiently and is never the authority on that state.
    """

    def __init__(self):
        self._entries: dict[str, TaggedValue] = {}

    # Writing

    def set(self, key: str, value: Any) -> None:
        """
        Write a value, inferring its kind.

        Writing an existing key overwrites it.

        Raises:
            RecordTypeError: If the value type is not supported
            ValueError: If the key is empty
        """
        self._check_key(key)
        self._entries[key] = tag_value(value)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def write_sequence(self, prefix: str, items: Iterable[Any]) -> int:
        """
        Write items as "{prefix}_count" plus "{prefix}_0".."{prefix}_{n-1}".

        Returns:
            Number of entries written
        """
        count = 0
        for count, item in enumerate(items, start=1):
            self.set(f"{prefix}_{count - 1}", item)
        self.set(f"{prefix}_count", count)
        return count

    # Reading

    def has(self, key: str) -> bool:
        return key in self._entries

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def keys(self) -> list[str]:
        return list(self._entries)

    def kind_of(self, key: str) -> ValueKind | None:
        entry = self._entries.get(key)
        return entry.kind if entry else None

    def get(self, key: str, default: Any = None) -> Any:
        """
        Untyped read.

        Returns the stored Python value: ENUM values come back as the
        member name, MODEL values as a dict, RECORD values as a copy.
        """
        entry = self._entries.get(key)
        if entry is None:
            return default
        if entry.kind in (ValueKind.LIST, ValueKind.MODEL):
            return _copy_plain(entry.value)
        if entry.kind is ValueKind.RECORD:
            return entry.value.copy()
        return entry.value

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self._read(key, (ValueKind.BOOL,), default)

    def get_int(self, key: str, default: int = 0) -> int:
        return self._read(key, (ValueKind.INT,), default)

    def get_float(self, key: str, default: float = 0.0) -> float:
        value = self._read(key, (ValueKind.FLOAT, ValueKind.INT), _MISSING)
        return default if value is _MISSING else float(value)

    def get_str(self, key: str, default: str = "") -> str:
        return self._read(key, (ValueKind.STRING,), default)

    def get_bytes(self, key: str, default: bytes = b"") -> bytes:
        return self._read(key, (ValueKind.BYTES,), default)

    def get_list(self, key: str, default: list | None = None) -> list:
        value = self._read(key, (ValueKind.LIST,), _MISSING)
        if value is _MISSING:
            return list(default) if default is not None else []
        return list(value)

    def get_enum(self, key: str, enum_type: type[E], default: E | None = None) -> E | None:
        """
        Read an enum member.

        An unknown member name (e.g. a renamed member in an older save)
        yields the default.

        Raises:
            RecordTypeError: If the key holds another kind or another enum type
        """
        entry = self._entry(key, (ValueKind.ENUM,))
        if entry is None:
            return default
        if entry.type_name != enum_type.__name__:
            raise RecordTypeError(
                f"Key '{key}' holds enum {entry.type_name}, not {enum_type.__name__}"
            )
        try:
            return enum_type[entry.value]
        except KeyError:
            logger.warning(f"Unknown {enum_type.__name__} member '{entry.value}' for key '{key}'")
            return default

    def get_record(self, key: str) -> KeyedRecord:
        """Read a nested record (an empty record if absent)."""
        value = self._read(key, (ValueKind.RECORD,), _MISSING)
        return KeyedRecord() if value is _MISSING else value.copy()

    def get_model(self, key: str, model_type: type[M], default: M | None = None) -> M | None:
        """
        Read a pydantic model.

        Raises:
            RecordTypeError: If the key holds another kind, or data that
                does not validate against model_type
        """
        entry = self._entry(key, (ValueKind.MODEL,))
        if entry is None:
            return default
        try:
            return model_type.model_validate(entry.value)
        except ValidationError as e:
            raise RecordTypeError(
                f"Key '{key}' does not hold a valid {model_type.__name__}: {e}"
            ) from e

    def sequence_keys(self, prefix: str) -> list[str]:
        """Keys of a sequence written by write_sequence, skipping missing entries."""
        count = self.get_int(f"{prefix}_count")
        keys = []
        for i in range(count):
            key = f"{prefix}_{i}"
            if key in self._entries:
                keys.append(key)
            else:
                logger.warning(f"Sequence '{prefix}' is missing entry {i} of {count}")
        return keys

    def read_sequence(self, prefix: str, model: type[M] | None = None) -> list[Any]:
        """
        Read a sequence written by write_sequence.

        Args:
            prefix: Sequence key prefix
            model: If given, each entry is read with get_model(model)
        """
        keys = self.sequence_keys(prefix)
        if model is not None:
            return [self.get_model(key, model) for key in keys]
        return [self.get(key) for key in keys]

    def _check_key(self, key: str) -> None:
        if not isinstance(key, str):
            raise RecordTypeError(f"Record keys must be strings, got {type(key).__name__}")
        if not key:
            raise ValueError("Record keys must not be empty")

    def _entry(self, key: str, kinds: tuple[ValueKind, ...]) -> TaggedValue | None:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"No value for key '{key}', using default")
            return None
        if entry.kind not in kinds:
            wanted = "/".join(k.value for k in kinds)
            raise RecordTypeError(
                f"Key '{key}' holds a {entry.kind.value} value, not {wanted}"
            )
        return entry

    def _read(self, key: str, kinds: tuple[ValueKind, ...], default: Any) -> Any:
        entry = self._entry(key, kinds)
        return default if entry is None else entry.value

    # Serialization

    def copy(self) -> KeyedRecord:
        clone = KeyedRecord()
        for key, entry in self._entries.items():
            if entry.kind is ValueKind.RECORD:
                entry = TaggedValue(entry.kind, entry.value.copy())
            elif entry.kind in (ValueKind.LIST, ValueKind.MODEL):
                entry = TaggedValue(entry.kind, _copy_plain(entry.value), entry.type_name)
            clone._entries[key] = entry
        return clone

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Encode as JSON-safe data: {key: {"kind": ..., "value": ...}}."""
        encoded: dict[str, dict[str, Any]] = {}
        for key, entry in self._entries.items():
            item: dict[str, Any] = {"kind": entry.kind.value}
            if entry.kind is ValueKind.BYTES:
                item["value"] = base64.b64encode(entry.value).decode('ascii')
            elif entry.kind is ValueKind.RECORD:
                item["value"] = entry.value.to_dict()
            elif entry.kind in (ValueKind.LIST, ValueKind.MODEL):
                item["value"] = _copy_plain(entry.value)
            else:
                item["value"] = entry.value
            if entry.type_name:
                item["type"] = entry.type_name
            encoded[key] = item
        return encoded

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KeyedRecord:
        """
        Decode data produced by to_dict().

        Raises:
            CorruptSaveError: If an entry is malformed
        """
        record = cls()
        if not isinstance(data, dict):
            raise CorruptSaveError("Record data must be an object")

        for key, item in data.items():
            try:
                kind = ValueKind(item["kind"])
                raw = item["value"]
                type_name = item.get("type", "")
            except (KeyError, TypeError, ValueError) as e:
                raise CorruptSaveError(f"Malformed record entry '{key}': {e}") from e

            record._entries[key] = _decode_entry(key, kind, raw, type_name)
        return record

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RecordReader):
            other = other._record
        if not isinstance(other, KeyedRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"KeyedRecord({len(self._entries)} entries)"


def _copy_plain(value: Any) -> Any:
    """Deep-copy JSON-like data (lists and dicts of primitives)."""
    if isinstance(value, list):
        return [_copy_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _copy_plain(v) for k, v in value.items()}
    return value


_DECODE_TYPES: dict[ValueKind, tuple[type, ...]] = {
    ValueKind.BOOL: (bool,),
    ValueKind.INT: (int,),
    ValueKind.FLOAT: (float, int),
    ValueKind.STRING: (str,),
    ValueKind.ENUM: (str,),
    ValueKind.LIST: (list,),
    ValueKind.MODEL: (dict,),
}


def _decode_entry(key: str, kind: ValueKind, raw: Any, type_name: str) -> TaggedValue:
    if kind is ValueKind.RECORD:
        return TaggedValue(kind, KeyedRecord.from_dict(raw))

    if kind is ValueKind.BYTES:
        try:
            return TaggedValue(kind, base64.b64decode(raw, validate=True))
        except (binascii.Error, TypeError, ValueError) as e:
            raise CorruptSaveError(f"Bad bytes value for '{key}': {e}") from e

    expected = _DECODE_TYPES[kind]
    # bool must not pass as an int and vice versa
    wrong_bool = isinstance(raw, bool) != (kind is ValueKind.BOOL)
    if not isinstance(raw, expected) or wrong_bool:
        raise CorruptSaveError(f"Value for '{key}' does not match kind {kind.value}")

    if kind is ValueKind.FLOAT:
        raw = float(raw)
    elif kind is ValueKind.LIST:
        if not all(isinstance(item, _PRIMITIVES) for item in raw):
            raise CorruptSaveError(f"List value for '{key}' holds non-primitive items")
        raw = list(raw)
    return TaggedValue(kind, raw, type_name)


class RecordReader:
    """
    Read-only view of a KeyedRecord.

    Handed to load callbacks so restoring code can only read the
    record it was given.
    """

    def __init__(self, record: KeyedRecord):
        self._record = record

    def has(self, key: str) -> bool:
        return self._record.has(key)

    def __contains__(self, key: object) -> bool:
        return key in self._record

    def __len__(self) -> int:
        return len(self._record)

    def keys(self) -> list[str]:
        return self._record.keys()

    def kind_of(self, key: str) -> ValueKind | None:
        return self._record.kind_of(key)

    def get(self, key: str, default: Any = None) -> Any:
        return self._record.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self._record.get_bool(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        return self._record.get_int(key, default)

    def get_float(self, key: str, default: float = 0.0) -> float:
        return self._record.get_float(key, default)

    def get_str(self, key: str, default: str = "") -> str:
        return self._record.get_str(key, default)

    def get_bytes(self, key: str, default: bytes = b"") -> bytes:
        return self._record.get_bytes(key, default)

    def get_list(self, key: str, default: list | None = None) -> list:
        return self._record.get_list(key, default)

    def get_enum(self, key: str, enum_type: type[E], default: E | None = None) -> E | None:
        return self._record.get_enum(key, enum_type, default)

    def get_model(self, key: str, model_type: type[M], default: M | None = None) -> M | None:
        return self._record.get_model(key, model_type, default)

    def get_record(self, key: str) -> RecordReader:
        return RecordReader(self._record.get_record(key))

    def sequence_keys(self, prefix: str) -> list[str]:
        return self._record.sequence_keys(prefix)

    def read_sequence(self, prefix: str, model: type[M] | None = None) -> list[Any]:
        values = self._record.read_sequence(prefix, model)
        return [RecordReader(v) if isinstance(v, KeyedRecord) else v for v in values]

    def __repr__(self) -> str:
        return f"RecordReader({len(self._record)} entries)"
