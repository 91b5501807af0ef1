import json

import pytest

from ember.save.errors import SaveError
from ember.save.record import KeyedRecord
from ember.save.store import PersistenceStore, SaveHeader, calculate_checksum


@pytest.fixture
def store(tmp_path):
    return PersistenceStore(tmp_path / "Maps")


def make_record(**values):
    record = KeyedRecord()
    for key, value in values.items():
        record.set(key, value)
    return record


def test_no_save_reads_as_absent(store):
    assert not store.has_save()
    assert store.read_header() is None
    assert store.read_global() is None
    assert store.read_scene("The Village") is None
    assert store.scene_names() == []


def test_header_round_trip(store):
    store.write_header(SaveHeader(last_scene="Desert", player_name="Ash", area_name="Red Desert"))

    header = store.read_header()
    assert store.has_save()
    assert header.last_scene == "Desert"
    assert header.player_name == "Ash"
    assert header.area_name == "Red Desert"
    assert header.saved_at


def test_records_round_trip(store):
    store.write_global(make_record(questBacklog_player=["q1"]))
    store.write_scene("The Village", make_record(doorUnlocked_A=True))

    assert store.read_global().get_list("questBacklog_player") == ["q1"]
    assert store.read_scene("The Village").get_bool("doorUnlocked_A") is True
    assert store.read_scene("Desert") is None


def test_scenes_are_stored_independently(store):
    store.write_scene("The Village", make_record(a=1))
    store.write_scene("Desert", make_record(a=2))
    store.write_scene("The Village", make_record(a=3))

    assert store.scene_names() == ["Desert", "The Village"]
    assert store.read_scene("Desert").get_int("a") == 2
    assert store.read_scene("The Village").get_int("a") == 3


def test_envelope_format(store):
    store.write_scene("Desert", make_record(a=1))

    path = store.save_path / "Desert.scene.json"
    envelope = json.loads(path.read_text())
    assert envelope["format"] == "ember-save"
    assert envelope["kind"] == "scene"
    assert envelope["scene"] == "Desert"
    assert envelope["checksum"] == calculate_checksum(envelope)
    assert not list(store.save_path.glob("*.tmp"))


def test_tampered_file_is_treated_as_absent(store):
    store.write_global(make_record(a=1))
    path = store.save_path / PersistenceStore.GLOBAL_FILE
    envelope = json.loads(path.read_text())
    envelope["data"]["a"]["value"] = 99
    path.write_text(json.dumps(envelope))

    assert store.read_global() is None


def test_checksum_validation_can_be_disabled(tmp_path):
    store = PersistenceStore(tmp_path / "Maps", validate_checksums=False)
    store.write_global(make_record(a=1))
    path = store.save_path / PersistenceStore.GLOBAL_FILE
    envelope = json.loads(path.read_text())
    envelope["data"]["a"]["value"] = 99
    path.write_text(json.dumps(envelope))

    assert store.read_global().get_int("a") == 99


@pytest.mark.parametrize("content", [
    "{not json",
    json.dumps({"format": "other", "version": 1, "kind": "global", "data": {}}),
    json.dumps({"format": "ember-save", "version": 1, "kind": "scene", "data": {}}),
    json.dumps({"format": "ember-save", "version": 99, "kind": "global", "data": {}}),
    json.dumps({"format": "ember-save", "version": 1, "kind": "global", "data": {"a": {"kind": "int"}}}),
])
def test_corrupt_files_are_treated_as_absent(store, content):
    store.save_path.mkdir(parents=True)
    (store.save_path / PersistenceStore.GLOBAL_FILE).write_text(content)

    assert store.read_global() is None


def test_scene_names_must_be_file_safe(store):
    with pytest.raises(SaveError):
        store.write_scene("../escape", KeyedRecord())
    with pytest.raises(SaveError):
        store.write_scene("", KeyedRecord())


def test_delete_save(store):
    store.write_header(SaveHeader(last_scene="Desert"))
    store.write_scene("Desert", KeyedRecord())

    assert store.delete_save()
    assert not store.has_save()
    assert store.scene_names() == []
    assert not store.delete_save()


def test_set_save_path(store, tmp_path):
    store.write_header(SaveHeader(last_scene="Desert"))
    store.set_save_path(tmp_path / "Other")

    assert not store.has_save()
