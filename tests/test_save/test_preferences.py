import json

from ember.save.preferences import PreferenceStore


def test_defaults(tmp_path):
    prefs = PreferenceStore(tmp_path / "preferences.json")

    assert prefs.get_int("musicVolume") == 8
    assert prefs.get_int("soundEffectsVolume") == 8
    assert prefs.get_bool("screenShake") is True
    assert prefs.get_bool("viewBobbing") is True


def test_unknown_key_without_default(tmp_path):
    prefs = PreferenceStore(tmp_path / "preferences.json")

    assert prefs.get_int("fieldOfView") == 0
    assert prefs.get_bool("subtitles") is False


def test_values_are_written_immediately(tmp_path):
    path = tmp_path / "preferences.json"
    prefs = PreferenceStore(path)
    prefs.set_int("musicVolume", 3)
    prefs.set_bool("screenShake", False)

    reloaded = PreferenceStore(path)
    assert reloaded.get_int("musicVolume") == 3
    assert reloaded.get_bool("screenShake") is False


def test_wrong_kind_falls_back_to_default(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text(json.dumps({"musicVolume": {"kind": "string", "value": "loud"}}))

    assert PreferenceStore(path).get_int("musicVolume") == 8


def test_corrupt_file_uses_defaults(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text("{broken")

    assert PreferenceStore(path).get_int("musicVolume") == 8


def test_reset(tmp_path):
    prefs = PreferenceStore(tmp_path / "preferences.json")
    prefs.set_int("musicVolume", 1)
    prefs.reset()

    assert prefs.get_int("musicVolume") == 8


def test_preferences_survive_new_game(context):
    context.preferences.set_int("musicVolume", 2)
    context.coordinator.new_game()

    assert context.preferences.path.exists()
    assert context.preferences.get_int("musicVolume") == 2
