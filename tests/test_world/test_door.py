from ember.world import Door, DoorState, NotificationType, WorldEvent

from conftest import find, load, register_scene


def test_locked_door_does_not_open(context):
    door = Door("A", locked=True)
    door.activate(context)

    assert not door.interact()
    assert door.state is DoorState.CLOSED


def test_interact_toggles(context):
    door = Door("A")
    door.activate(context)

    door.interact(inwards=False)
    assert door.state is DoorState.OPEN_OUTWARD
    door.interact()
    assert door.state is DoorState.CLOSED


def test_sounds_and_notifications_during_play(context, events):
    received = events(WorldEvent.SOUND, WorldEvent.NOTIFICATION)
    door = Door("A", locked=True, unlock_item="Rusty Key")
    door.activate(context)

    door.unlock()
    door.open()

    assert received[0]["notification"] is NotificationType.DOOR_UNLOCKED
    assert received[0]["item"] == "Rusty Key"
    assert received[1]["sound"] == "doorOpen"


def test_restoring_is_silent(context, events):
    register_scene(context, "The Village", lambda: Door("A"))
    load(context, "The Village")
    find(context, "A").open()
    context.coordinator.save_game_data()
    received = events(WorldEvent.SOUND)

    load(context, "The Village")

    assert find(context, "A").is_open
    assert received == []


def test_saved_keys(context):
    from ember.save.record import KeyedRecord

    door = Door("12", locked=True)
    record = KeyedRecord()
    door.on_save(record)

    assert record.keys() == ["doorUnlocked_12", "doorOpenState_12"]
    assert record.get_bool("doorUnlocked_12") is False
    assert record.get_enum("doorOpenState_12", DoorState) is DoorState.CLOSED
