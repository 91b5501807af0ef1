import pytest

from ember.core.transform import Pose
from ember.save.contracts import SaveScope, SetupStage
from ember.save.placed import Placement, PlacedKind, WorldObjectRegistry
from ember.save.record import KeyedRecord, RecordReader
from ember.world import ModularPiece, SignText, register_placeables

from conftest import load, register_scene


@pytest.fixture
def registry(event_bus):
    registry = WorldObjectRegistry(event_bus)
    register_placeables(registry)
    return registry


def setup_stage(record):
    return SetupStage(RecordReader(record), "The Village", SaveScope.SCENE)


def test_place_tracks_entity(registry, world):
    sign = registry.place(world, "sign", Pose(x=3.0), SignText(text="Home"))

    assert sign.get(Placement).kind == "sign"
    assert sign.get(Pose).x == 3.0
    assert sign.has_tag(WorldObjectRegistry.PLACED_TAG)
    assert registry.count() == 1
    assert registry.count("sign") == 1


def test_place_unknown_kind_raises(registry, world):
    with pytest.raises(ValueError):
        registry.place(world, "spaceship")


def test_add_placed_requires_placement(registry, world):
    entity = world.create_entity()
    with pytest.raises(ValueError):
        registry.add_placed(entity)


def test_add_and_remove_are_idempotent(registry, world):
    sign = registry.place(world, "sign")
    registry.add_placed(sign)
    assert registry.count() == 1

    registry.remove_placed(sign)
    registry.remove_placed(sign)
    assert registry.count() == 0


def test_destroyed_entities_are_forgotten(registry, world):
    sign = registry.place(world, "sign")
    world.destroy_entity(sign)
    world.flush()

    assert registry.count() == 0


def test_save_and_restore(registry, world, event_bus):
    from ember.core.world import World

    registry.place(world, "sign", Pose(x=1.0), SignText(text="Home"))
    registry.place(world, "modularPiece", Pose(y=2.0), ModularPiece(variant="roof"))
    registry.place(world, "craftingTable", Pose(z=-4.5))
    record = KeyedRecord()
    assert registry.save(record) == 3
    assert record.get_int("placedObjects_count") == 3

    registry.clear()
    new_world = World(event_bus)
    assert registry.restore(setup_stage(record), new_world) == 3

    signs = [e for e in registry.placed if e.get(Placement).kind == "sign"]
    assert signs[0].get(SignText).text == "Home"
    assert signs[0].get(Pose).x == 1.0
    pieces = list(new_world.get_entities_with(ModularPiece))
    assert pieces[0].get(ModularPiece).variant == "roof"
    assert new_world.entity_count == 3


def test_restore_skips_unknown_kinds(registry, world, event_bus):
    from ember.core.world import World

    other = WorldObjectRegistry(event_bus)
    other.register_kind(PlacedKind("statue"))
    other.register_kind(PlacedKind("sign", payload_types=(SignText,)))
    other.place(world, "statue")
    other.place(world, "sign", None, SignText(text="Hi"))
    record = KeyedRecord()
    other.save(record)

    new_world = World(event_bus)
    assert registry.restore(setup_stage(record), new_world) == 1
    assert new_world.entity_count == 1


def test_missing_payload_is_default_constructed(registry):
    from ember.core.world import World

    entry = KeyedRecord()
    entry.set("kind", "sign")
    entry.set("pose", Pose(x=2.0))
    record = KeyedRecord()
    record.write_sequence(WorldObjectRegistry.SEQUENCE_PREFIX, [entry])

    world = World(registry._event_bus)
    registry.restore(setup_stage(record), world)

    sign = next(registry.placed)
    assert sign.get(SignText).text == ""
    assert sign.get(Pose).x == 2.0


def test_on_spawn_hook(event_bus, world):
    from ember.core.world import World

    spawned = []
    registry = WorldObjectRegistry(event_bus)
    registry.register_kind(PlacedKind("lamp", on_spawn=spawned.append))
    registry.place(world, "lamp")
    record = KeyedRecord()
    registry.save(record)
    registry.clear()

    registry.restore(setup_stage(record), World(event_bus))

    assert len(spawned) == 1


def test_placed_objects_survive_reload(context):
    register_placeables(context.placed_objects)
    register_scene(context, "The Village")
    register_scene(context, "Desert")
    scene = load(context, "The Village")

    placed = [
        context.placed_objects.place(scene.world, "modularPiece", Pose(x=float(i)))
        for i in range(5)
    ]
    for entity in placed[:2]:
        scene.world.destroy_entity(entity)
    scene.update(0.016)
    context.coordinator.save_game_data()

    load(context, "Desert")
    assert context.placed_objects.count() == 0

    scene = load(context, "The Village")

    assert context.placed_objects.count() == 3
    xs = sorted(e.get(Pose).x for e in scene.world.get_entities_with_tag("placed"))
    assert xs == [2.0, 3.0, 4.0]


def test_entity_marked_for_destruction_is_not_saved(registry, world):
    keep = registry.place(world, "sign", Pose(x=1.0), SignText(text="Keep"))
    gone = registry.place(world, "sign", Pose(x=2.0), SignText(text="Gone"))
    world.destroy_entity(gone)

    record = KeyedRecord()

    assert registry.save(record) == 1
    assert registry.count() == 1
    assert list(registry.placed) == [keep]


def test_destroyed_in_the_saving_frame_never_reappears(context):
    register_placeables(context.placed_objects)
    register_scene(context, "The Village")
    scene = load(context, "The Village")
    a = context.placed_objects.place(scene.world, "sign", Pose(x=1.0))
    context.placed_objects.place(scene.world, "sign", Pose(x=2.0))

    # No update between destroying and saving
    scene.world.destroy_entity(a)
    context.coordinator.save_game_data()

    scene = load(context, "The Village")

    signs = list(scene.world.get_entities_with_tag("placed"))
    assert len(signs) == 1
    assert signs[0].get(Pose).x == 2.0


def test_restore_skips_entry_with_invalid_payload(registry, world, event_bus, caplog):
    from ember.core.world import World

    registry.place(world, "sign", Pose(x=1.0), SignText(text="Good"))
    registry.place(world, "sign", Pose(x=2.0), SignText(text="Bad"))
    record = KeyedRecord()
    registry.save(record)
    registry.clear()

    encoded = record.to_dict()
    encoded["placedObjects_1"]["value"]["SignText"]["value"] = {"text": 5}
    corrupted = KeyedRecord.from_dict(encoded)

    new_world = World(event_bus)
    assert registry.restore(setup_stage(corrupted), new_world) == 1

    assert new_world.entity_count == 1
    assert next(registry.placed).get(SignText).text == "Good"
    assert "Skipping corrupt placed object entry 1" in caplog.text


def test_listed_but_missing_payload_falls_back_to_default(registry):
    from ember.core.world import World

    entry = KeyedRecord()
    entry.set("kind", "sign")
    entry.set("payload", ["SignText"])
    record = KeyedRecord()
    record.write_sequence(WorldObjectRegistry.SEQUENCE_PREFIX, [entry])

    registry.restore(setup_stage(record), World(registry._event_bus))

    assert next(registry.placed).get(SignText).text == ""
