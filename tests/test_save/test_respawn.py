import pytest

from ember.core.transform import Pose
from ember.save.save_points import RespawnTracker, SavePoint


class Marker(SavePoint):
    def __init__(self, point_id, pose=None):
        self.point_id = point_id
        self.pose = pose or Pose()
        self.used = False
        self.context = None

    @property
    def save_point_id(self):
        return self.point_id

    def respawn_pose(self):
        return self.pose

    def set_as_unused(self):
        self.used = False


def test_mark_used_supersedes_previous():
    tracker = RespawnTracker()
    first, second = Marker("a"), Marker("b")
    tracker.register_point(first)
    tracker.register_point(second)

    first.used = True
    tracker.mark_used(first, "The Village")
    tracker.mark_used(second, "The Village")

    assert not first.used
    assert tracker.last_used_id == "b"
    assert tracker.last_used_scene == "The Village"
    assert tracker.is_last_used(second)


def test_respawn_pose_needs_live_point():
    tracker = RespawnTracker()
    point = Marker("a", Pose(x=5.0))
    tracker.register_point(point)
    tracker.mark_used(point, "The Village")

    assert tracker.respawn_pose().x == 5.0

    tracker.unregister_point(point)
    fallback = Pose(y=1.0)
    assert tracker.respawn_pose(fallback) is fallback


def test_empty_ids_are_rejected():
    tracker = RespawnTracker()
    with pytest.raises(ValueError):
        tracker.register_point(Marker(""))
    with pytest.raises(ValueError):
        tracker.mark_used(Marker(""), "The Village")


def test_set_as_used_requires_active_point():
    with pytest.raises(RuntimeError):
        Marker("a").set_as_used()


def test_respawn_pose_adds_height_offset(context):
    point = Marker("a", Pose(x=1.0, y=2.0))
    context.respawn.register_point(point)
    context.coordinator.set_last_used_save_point(point)

    pose = context.coordinator.respawn_pose()

    assert pose.position == (1.0, 5.0, 0.0)
    assert point.pose.y == 2.0


def test_respawn_player(context):
    assert not context.coordinator.respawn_player()

    point = Marker("a", Pose(x=1.0))
    context.respawn.register_point(point)
    point.context = context
    point.set_as_used()

    assert context.coordinator.respawn_player()
    assert context.player.pose.position == (1.0, 3.0, 0.0)


def test_used_point_persists_in_global_record(context):
    from ember.save.contracts import SaveScope, SetupStage
    from ember.save.record import KeyedRecord, RecordReader

    point = Marker("portal_village")
    context.respawn.register_point(point)
    context.respawn.mark_used(point, "The Village")
    record = KeyedRecord()
    context.respawn.on_save(record)

    tracker = RespawnTracker()
    tracker.on_load_setup(SetupStage(RecordReader(record), "Desert", SaveScope.GLOBAL))

    assert tracker.last_used_id == "portal_village"
    assert tracker.last_used_scene == "The Village"
