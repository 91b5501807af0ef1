import gc

from ember.save.contracts import (
    ConfigureStage,
    PersistentSceneObject,
    SaveScope,
    SetupStage,
    SubscriptionList,
)
from ember.save.record import KeyedRecord, RecordReader


class Lever(PersistentSceneObject):
    def __init__(self, persistent_id):
        super().__init__(persistent_id)
        self.pulled = False

    def on_save(self, record):
        record.set(self.key("leverPulled"), self.pulled)

    def on_load_setup(self, stage):
        self.pulled = stage.record.get_bool(self.key("leverPulled"))


def test_key_is_namespaced_by_id():
    assert Lever("12").key("leverPulled") == "leverPulled_12"


def test_setup_stage_has_no_context():
    stage = SetupStage(RecordReader(KeyedRecord()), "The Village", SaveScope.SCENE)

    assert not hasattr(stage, "context")
    assert not hasattr(stage, "service")


def test_configure_stage_looks_up_services(context):
    marker = object()
    context.register_service(marker, object)
    stage = ConfigureStage(RecordReader(KeyedRecord()), "The Village", SaveScope.SCENE, context)

    assert stage.service(object) is marker
    assert stage.service(Lever) is None


def test_subscriptions_keep_insertion_order():
    subs = SubscriptionList(SaveScope.SCENE)
    levers = [Lever(str(i)) for i in range(3)]
    for lever in levers:
        subs.add(lever.on_save, lever.on_load_setup, lever.on_load_configure)

    record = KeyedRecord()
    for _, (on_save, _, _) in subs.live():
        on_save(record)

    assert record.keys() == ["leverPulled_0", "leverPulled_1", "leverPulled_2"]


def test_collected_subscribers_are_pruned():
    subs = SubscriptionList(SaveScope.SCENE)
    lever = Lever("gone")
    subs.add(lever.on_save, lever.on_load_setup, lever.on_load_configure)
    assert len(subs) == 1

    del lever
    gc.collect()

    assert subs.live() == []
    assert len(subs) == 0


def test_strong_subscriptions_survive():
    subs = SubscriptionList(SaveScope.GLOBAL)
    calls = []
    subs.add(calls.append, calls.append, calls.append, weak=False)

    assert len(subs.live()) == 1


def test_clear_and_reset_restored():
    subs = SubscriptionList(SaveScope.GLOBAL)
    lever = Lever("a")
    subs.add(lever.on_save, lever.on_load_setup, lever.on_load_configure)
    entry, _ = subs.live()[0]
    entry.restored = True

    subs.reset_restored()
    assert not entry.restored
    assert subs.clear() == 1
    assert len(subs) == 0


def test_weak_lambda_subscription_warns(caplog):
    subs = SubscriptionList(SaveScope.GLOBAL)
    noop = lambda arg: None  # noqa: E731

    subs.add(noop, noop, noop)
    assert "subscribe it with weak=False" in caplog.text

    caplog.clear()
    other = SubscriptionList(SaveScope.GLOBAL)
    other.add(noop, noop, noop, weak=False)
    assert caplog.text == ""


def test_bound_methods_do_not_warn(caplog):
    subs = SubscriptionList(SaveScope.SCENE)
    lever = Lever("a")
    subs.add(lever.on_save, lever.on_load_setup, lever.on_load_configure)

    assert caplog.text == ""
