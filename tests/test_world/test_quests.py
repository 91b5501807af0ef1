import pytest

from ember.world import NotificationType, QuestBacklog, QuestGiver, WorldEvent, install

from conftest import find, load, register_scene


@pytest.fixture
def backlog(context):
    backlog, _ = install(context)
    return backlog


def test_accept_and_complete(backlog):
    assert backlog.accept("q1")
    assert not backlog.accept("q1")
    assert backlog.is_accepted("q1")

    assert backlog.complete("q1")
    assert backlog.is_completed("q1")
    assert not backlog.is_accepted("q1")
    assert not backlog.accept("q1")
    assert not backlog.complete("q2")


def test_completion_notification(context, backlog, events):
    received = events(WorldEvent.NOTIFICATION)
    backlog.accept("q1")
    backlog.complete("q1")

    assert received[0]["notification"] is NotificationType.QUEST_COMPLETED
    assert received[0]["quest"] == "q1"


def test_giver_offers_next_open_quest(context, backlog):
    giver = QuestGiver("elder", ["q1", "q2"])
    giver.activate(context)

    assert giver.talk() == "q1"
    backlog.accept("q1")
    assert giver.talk() == "q2"
    backlog.accept("q2")
    assert giver.talk() is None


def test_giver_reads_restored_backlog_in_configure(context, backlog):
    register_scene(context, "The Village", lambda: QuestGiver("elder", ["q1", "q2"]))
    load(context, "The Village")
    find(context, "elder").talk()
    backlog.accept("q1")
    backlog.complete("q1")
    context.coordinator.save_game_data()

    # Next boot: fresh context, fresh backlog, same save directory
    context.shutdown()
    from ember.core.context import PersistenceContext
    from ember.world import Player

    fresh = PersistenceContext(context.config)
    fresh.player = Player()
    fresh.startup()
    fresh_backlog, _ = install(fresh)
    register_scene(fresh, "The Village", lambda: QuestGiver("elder", ["q1", "q2"]))

    load(fresh, "The Village")

    giver = find(fresh, "elder")
    assert fresh_backlog.is_completed("q1")
    assert giver.met
    assert giver.offered_quest == "q2"
    fresh.shutdown()


def test_backlog_saved_keys(backlog):
    from ember.save.record import KeyedRecord

    backlog.accept("q1")
    record = KeyedRecord()
    backlog.on_save(record)

    assert record.get_list("questBacklog_player") == ["q1"]
    assert record.get_list("questsCompleted_player") == []
