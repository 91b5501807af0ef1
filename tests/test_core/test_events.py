import gc
from enum import Enum, auto

from ember.core.events import EventBus, Event


class MockEvent(Enum):
    TEST_EVENT = auto()
    OTHER_EVENT = auto()


def test_event_bus_subscribe_publish(event_bus):
    received = []
    def handler(event):
        received.append(event)

    event_bus.subscribe(MockEvent.TEST_EVENT, handler)
    event_bus.publish(MockEvent.TEST_EVENT, data="test")

    assert len(received) == 1
    assert received[0].type == MockEvent.TEST_EVENT
    assert received[0]["data"] == "test"


def test_event_bus_unsubscribe(event_bus):
    received = []
    def handler(event):
        received.append(event)

    event_bus.subscribe(MockEvent.TEST_EVENT, handler)
    event_bus.unsubscribe(MockEvent.TEST_EVENT, handler)
    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 0


def test_event_priority(event_bus):
    order = []

    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("low"), priority=1, weak=False)
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("high"), priority=10, weak=False)
    event_bus.subscribe(MockEvent.TEST_EVENT, lambda e: order.append("normal"), priority=5, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert order == ["high", "normal", "low"]


def test_event_consumption(event_bus):
    received = []

    def consumer(event):
        received.append("consumer")
        event.consume()

    def later_handler(event):
        received.append("later")

    event_bus.subscribe(MockEvent.TEST_EVENT, consumer, priority=10)
    event_bus.subscribe(MockEvent.TEST_EVENT, later_handler, priority=5)

    event = event_bus.publish(MockEvent.TEST_EVENT)

    assert received == ["consumer"]
    assert event.consumed


def test_one_shot_handler(event_bus):
    received = []
    event_bus.subscribe(MockEvent.TEST_EVENT, received.append, one_shot=True, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)
    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 1


def test_weak_handler_is_dropped(event_bus):
    class Listener:
        def __init__(self):
            self.calls = 0

        def on_event(self, event):
            self.calls += 1

    listener = Listener()
    event_bus.subscribe(MockEvent.TEST_EVENT, listener.on_event)
    assert event_bus.handler_count(MockEvent.TEST_EVENT) == 1

    del listener
    gc.collect()

    assert event_bus.handler_count(MockEvent.TEST_EVENT) == 0
    event_bus.publish(MockEvent.TEST_EVENT)


def test_publish_inside_handler_is_queued(event_bus):
    order = []

    def first(event):
        order.append("first")
        event_bus.publish(MockEvent.OTHER_EVENT)
        order.append("first done")

    event_bus.subscribe(MockEvent.TEST_EVENT, first)
    event_bus.subscribe(MockEvent.OTHER_EVENT, lambda e: order.append("other"), weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert order == ["first", "first done", "other"]


def test_handler_error_does_not_stop_dispatch(event_bus):
    received = []

    def broken(event):
        raise RuntimeError("boom")

    event_bus.subscribe(MockEvent.TEST_EVENT, broken, priority=10)
    event_bus.subscribe(MockEvent.TEST_EVENT, received.append, weak=False)

    event_bus.publish(MockEvent.TEST_EVENT)

    assert len(received) == 1


def test_event_get_default():
    event = Event(type=MockEvent.TEST_EVENT, data={"a": 1})
    assert event.get("a") == 1
    assert event.get("missing", 5) == 5
