import pytest
from unittest.mock import patch

from ember.core.scene import GameScene


@pytest.fixture(autouse=True)
def mock_pygame():
    """
    Global mock for pygame to allow headless testing.
    Autoused for all tests to prevent accidental window creation.
    """
    with patch('pygame.init'), \
         patch('pygame.display'), \
         patch('pygame.time'), \
         patch('pygame.mixer'), \
         patch('pygame.joystick'), \
         patch('pygame.key'), \
         patch('pygame.mouse'):
        yield


class StubScene(GameScene):
    """Scene whose objects are built by plain factory callables."""

    def __init__(self, context, name, builders, **kwargs):
        super().__init__(context, name, **kwargs)
        self.builders = builders

    def populate(self):
        for build in self.builders:
            self.add_object(build())


def register_scene(context, name, *builders, area_name="", default_spawn=None):
    """Register a scene that builds fresh objects from builders on every load."""
    context.scenes.register(
        name,
        lambda ctx: StubScene(ctx, name, builders, area_name=area_name, default_spawn=default_spawn),
        area_name=area_name,
    )


def find(context, persistent_id):
    """The live object of the active scene with the given id."""
    for obj in context.scenes.current.objects:
        if obj.persistent_id == persistent_id:
            return obj
    raise LookupError(persistent_id)


def load(context, name):
    """Load a scene and run the load to completion."""
    assert context.coordinator.load_game_scene(name)
    context.coordinator.finish_loading()
    return context.scenes.current


@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    from ember.core.events import EventBus
    return EventBus()


@pytest.fixture
def world(event_bus):
    """Fresh World for each test."""
    from ember.core.world import World
    return World(event_bus)


@pytest.fixture
def config(tmp_path):
    """Configuration writing saves under the test's temp directory."""
    from ember.core.config import PersistenceConfig
    return PersistenceConfig(save_root=tmp_path / "saves")


@pytest.fixture
def context(config):
    """Started PersistenceContext with a player attached."""
    from ember.core.context import PersistenceContext
    from ember.world.player import Player

    ctx = PersistenceContext(config)
    ctx.player = Player()
    ctx.startup()
    yield ctx
    ctx.shutdown()


@pytest.fixture
def events(context):
    """Every event of the given types published on the context's bus."""
    received = []

    def watch(*event_types):
        for event_type in event_types:
            context.event_bus.subscribe(event_type, received.append, weak=False)
        return received

    return watch
