"""
Core module.

Exports:
- Entity: Entity container
- Component, register_component: Component base and registration
- Pose: Position/rotation component
- World: Entity container for one scene
- EventBus, Event, EngineEvent: Event system
- GameScene, SceneDirector: Scene management
- PersistenceConfig: Configuration

PersistenceContext lives in ember.core.context; it wires the save
package together and is imported from there.
"""

from ember.core.events import EventBus, Event, EngineEvent
from ember.core.component import Component, register_component, get_component_type
from ember.core.entity import Entity
from ember.core.world import World
from ember.core.transform import Pose
from ember.core.config import PersistenceConfig
from ember.core.scene import GameScene, SceneDirector

__all__ = [
    # Events
    "EventBus",
    "Event",
    "EngineEvent",
    # Entities
    "Component",
    "register_component",
    "get_component_type",
    "Entity",
    "World",
    "Pose",
    # Scenes
    "GameScene",
    "SceneDirector",
    # Config
    "PersistenceConfig",
]
