"""
Ember - save/load persistence core for scene-based games.

Packages:
- ember.core: event bus, entities, scenes, configuration and the process context
- ember.save: keyed records, durable store, coordinator, placed objects, respawn
- ember.world: gameplay objects that persist through the save contracts
"""

__version__ = "0.3.0"
