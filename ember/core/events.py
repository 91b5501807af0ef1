"""
Typed event bus for decoupled notifications.

Event types are Enum members so subscribers never match on strings.
The persistence layer uses it to announce save/load outcomes to
collaborators (notification popups, loading panels, audio) without
knowing about them.

Usage:
    event_bus.subscribe(SaveEvent.SAVE_COMPLETED, on_saved)
    event_bus.publish(SaveEvent.SAVE_COMPLETED, scene="The Village")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable
from weakref import WeakMethod, ref


logger = logging.getLogger(__name__)


class EngineEvent(Enum):
    """Events raised by the entity/scene plumbing."""
    # Scene
    SCENE_UNLOADED = auto()
    SCENE_LOADED = auto()

    # Entity
    ENTITY_CREATED = auto()
    ENTITY_DESTROYED = auto()
    COMPONENT_ADDED = auto()
    COMPONENT_REMOVED = auto()


@dataclass
class Event:
    """
    Event data container.

    Attributes:
        type: The event type (Enum member)
        data: Keyword data passed to publish()
        consumed: Whether a handler stopped propagation
    """
    type: Enum
    data: dict[str, Any] = field(default_factory=dict)
    consumed: bool = False

    def consume(self) -> None:
        """Stop later handlers from seeing this event."""
        self.consumed = True

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]


EventHandler = Callable[[Event], None]


def make_ref(handler: Callable, weak: bool) -> Any:
    """Wrap a callable in the reference type used for storage."""
    if not weak:
        return handler
    if hasattr(handler, '__self__'):
        return WeakMethod(handler)
    return ref(handler)


def resolve_ref(handler_ref: Any) -> Callable | None:
    """Return the callable behind a stored reference, or None if collected."""
    if isinstance(handler_ref, (ref, WeakMethod)):
        return handler_ref()
    return handler_ref


class EventBus:
    """
    Publish/subscribe hub.

    Features:
    - Enum-typed events
    - Priority ordering (higher first)
    - Weak references by default
    - One-shot handlers
    - Events published from inside a handler are queued
    """

    def __init__(self):
        # event type -> list of (priority, handler ref, one_shot)
        self._handlers: dict[Enum, list[tuple[int, Any, bool]]] = {}
        self._event_queue: list[Event] = []
        self._is_publishing = False

    def subscribe(
        self,
        event_type: Enum,
        handler: EventHandler,
        priority: int = 0,
        one_shot: bool = False,
        weak: bool = True,
    ) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to listen for
            handler: Callback function(event: Event)
            priority: Higher priority handlers are called first
            one_shot: Remove the handler after its first call
            weak: Hold the handler weakly (dropped once garbage collected)
        """
        handlers = self._handlers.setdefault(event_type, [])
        entry = (priority, make_ref(handler, weak), one_shot)

        insert_idx = len(handlers)
        for i, (p, _, _) in enumerate(handlers):
            if priority > p:
                insert_idx = i
                break
        handlers.insert(insert_idx, entry)

    def unsubscribe(self, event_type: Enum, handler: EventHandler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        self._handlers[event_type] = [
            (p, h, o) for p, h, o in handlers
            if resolve_ref(h) != handler
        ]

    def publish(self, event_type: Enum, **data: Any) -> Event:
        """
        Publish an event.

        Returns:
            The Event object (check .consumed to see if it was handled)
        """
        event = Event(type=event_type, data=data)
        if self._is_publishing:
            self._event_queue.append(event)
        else:
            self._dispatch(event)
        return event

    def handler_count(self, event_type: Enum) -> int:
        """Number of live handlers for an event type."""
        return sum(
            1 for _, h, _ in self._handlers.get(event_type, [])
            if resolve_ref(h) is not None
        )

    def clear(self, event_type: Enum | None = None) -> None:
        """Drop handlers for one event type, or all of them."""
        if event_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_type, None)

    def _dispatch(self, event: Event) -> None:
        handlers = self._handlers.get(event.type)
        if handlers:
            self._is_publishing = True
            to_remove = []
            try:
                for i, (_, handler_ref, one_shot) in enumerate(list(handlers)):
                    handler = resolve_ref(handler_ref)
                    if handler is None:
                        to_remove.append(handler_ref)
                        continue

                    try:
                        handler(event)
                    except Exception:
                        logger.exception(f"Error in event handler for {event.type}")

                    if one_shot:
                        to_remove.append(handler_ref)
                    if event.consumed:
                        break
            finally:
                self._is_publishing = False

            if to_remove:
                self._handlers[event.type] = [
                    entry for entry in handlers if entry[1] not in to_remove
                ]

        while self._event_queue:
            self._dispatch(self._event_queue.pop(0))
