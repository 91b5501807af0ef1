"""
Persistence contracts for gameplay objects.

Objects take part in saving and loading through three callbacks:

    on_save(record: KeyedRecord)            write own keys
    on_load_setup(stage: SetupStage)        read own keys back into memory
    on_load_configure(stage: ConfigureStage) react to other objects' state

The two load phases receive different stage types. A SetupStage only
carries the (read-only) record, so restoring code has no way to reach
another object whose state may not be restored yet. A ConfigureStage
also carries the PersistenceContext: by the time configure runs,
every subscriber has finished setup and cross-object reads are safe.

Most objects subclass PersistentSceneObject (state that belongs to
one scene, e.g. a door) or PersistentGlobalObject (state that spans
the whole playthrough, e.g. the quest backlog), which subscribe in
activate() and unsubscribe in deactivate().
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, TypeVar

from ember.core.events import make_ref, resolve_ref
from ember.save.record import KeyedRecord, RecordReader

if TYPE_CHECKING:
    from ember.core.context import PersistenceContext


logger = logging.getLogger(__name__)

T = TypeVar('T')


class SaveScope(Enum):
    """Which record a subscriber reads and writes."""
    GLOBAL = "global"
    SCENE = "scene"


@dataclass(frozen=True)
class SetupStage:
    """First load pass: deserialize own primitive state only."""
    record: RecordReader
    scene_name: str
    scope: SaveScope


@dataclass(frozen=True)
class ConfigureStage:
    """Second load pass: other subscribers' state is restored and readable."""
    record: RecordReader
    scene_name: str
    scope: SaveScope
    context: PersistenceContext

    def service(self, service_type: type[T]) -> T | None:
        """Look up a shared object registered on the context."""
        return self.context.get_service(service_type)


SaveCallback = Callable[[KeyedRecord], None]
SetupCallback = Callable[[SetupStage], None]
ConfigureCallback = Callable[[ConfigureStage], None]


def _is_transient(callback: Callable) -> bool:
    """Lambdas and nested functions usually have no other strong reference."""
    if hasattr(callback, '__self__'):
        return False
    qualname = getattr(callback, '__qualname__', '')
    return getattr(callback, '__name__', '') == '<lambda>' or '<locals>' in qualname


@dataclass(eq=False)
class Subscription:
    """
    One subscriber's callback triple.

    Callbacks are held weakly unless subscribed with weak=False, so a
    collected object is pruned rather than called.
    """
    on_save: Any
    on_setup: Any
    on_configure: Any
    restored: bool = False

    @classmethod
    def create(
        cls,
        on_save: SaveCallback,
        on_setup: SetupCallback,
        on_configure: ConfigureCallback,
        weak: bool = True,
    ) -> Subscription:
        if weak:
            for callback in (on_save, on_setup, on_configure):
                if _is_transient(callback):
                    logger.warning(
                        f"{callback.__qualname__} is held weakly and will be pruned "
                        "once it goes out of scope; subscribe it with weak=False"
                    )
        return cls(
            make_ref(on_save, weak),
            make_ref(on_setup, weak),
            make_ref(on_configure, weak),
        )

    def resolve(self) -> tuple[SaveCallback, SetupCallback, ConfigureCallback] | None:
        """The live callbacks, or None if any target was collected."""
        callbacks = (
            resolve_ref(self.on_save),
            resolve_ref(self.on_setup),
            resolve_ref(self.on_configure),
        )
        if any(cb is None for cb in callbacks):
            return None
        return callbacks  # type: ignore[return-value]

    def matches(self, on_save: Callable, on_setup: Callable, on_configure: Callable) -> bool:
        return self.resolve() == (on_save, on_setup, on_configure)


@dataclass
class SubscriptionList:
    """Insertion-ordered subscriptions for one scope."""
    scope: SaveScope
    _entries: list[Subscription] = field(default_factory=list)

    def add(
        self,
        on_save: SaveCallback,
        on_setup: SetupCallback,
        on_configure: ConfigureCallback,
        weak: bool = True,
    ) -> bool:
        """
        Add a subscription.

        Returns:
            False if the same callback triple is already subscribed
        """
        if self.find(on_save, on_setup, on_configure) is not None:
            logger.debug(f"Ignoring duplicate {self.scope.value} subscription")
            return False
        self._entries.append(
            Subscription.create(on_save, on_setup, on_configure, weak=weak)
        )
        return True

    def remove(
        self,
        on_save: SaveCallback,
        on_setup: SetupCallback,
        on_configure: ConfigureCallback,
    ) -> bool:
        """
        Remove a subscription.

        Returns:
            False if it was not subscribed (removing twice is harmless)
        """
        entry = self.find(on_save, on_setup, on_configure)
        if entry is None:
            return False
        self._entries.remove(entry)
        return True

    def find(
        self,
        on_save: Callable,
        on_setup: Callable,
        on_configure: Callable,
    ) -> Subscription | None:
        for entry in self._entries:
            if entry.matches(on_save, on_setup, on_configure):
                return entry
        return None

    def live(self) -> list[tuple[Subscription, tuple]]:
        """
        Snapshot of live subscriptions with their resolved callbacks.

        Dead entries are pruned. The snapshot keeps a pass stable when
        callbacks subscribe or unsubscribe while it runs.
        """
        result = []
        alive = []
        for entry in self._entries:
            callbacks = entry.resolve()
            if callbacks is None:
                logger.debug(f"Pruning collected {self.scope.value} subscriber")
                continue
            alive.append(entry)
            result.append((entry, callbacks))
        self._entries = alive
        return result

    def clear(self) -> int:
        """Drop every subscription, returning how many were dropped."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def reset_restored(self) -> None:
        for entry in self._entries:
            entry.restored = False

    def __len__(self) -> int:
        return len(self._entries)


class PersistentObject(ABC):
    """
    Base class for objects that save and load their own state.

    Args:
        persistent_id: Stable, author-assigned identifier. Used as the
            suffix of every key the object writes, so it must be unique
            among objects of the same kind.
    """

    scope: ClassVar[SaveScope]

    def __init__(self, persistent_id: str):
        self.persistent_id = persistent_id
        self._context: PersistenceContext | None = None

    @property
    def context(self) -> PersistenceContext | None:
        return self._context

    @property
    def active(self) -> bool:
        return self._context is not None

    def key(self, name: str) -> str:
        """Namespaced record key for one of this object's fields."""
        return f"{name}_{self.persistent_id}"

    def activate(self, context: PersistenceContext) -> None:
        """
        Subscribe to save/load passes. Calling it again is a no-op.

        Raises:
            ValueError: If persistent_id is empty
        """
        if self._context is not None:
            return
        if not isinstance(self.persistent_id, str) or not self.persistent_id.strip():
            raise ValueError(
                f"{type(self).__name__} needs a non-empty persistent_id to be saved"
            )

        self._context = context
        coordinator = context.coordinator
        if self.scope is SaveScope.GLOBAL:
            coordinator.subscribe_global(self.on_save, self.on_load_setup, self.on_load_configure)
        else:
            coordinator.subscribe_scene(self.on_save, self.on_load_setup, self.on_load_configure)
        self.on_activate()

    def deactivate(self) -> None:
        """Unsubscribe from save/load passes. Calling it again is a no-op."""
        context = self._context
        if context is None:
            return

        coordinator = context.coordinator
        if self.scope is SaveScope.GLOBAL:
            coordinator.unsubscribe_global(self.on_save, self.on_load_setup, self.on_load_configure)
        else:
            coordinator.unsubscribe_scene(self.on_save, self.on_load_setup, self.on_load_configure)
        self.on_deactivate()
        self._context = None

    def on_activate(self) -> None:
        """Hook called after subscribing."""

    def on_deactivate(self) -> None:
        """Hook called before the context reference is dropped."""

    @abstractmethod
    def on_save(self, record: KeyedRecord) -> None:
        """Write this object's state into the record."""

    @abstractmethod
    def on_load_setup(self, stage: SetupStage) -> None:
        """Read this object's own state back from stage.record."""

    def on_load_configure(self, stage: ConfigureStage) -> None:
        """React to restored state of other objects. Optional."""


class PersistentGlobalObject(PersistentObject):
    """State that persists for the whole playthrough."""
    scope = SaveScope.GLOBAL


class PersistentSceneObject(PersistentObject):
    """State that belongs to the scene the object lives in."""
    scope = SaveScope.SCENE
