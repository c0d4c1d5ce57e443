"""
Entity Store — Store Container

Single-writer holder of the store state. Dispatches are serialized with a
lock; listeners are notified once per effective transition, outside the lock.
A batch is one transition, so listeners never see its intermediate states.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from entity_store.operations import batch
from entity_store.reducer import State, create_store_reducer
from entity_store.schema import ResolvedSchema
from entity_store.types import Operation

logger = logging.getLogger(__name__)

Listener = Callable[[State], None]


class EntityStore:
    """Holds the state produced by create_store_reducer(schemas, initial_state)."""

    def __init__(self, schemas: Mapping[str, ResolvedSchema], initial_state: Mapping[str, Any] | None = None) -> None:
        self._reducer = create_store_reducer(schemas, initial_state)
        self._state: State = self._reducer(None, None)
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    @property
    def state(self) -> State:
        return self._state

    def dispatch(self, operation: Any) -> State:
        with self._lock:
            previous = self._state
            self._state = self._reducer(previous, operation)
            state = self._state
            listeners = list(self._listeners)

        if state is previous:
            return state

        logger.debug("dispatch: %s changed the store", getattr(operation, "kind", operation))
        for listener in listeners:
            listener(state)
        return state

    def dispatch_batch(self, operations: Sequence[Operation]) -> State:
        return self.dispatch(batch(operations))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a function that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
