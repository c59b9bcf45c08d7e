"""Mutation event counter shared with view observers."""

import threading
from typing import Callable

MutationListener = Callable[[int], None]


class MutationCounter:
    """Monotonic counter bumped once per successful remote mutation.

    Observers (file browser, directory listing) compare the value they last
    rendered with against ``value`` to know their cached view is stale.
    """

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()
        self._listeners: list[MutationListener] = []

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def bump(self) -> int:
        """Increment and return the new value, then notify listeners."""
        with self._lock:
            self._value += 1
            value = self._value
            listeners = list(self._listeners)

        for listener in listeners:
            listener(value)
        return value

    def subscribe(self, listener: MutationListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
