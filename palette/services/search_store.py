"""Search Store - sole owner and writer of a session's SearchState.

Invariants:
    - State changes only through dispatch(event), which runs the pure transition function
    - Listeners are notified after the new state is in place, only when it changed
    - A failing listener is logged and never breaks dispatch or other listeners

Design Decisions:
    - Synchronous dispatch: every writer runs on the event loop thread, so updates are serial
"""

import logging
from collections.abc import Callable

from palette.core.search_events import SearchEvent
from palette.core.search_state import SearchState
from palette.core.transitions import apply_event

logger = logging.getLogger(__name__)

StateListener = Callable[[SearchState], None]


class SearchStore:
    """Holds the current SearchState and fans out changes."""

    def __init__(self, initial: SearchState | None = None):
        self._state = initial or SearchState()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> SearchState:
        return self._state

    def dispatch(self, event: SearchEvent) -> SearchState:
        """Apply `event` and notify listeners. Returns the new state."""
        previous = self._state
        self._state = apply_event(previous, event)
        if self._state is not previous:
            self._notify()
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear_listeners(self) -> None:
        self._listeners.clear()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.error("State listener failed: %s", e, exc_info=True)
