"""Boundary Protocols - contracts between the palette core and its host.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO is reached through these Protocol types
    - Implementations provided by the host via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async where implementations do IO (search, storage); sync for navigation and
      listener registration, which only schedule work on the host side
"""

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol

from palette.core.key_bindings import KeyEvent
from palette.core.search_state import SearchResult

KeyHandler = Callable[[KeyEvent], Awaitable[bool]]


class SearchBackend(Protocol):
    """External lookup. May raise; any exception is a fetch failure."""
    async def search(
        self, query: str, filters: Mapping[str, Any],
    ) -> Sequence[SearchResult | Mapping[str, Any]]: ...


class KeyValueStore(Protocol):
    """Durable, client-local key-value storage (JSON-serializable values)."""
    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def list_keys(self, prefix: str = "") -> list[str]: ...


class Router(Protocol):
    """Host navigation."""
    def navigate(self, url: str) -> None: ...


class InputPort(Protocol):
    """Host keyboard substrate. Handlers return True when the key was consumed."""
    def add_listener(self, handler: KeyHandler) -> None: ...
    def remove_listener(self, handler: KeyHandler) -> None: ...
