"""Search Events - every input the palette state machine understands.

Invariants:
    - Events are frozen value objects; they carry data, never behaviour
    - Fetch outcome events carry the (seq, query) pair they were issued for

Design Decisions:
    - One dataclass per event: transitions dispatch on the event type
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from palette.core.search_state import SearchResult


# === Mount / history ===

@dataclass(frozen=True)
class HistoryLoaded:
    recent: tuple[str, ...]
    popular: tuple[str, ...]


@dataclass(frozen=True)
class HistoryChanged:
    recent: tuple[str, ...]
    popular: tuple[str, ...]


@dataclass(frozen=True)
class RecentCleared:
    pass


# === Query lifecycle ===

@dataclass(frozen=True)
class QueryChanged:
    query: str


@dataclass(frozen=True)
class FiltersChanged:
    filters: Mapping[str, Any]


@dataclass(frozen=True)
class FetchStarted:
    seq: int
    query: str


@dataclass(frozen=True)
class FetchSucceeded:
    seq: int
    query: str
    results: tuple[SearchResult, ...]


@dataclass(frozen=True)
class FetchFailed:
    seq: int
    query: str
    message: str


@dataclass(frozen=True)
class SearchCleared:
    pass


# === Panel / selection ===

@dataclass(frozen=True)
class PanelOpened:
    pass


@dataclass(frozen=True)
class PanelClosed:
    pass


@dataclass(frozen=True)
class PanelToggled:
    pass


@dataclass(frozen=True)
class SelectionMoved:
    delta: int


@dataclass(frozen=True)
class ResultHighlighted:
    index: int


SearchEvent = (
    HistoryLoaded | HistoryChanged | RecentCleared
    | QueryChanged | FiltersChanged
    | FetchStarted | FetchSucceeded | FetchFailed | SearchCleared
    | PanelOpened | PanelClosed | PanelToggled
    | SelectionMoved | ResultHighlighted
)
