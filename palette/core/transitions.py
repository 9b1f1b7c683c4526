"""Transitions - the pure (state, event) -> state function of the palette.

Invariants:
    - apply_event never mutates its input and never performs IO
    - Fetch outcomes commit only when (seq, query) matches the active request (last-query-wins)
    - Any query change revokes the active request
    - Selection moves are clamped to [0, len(results)-1], never wrapped
    - selected_result_index is -1 whenever results is empty

Design Decisions:
    - Handler table keyed by event type instead of isinstance chains
    - Unknown event types raise TypeError (programming error, not user error)
"""

from dataclasses import replace
from types import MappingProxyType
from typing import Callable

from palette.core.domain_types import NO_SELECTION, PanelStatus
from palette.core.grouping import initial_selection
from palette.core.search_events import (
    FetchFailed, FetchStarted, FetchSucceeded, FiltersChanged,
    HistoryChanged, HistoryLoaded, PanelClosed, PanelOpened, PanelToggled,
    QueryChanged, RecentCleared, ResultHighlighted, SearchCleared,
    SearchEvent, SelectionMoved,
)
from palette.core.search_state import SearchState


def is_current_request(state: SearchState, seq: int, query: str) -> bool:
    """Whether a fetch outcome for (seq, query) may still commit."""
    return state.active_request == seq and state.query == query


def apply_event(state: SearchState, event: SearchEvent) -> SearchState:
    """Return the state that follows `event`. Pure."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported search event: {type(event).__name__}")
    return handler(state, event)


# --- Query lifecycle -----------------------------------------------------------

def _on_query_changed(state: SearchState, event: QueryChanged) -> SearchState:
    if not event.query.strip():
        return replace(
            state,
            query=event.query,
            results=(),
            selected_result_index=NO_SELECTION,
            is_loading=False,
            error=None,
            active_request=None,
        )
    return replace(
        state, query=event.query, is_loading=True, active_request=None,
    )


def _on_filters_changed(state: SearchState, event: FiltersChanged) -> SearchState:
    return replace(state, filters=MappingProxyType(dict(event.filters)))


def _on_fetch_started(state: SearchState, event: FetchStarted) -> SearchState:
    if event.query != state.query:
        return state
    return replace(state, active_request=event.seq, is_loading=True)


def _on_fetch_succeeded(state: SearchState, event: FetchSucceeded) -> SearchState:
    if not is_current_request(state, event.seq, event.query):
        return state
    return replace(
        state,
        results=event.results,
        selected_result_index=initial_selection(event.results),
        error=None,
        is_loading=False,
        active_request=None,
    )


def _on_fetch_failed(state: SearchState, event: FetchFailed) -> SearchState:
    if not is_current_request(state, event.seq, event.query):
        return state
    return replace(
        state,
        results=(),
        selected_result_index=NO_SELECTION,
        error=event.message,
        is_loading=False,
        active_request=None,
    )


def _on_search_cleared(state: SearchState, event: SearchCleared) -> SearchState:
    return replace(
        state,
        query="",
        results=(),
        selected_result_index=NO_SELECTION,
        is_loading=False,
        error=None,
        active_request=None,
    )


# --- Panel / selection -----------------------------------------------------------

def _on_panel_opened(state: SearchState, event: PanelOpened) -> SearchState:
    return state if state.is_open else replace(state, is_open=True)


def _on_panel_closed(state: SearchState, event: PanelClosed) -> SearchState:
    return replace(state, is_open=False) if state.is_open else state


def _on_panel_toggled(state: SearchState, event: PanelToggled) -> SearchState:
    return replace(state, is_open=not state.is_open)


def _on_selection_moved(state: SearchState, event: SelectionMoved) -> SearchState:
    if state.status != PanelStatus.OPEN_RESULTS or not state.results:
        return state
    last = len(state.results) - 1
    index = max(0, min(state.selected_result_index + event.delta, last))
    return replace(state, selected_result_index=index)


def _on_result_highlighted(state: SearchState, event: ResultHighlighted) -> SearchState:
    if not state.is_open or not 0 <= event.index < len(state.results):
        return state
    return replace(state, selected_result_index=event.index)


# --- History ---------------------------------------------------------------------

def _on_history_loaded(state: SearchState, event: HistoryLoaded) -> SearchState:
    return replace(
        state,
        recent_searches=tuple(event.recent),
        popular_searches=tuple(event.popular),
    )


def _on_history_changed(state: SearchState, event: HistoryChanged) -> SearchState:
    return replace(
        state,
        recent_searches=tuple(event.recent),
        popular_searches=tuple(event.popular),
    )


def _on_recent_cleared(state: SearchState, event: RecentCleared) -> SearchState:
    return replace(state, recent_searches=())


_HANDLERS: dict[type, Callable[[SearchState, object], SearchState]] = {
    QueryChanged: _on_query_changed,
    FiltersChanged: _on_filters_changed,
    FetchStarted: _on_fetch_started,
    FetchSucceeded: _on_fetch_succeeded,
    FetchFailed: _on_fetch_failed,
    SearchCleared: _on_search_cleared,
    PanelOpened: _on_panel_opened,
    PanelClosed: _on_panel_closed,
    PanelToggled: _on_panel_toggled,
    SelectionMoved: _on_selection_moved,
    ResultHighlighted: _on_result_highlighted,
    HistoryLoaded: _on_history_loaded,
    HistoryChanged: _on_history_changed,
    RecentCleared: _on_recent_cleared,
}
