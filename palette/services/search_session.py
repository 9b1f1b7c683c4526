"""Search Session - the navigation state machine composed with dispatcher, fetcher and tracker.

Invariants:
    - One SearchStore per session; every handler changes state only through it
    - Commit always closes the panel before resolving, recording or navigating
    - History is recorded (record_query, then record_result_click) before navigation/execution
    - A result without url is logged as MISSING_URL and the commit is aborted (panel stays closed)
    - Nothing raised by router, command actions, backend or storage escapes a handler
    - Keyboard listeners are bound on start() and removed on close()

Design Decisions:
    - Command actions are looked up by id; built-in commands navigate to their route by default
    - Handlers that may touch storage are async; pure state handlers stay sync
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from palette.core.commands import COMMANDS
from palette.core.domain_types import (
    DEBOUNCE_MS, FETCH_TIMEOUT_SECONDS, KeyAction, ResolutionKind,
)
from palette.core.errors import ErrorContext, MissingUrlError
from palette.core.history import commit_label
from palette.core.key_bindings import KeyEvent, interpret_key
from palette.core.ports import InputPort, Router, SearchBackend
from palette.core.search_events import (
    FiltersChanged, HistoryChanged, HistoryLoaded, PanelClosed, PanelOpened,
    PanelToggled, RecentCleared, ResultHighlighted, SearchCleared,
    SelectionMoved,
)
from palette.core.search_state import SearchResult, SearchState
from palette.core.suggestions import (
    Resolution, resolve_result, resolve_suggestion_text,
)
from palette.services.history_tracker import HistoryTracker
from palette.services.query_dispatcher import QueryDispatcher
from palette.services.result_fetcher import ResultFetcher
from palette.services.search_store import SearchStore, StateListener

logger = logging.getLogger(__name__)

CommandAction = Callable[[], Any]

_KEY_EVENTS = {
    KeyAction.OPEN: PanelOpened,
    KeyAction.CLOSE: PanelClosed,
}


class SearchSession:
    """One palette instance: exposes the handlers the rendering layer calls."""

    def __init__(
        self,
        backend: SearchBackend,
        tracker: HistoryTracker,
        router: Router,
        *,
        session_id: str | None = None,
        debounce_ms: int = DEBOUNCE_MS,
        fetch_timeout_seconds: float = FETCH_TIMEOUT_SECONDS,
        actions: Mapping[str, CommandAction] | None = None,
        input_port: InputPort | None = None,
    ):
        self.session_id = session_id
        self.tracker = tracker
        self.router = router
        self.input_port = input_port
        self.store = SearchStore()
        self.fetcher = ResultFetcher(
            backend, self.store, tracker,
            timeout_seconds=fetch_timeout_seconds, session_id=session_id,
        )
        self.dispatcher = QueryDispatcher(self.store, self.fetcher, debounce_ms)
        self.actions: dict[str, CommandAction] = {
            c.id: self._navigate_action(c.route) for c in COMMANDS
        }
        self.actions.update(actions or {})
        self._started = False
        self._closed = False

    # --- Lifecycle -----------------------------------------------------------------

    async def start(self) -> "SearchSession":
        """Mount: load persisted history and bind keyboard input."""
        await self.tracker.load()
        self.store.dispatch(HistoryLoaded(
            recent=self.tracker.recent_searches(),
            popular=self.tracker.popular_searches(),
        ))
        if self.input_port is not None:
            self.input_port.add_listener(self.handle_key_down)
        self._started = True
        logger.info("Search session mounted", extra=self._log_extra())
        return self

    async def close(self) -> None:
        """Unmount: unbind input, cancel the timer, abandon lookups, drop listeners."""
        if self._closed:
            return
        self._closed = True
        if self.input_port is not None and self._started:
            self.input_port.remove_listener(self.handle_key_down)
        await self.dispatcher.shutdown()
        self.store.clear_listeners()
        logger.info("Search session unmounted", extra=self._log_extra())

    async def __aenter__(self) -> "SearchSession":
        return await self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    # --- State access ----------------------------------------------------------------

    @property
    def state(self) -> SearchState:
        return self.store.state

    def snapshot(self) -> dict:
        return self.store.state.to_dict()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def unsubscribe(self, listener: StateListener) -> None:
        self.store.unsubscribe(listener)

    async def wait_idle(self) -> None:
        """Wait for the debounce timer and dispatched lookups to settle."""
        await self.dispatcher.wait_idle()

    # --- Query handlers --------------------------------------------------------------

    def handle_query_change(self, query: str) -> None:
        if self._closed:
            logger.debug("Ignoring query on closed session", extra=self._log_extra())
            return
        self.dispatcher.dispatch(query)

    def handle_filter_change(self, filters: Mapping[str, Any]) -> None:
        """Replace filters and re-run the current query, if any."""
        self.store.dispatch(FiltersChanged(filters=filters))
        if self.state.has_query:
            self.handle_query_change(self.state.query)

    def clear_search(self) -> None:
        self.dispatcher.cancel_pending()
        self.store.dispatch(SearchCleared())

    def use_recent_search(self, query: str) -> None:
        self.store.dispatch(PanelOpened())
        self.handle_query_change(query)

    def use_popular_search(self, query: str) -> None:
        self.store.dispatch(PanelOpened())
        self.handle_query_change(query)

    # --- Panel handlers ----------------------------------------------------------------

    def toggle_search_panel(self) -> None:
        self.store.dispatch(PanelToggled())

    def open_search_panel(self) -> None:
        self.store.dispatch(PanelOpened())

    def close_search_panel(self) -> None:
        self.store.dispatch(PanelClosed())

    def handle_route_change(self) -> None:
        """Host navigated elsewhere (back/forward): close the panel."""
        self.store.dispatch(PanelClosed())

    def highlight_result(self, index: int) -> None:
        self.store.dispatch(ResultHighlighted(index=index))

    async def handle_key_down(self, event: KeyEvent) -> bool:
        """Apply a key press. Returns True when the host must stop propagation."""
        decision = interpret_key(self.state, event)
        if decision.action in _KEY_EVENTS:
            self.store.dispatch(_KEY_EVENTS[decision.action]())
        elif decision.action == KeyAction.MOVE_DOWN:
            self.store.dispatch(SelectionMoved(delta=1))
        elif decision.action == KeyAction.MOVE_UP:
            self.store.dispatch(SelectionMoved(delta=-1))
        elif decision.action == KeyAction.COMMIT:
            selected = self.state.selected_result
            if selected is not None:
                await self.handle_result_select(selected)
        return decision.consumed

    # --- Commit handlers ---------------------------------------------------------------

    async def handle_result_select(self, result: SearchResult) -> bool:
        """Commit `result`. Returns False when the commit was aborted."""
        self.store.dispatch(PanelClosed())
        return await self._commit(resolve_result(result))

    async def use_suggestion(self, suggestion: str) -> bool:
        """Direct-navigate on a known phrase, otherwise search for the text."""
        self.store.dispatch(PanelClosed())
        resolution = resolve_suggestion_text(suggestion)
        if resolution.kind == ResolutionKind.NAVIGATE:
            return await self._commit(resolution)
        self.store.dispatch(PanelOpened())
        self.handle_query_change(suggestion)
        return True

    async def clear_recent_searches(self) -> None:
        await self.tracker.clear_recent_searches()
        self.store.dispatch(RecentCleared())

    async def _commit(self, resolution: Resolution) -> bool:
        result = resolution.result
        if resolution.kind == ResolutionKind.MISSING_URL:
            err = MissingUrlError(
                result.id if result else "?",
                ErrorContext(session_id=self.session_id, query=self.state.query),
            )
            logger.error(err.message, extra={**self._log_extra(), "error_code": err.code})
            return False

        label = (
            resolution.query if resolution.kind == ResolutionKind.REQUERY
            else commit_label(result)
        )
        await self._record(label, result)

        if resolution.kind == ResolutionKind.REQUERY:
            self.store.dispatch(PanelOpened())
            self.handle_query_change(resolution.query)
        elif resolution.kind == ResolutionKind.EXECUTE:
            await self._execute(resolution.action, result)
        else:
            self._navigate(resolution.url)
        return True

    async def _record(self, label: str, result: SearchResult) -> None:
        query = self.state.query
        await self.tracker.record_query(label)
        await self.tracker.record_result_click(label, result, query=query)
        self.store.dispatch(HistoryChanged(
            recent=self.tracker.recent_searches(),
            popular=self.tracker.popular_searches(),
        ))

    def _navigate(self, url: str) -> None:
        try:
            self.router.navigate(url)
            logger.info("Navigated to %s", url, extra={**self._log_extra(), "url": url})
        except Exception as e:
            logger.error(
                "Navigation to %s failed: %s", url, e,
                extra={**self._log_extra(), "url": url}, exc_info=True,
            )

    async def _execute(self, action: Any, result: SearchResult) -> None:
        handler = action if callable(action) else self.actions.get(str(action))
        if handler is None:
            logger.error(
                "Unknown command action '%s'", action,
                extra={**self._log_extra(), "error_code": "UNKNOWN_ACTION"},
            )
            return
        try:
            outcome = handler()
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.error(
                "Command '%s' failed: %s", result.id, e,
                extra=self._log_extra(), exc_info=True,
            )

    def _navigate_action(self, route: str) -> CommandAction:
        return lambda: self._navigate(route)

    def _log_extra(self) -> dict:
        return {"session_id": self.session_id}
