"""Query Dispatcher - collapses bursts of keystrokes into one lookup per pause.

Invariants:
    - At most one timer is pending; each dispatch cancels it before scheduling a new one
    - Blank queries clear results immediately and schedule nothing
    - is_loading turns on synchronously for non-blank queries (via QueryChanged)
    - Request sequence numbers are monotonic per dispatcher
    - Dispatched lookups are never cancelled by typing; only shutdown() abandons them

Design Decisions:
    - Timer is an asyncio task sleeping for the quiet interval, so cancellation is exact
    - Filters are read from the store when the timer fires, not when the key was typed
"""

import asyncio
import itertools
import logging

from palette.core.domain_types import DEBOUNCE_MS
from palette.core.search_events import QueryChanged
from palette.services.result_fetcher import ResultFetcher
from palette.services.search_store import SearchStore

logger = logging.getLogger(__name__)


class QueryDispatcher:
    """Debounces query changes and sequences fetches."""

    def __init__(
        self,
        store: SearchStore,
        fetcher: ResultFetcher,
        debounce_ms: int = DEBOUNCE_MS,
    ):
        self.store = store
        self.fetcher = fetcher
        self.debounce_ms = debounce_ms
        self._seq = itertools.count(1)
        self._timer: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def dispatch(self, query: str) -> None:
        """Register a new query value. Must be called from the event loop."""
        self._cancel_timer()
        self.store.dispatch(QueryChanged(query=query))
        if not query.strip():
            return
        self._timer = asyncio.get_running_loop().create_task(
            self._fire_after_quiet_period(query),
        )

    async def _fire_after_quiet_period(self, query: str) -> None:
        await asyncio.sleep(self.debounce_ms / 1000)
        seq = next(self._seq)
        filters = self.store.state.filters
        task = asyncio.get_running_loop().create_task(
            self.fetcher.fetch(query, filters, seq),
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        self._timer = None

    def cancel_pending(self) -> None:
        """Drop the scheduled lookup, if any. In-flight lookups are left alone."""
        self._cancel_timer()

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and every dispatched lookup finished."""
        while self.has_pending_timer or self._in_flight:
            if self.has_pending_timer:
                try:
                    await self._timer
                except asyncio.CancelledError:
                    if asyncio.current_task().cancelling():
                        raise
                continue
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel the pending timer and abandon in-flight lookups (unmount)."""
        self._cancel_timer()
        tasks = list(self._in_flight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
        logger.debug("Query dispatcher shut down (%d lookups abandoned)", len(tasks))
