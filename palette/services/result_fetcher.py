"""Result Fetcher - runs one lookup, normalizes it and reports the outcome to the store.

Invariants:
    - FetchStarted is dispatched before the backend is called (marks the active request)
    - Every lookup is bounded by a timeout; expiry counts as a failure
    - Backend exceptions never escape fetch(): they become FetchFailed with a generic message
    - Results are grouped by type before they reach the store
    - Stale outcomes are handed to the store anyway; the transition function drops them
    - The outcome is committed before the lookup is recorded in analytics

Design Decisions:
    - Completed lookups are reported to the tracker whether or not they were stale
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from palette.core.domain_types import FETCH_ERROR_MESSAGE, FETCH_TIMEOUT_SECONDS
from palette.core.errors import PaletteError
from palette.core.grouping import normalize_results
from palette.core.ports import SearchBackend
from palette.core.search_events import FetchFailed, FetchStarted, FetchSucceeded
from palette.core.transitions import is_current_request
from palette.services.history_tracker import HistoryTracker
from palette.services.search_store import SearchStore

logger = logging.getLogger(__name__)


class ResultFetcher:
    """Performs lookups on behalf of the query dispatcher."""

    def __init__(
        self,
        backend: SearchBackend,
        store: SearchStore,
        tracker: HistoryTracker | None = None,
        timeout_seconds: float = FETCH_TIMEOUT_SECONDS,
        session_id: str | None = None,
    ):
        self.backend = backend
        self.store = store
        self.tracker = tracker
        self.timeout_seconds = timeout_seconds
        self.session_id = session_id

    async def fetch(self, query: str, filters: Mapping[str, Any], seq: int) -> None:
        """Look up `query` and commit the outcome if it is still current."""
        self.store.dispatch(FetchStarted(seq=seq, query=query))
        log_extra = {"session_id": self.session_id, "query": query, "request_seq": seq}
        try:
            payload = await asyncio.wait_for(
                self.backend.search(query, filters), timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Search timed out after %ss", self.timeout_seconds,
                extra={**log_extra, "error_code": "FETCH_TIMEOUT"},
            )
            self._fail(query, seq)
            return
        except PaletteError as e:
            logger.error(
                "Search failed: %s", e.message,
                extra={**log_extra, "error_code": e.code},
            )
            self._fail(query, seq)
            return
        except Exception as e:
            logger.error(
                "Unexpected search failure: %s", e,
                extra={**log_extra, "error_code": "FETCH_FAILURE"}, exc_info=True,
            )
            self._fail(query, seq)
            return

        try:
            results, rejected = normalize_results(payload or [])
        except TypeError as e:
            logger.error(
                "Search returned a non-iterable payload: %s", e,
                extra={**log_extra, "error_code": "INVALID_RESULT"},
            )
            self._fail(query, seq)
            return
        for err in rejected:
            logger.warning(
                "Dropped search result: %s", err.message,
                extra={**log_extra, "error_code": err.code},
            )

        if not is_current_request(self.store.state, seq, query):
            logger.debug("Discarding stale search response", extra=log_extra)
        self.store.dispatch(FetchSucceeded(seq=seq, query=query, results=results))
        logger.info(
            "Search completed",
            extra={**log_extra, "result_count": len(results)},
        )

        if self.tracker is not None:
            await self.tracker.track_search(query, len(results))

    def _fail(self, query: str, seq: int) -> None:
        self.store.dispatch(FetchFailed(seq=seq, query=query, message=FETCH_ERROR_MESSAGE))
