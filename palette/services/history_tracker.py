"""History Tracker - durable recency list, popularity counters and search analytics.

Invariants:
    - Every write re-reads the stored value first, so trackers sharing a namespace merge
    - record_query dedupes-and-promotes; clear_recent_searches leaves popularity untouched
    - Popular list is the top-N labels by click count, ties broken by most recent activity
    - Storage failures never raise: the tracker logs once and continues in memory only
    - Keys are namespaced per browser profile (not shared across users)

Design Decisions:
    - Two keys (recent list, analytics blob) mirror the two independent clear operations
    - In-memory copy is a cache of the last read; it becomes authoritative once degraded
    - Clock injected for deterministic tests
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from palette.core.domain_types import (
    MAX_POPULAR_ENTRIES, MAX_RECENT_SEARCHES, MAX_SEARCH_HISTORY,
    POPULAR_SEARCHES_SHOWN,
)
from palette.core.history import (
    attach_selected_result, bump_popularity, click_through_rates,
    count_click, count_search, promote_recent, record_search, top_popular,
)
from palette.core.ports import KeyValueStore
from palette.core.search_state import SearchResult

logger = logging.getLogger(__name__)

RECENT_KEY = "recent-searches"
ANALYTICS_KEY = "search-analytics"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _empty_analytics() -> dict:
    return {"popular": [], "history": [], "click_through": {}}


def _parse_recent(raw, limit: int) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [q for q in raw if isinstance(q, str)][:limit]


def _parse_analytics(raw) -> dict:
    if not isinstance(raw, dict):
        return _empty_analytics()
    return {
        "popular": [
            e for e in raw.get("popular", [])
            if isinstance(e, dict) and e.get("label")
        ],
        "history": [e for e in raw.get("history", []) if isinstance(e, dict)],
        "click_through": dict(raw.get("click_through") or {}),
    }


class HistoryTracker:
    """Recency & popularity tracker backed by a KeyValueStore."""

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = "default",
        recent_limit: int = MAX_RECENT_SEARCHES,
        popular_limit: int = POPULAR_SEARCHES_SHOWN,
        popular_cap: int = MAX_POPULAR_ENTRIES,
        history_limit: int = MAX_SEARCH_HISTORY,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.namespace = namespace
        self.recent_limit = recent_limit
        self.popular_limit = popular_limit
        self.popular_cap = popular_cap
        self.history_limit = history_limit
        self._clock = clock
        self._recent: list[str] = []
        self._analytics: dict = _empty_analytics()
        self._degraded = False
        self._lock = asyncio.Lock()

    @property
    def degraded(self) -> bool:
        """True once storage failed; data then lives in memory only."""
        return self._degraded

    # --- Reads -----------------------------------------------------------------

    async def load(self) -> None:
        """Read persisted lists. Missing or malformed data starts empty."""
        async with self._lock:
            await self._refresh_recent()
            await self._refresh_analytics()

    def recent_searches(self) -> tuple[str, ...]:
        return tuple(self._recent)

    def popular_searches(self, n: int | None = None) -> tuple[str, ...]:
        limit = self.popular_limit if n is None else n
        return tuple(top_popular(self._analytics["popular"], limit))

    def search_history(self) -> list[dict]:
        return list(self._analytics["history"])

    def click_through_rates(self) -> dict[str, float]:
        return click_through_rates(self._analytics["click_through"])

    # --- Writes ----------------------------------------------------------------

    async def record_query(self, query: str) -> None:
        """Dedupe-and-promote `query` in the recent list."""
        if not query.strip():
            return
        async with self._lock:
            await self._refresh_recent()
            self._recent = promote_recent(self._recent, query, self.recent_limit)
            await self._write(RECENT_KEY, self._recent)

    async def record_result_click(
        self, page_label: str, result: SearchResult, query: str | None = None,
    ) -> None:
        """Count a click on `page_label`; attach it to the search that produced it."""
        async with self._lock:
            await self._refresh_analytics()
            analytics = self._analytics
            analytics["popular"] = bump_popularity(
                analytics["popular"], page_label, self._now(), self.popular_cap,
            )
            if query and query.strip():
                analytics["history"] = attach_selected_result(
                    analytics["history"], query, result,
                )
                analytics["click_through"] = count_click(
                    analytics["click_through"], query,
                )
            await self._write(ANALYTICS_KEY, analytics)

    async def track_search(self, query: str, result_count: int) -> None:
        """Record a completed lookup in history and click-through counts."""
        if not query.strip():
            return
        async with self._lock:
            await self._refresh_analytics()
            analytics = self._analytics
            analytics["history"] = record_search(
                analytics["history"], query, result_count,
                self._now(), self.history_limit,
            )
            analytics["click_through"] = count_search(analytics["click_through"], query)
            await self._write(ANALYTICS_KEY, analytics)

    async def clear_recent_searches(self) -> None:
        async with self._lock:
            self._recent = []
            await self._remove(RECENT_KEY)

    async def clear_analytics(self) -> None:
        async with self._lock:
            self._analytics = _empty_analytics()
            await self._remove(ANALYTICS_KEY)

    # --- Storage helpers ---------------------------------------------------------

    def _key(self, name: str) -> str:
        return f"{self.namespace}:{name}"

    def _now(self) -> str:
        return self._clock().isoformat()

    async def _refresh_recent(self) -> None:
        if self._degraded:
            return
        raw = await self._read(RECENT_KEY)
        if not self._degraded:
            self._recent = _parse_recent(raw, self.recent_limit)

    async def _refresh_analytics(self) -> None:
        if self._degraded:
            return
        raw = await self._read(ANALYTICS_KEY)
        if not self._degraded:
            self._analytics = _parse_analytics(raw)

    async def _read(self, name: str):
        if self._degraded:
            return None
        try:
            return await self.store.get(self._key(name))
        except Exception as e:
            self._degrade(e, "read")
            return None

    async def _write(self, name: str, value) -> None:
        if self._degraded:
            return
        try:
            await self.store.set(self._key(name), value)
        except Exception as e:
            self._degrade(e, "write")

    async def _remove(self, name: str) -> None:
        if self._degraded:
            return
        try:
            await self.store.delete(self._key(name))
        except Exception as e:
            self._degrade(e, "delete")

    def _degrade(self, error: Exception, operation: str) -> None:
        self._degraded = True
        logger.warning(
            "History storage unavailable on %s, continuing in memory: %s",
            operation, error,
            extra={"error_code": "STORAGE_UNAVAILABLE"},
        )
