"""Search History Rules - recency list, popularity counters and search analytics.

Invariants:
    - Pure functions over JSON-safe lists/dicts: no IO, no clock reads (timestamps are passed in)
    - Recent list: most-recent-first, deduplicated (promote on repeat), capped
    - Popularity ranking: count descending, ties broken by most recent activity
    - Popularity table and search history are capped; the lowest ranked / oldest entries go first
    - Blank queries and labels are never recorded

Design Decisions:
    - `activity` is a monotonic counter stored per entry: deterministic tie-break
      even when two clicks share a timestamp
    - Recent list wins display ties: popular labels already shown as recent are hidden
"""

from urllib.parse import urlsplit

from palette.core.search_state import SearchResult

_HOME_LABEL = "Dashboard"


def normalize_query(query: str) -> str:
    """Case/whitespace-insensitive key used by the analytics tables."""
    return query.strip().lower()


# --- Recent searches ---------------------------------------------------------------

def promote_recent(recent: list[str], query: str, limit: int) -> list[str]:
    """Insert `query` at the front, dropping an older occurrence. Capped."""
    query = query.strip()
    if not query:
        return list(recent)
    rest = [q for q in recent if q != query]
    return [query, *rest][:limit]


# --- Popularity ----------------------------------------------------------------------

def _rank_key(entry: dict) -> tuple[int, int]:
    return (-int(entry.get("count", 0)), -int(entry.get("activity", 0)))


def rank_popular(entries: list[dict]) -> list[dict]:
    """Entries ordered by count desc, then most recent activity."""
    return sorted(entries, key=_rank_key)


def bump_popularity(
    entries: list[dict], label: str, now_iso: str, cap: int,
) -> list[dict]:
    """Increment the counter for `label`. Returns a new ranked, capped table."""
    label = label.strip()
    if not label:
        return rank_popular(entries)
    activity = max((int(e.get("activity", 0)) for e in entries), default=0) + 1
    updated: list[dict] = []
    found = False
    for entry in entries:
        if entry.get("label") == label:
            found = True
            entry = {
                **entry,
                "count": int(entry.get("count", 0)) + 1,
                "last_used": now_iso,
                "activity": activity,
            }
        updated.append(entry)
    if not found:
        updated.append({
            "label": label, "count": 1,
            "last_used": now_iso, "activity": activity,
        })
    return rank_popular(updated)[:cap]


def top_popular(entries: list[dict], n: int) -> list[str]:
    """Top-n labels by popularity."""
    return [e["label"] for e in rank_popular(entries)[:n]]


# --- Search history / click-through --------------------------------------------------

def record_search(
    history: list[dict], query: str, result_count: int, now_iso: str, cap: int,
) -> list[dict]:
    """Prepend a search to the capped history."""
    normalized = normalize_query(query)
    if not normalized:
        return list(history)
    entry = {
        "query": normalized,
        "timestamp": now_iso,
        "result_count": result_count,
    }
    return [entry, *history][:cap]


def attach_selected_result(
    history: list[dict], query: str, result: SearchResult,
) -> list[dict]:
    """Mark the latest search as having led to `result` when the query matches."""
    if not history or history[0].get("query") != normalize_query(query):
        return list(history)
    latest = {
        **history[0],
        "selected_result": {
            "id": result.id, "type": result.type.value, "title": result.title,
        },
    }
    return [latest, *history[1:]]


def count_search(click_through: dict, query: str) -> dict:
    """Count one search for `query` in the click-through table."""
    normalized = normalize_query(query)
    if not normalized:
        return dict(click_through)
    row = click_through.get(normalized, {"searches": 0, "clicks": 0})
    return {
        **click_through,
        normalized: {**row, "searches": int(row.get("searches", 0)) + 1},
    }


def count_click(click_through: dict, query: str) -> dict:
    """Count one click for `query`. A click without prior search counts as one search."""
    normalized = normalize_query(query)
    if not normalized:
        return dict(click_through)
    row = click_through.get(normalized, {"searches": 1, "clicks": 0})
    return {
        **click_through,
        normalized: {**row, "clicks": int(row.get("clicks", 0)) + 1},
    }


def click_through_rates(click_through: dict) -> dict[str, float]:
    """clicks / searches per query (0.0 when never searched)."""
    rates: dict[str, float] = {}
    for query, row in click_through.items():
        searches = int(row.get("searches", 0))
        rates[query] = int(row.get("clicks", 0)) / searches if searches > 0 else 0.0
    return rates


# --- Labels / display ----------------------------------------------------------------

def _looks_like_id(segment: str) -> bool:
    compact = segment.replace("-", "")
    return compact.isdigit() or (len(compact) >= 16 and compact.isalnum()
                                 and any(c.isdigit() for c in compact))


def page_label_from_url(url: str | None) -> str | None:
    """Human label for a route: '/send-money' -> 'Send Money'. None for non-routes."""
    if not url or url.startswith("#"):
        return None
    path = urlsplit(url).path
    segments = [s for s in path.split("/") if s and not _looks_like_id(s)]
    if not segments:
        return _HOME_LABEL
    words = [s.replace("-", " ").replace("_", " ").title() for s in segments]
    return " / ".join(words)


def commit_label(result: SearchResult) -> str:
    """Label recorded in history for a committed result."""
    return page_label_from_url(result.url) or result.title


def empty_panel_lists(
    recent: tuple[str, ...], popular: tuple[str, ...],
) -> dict[str, list[str]]:
    """Lists shown for a blank query. Recent first; popular minus anything already recent."""
    shown = {r.lower() for r in recent}
    return {
        "recent": list(recent),
        "popular": [p for p in popular if p.lower() not in shown],
    }
