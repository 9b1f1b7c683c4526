"""Search State - immutable snapshot of one palette session.

Invariants:
    - SearchResult and SearchState are frozen; changes produce new instances
    - selected_result_index == -1 iff results is empty, else within [0, len(results)-1]
    - active_request is the only fetch sequence allowed to commit results (None = none)
    - recent_searches is most-recent-first and free of duplicates

Design Decisions:
    - Frozen dataclasses with tuple fields: transitions use dataclasses.replace
    - Panel status is derived, never stored, so it cannot drift from the fields
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from palette.core.domain_types import NO_SELECTION, PanelStatus, ResultType
from palette.core.errors import InvalidResultError


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class SearchResult:
    """One lookup hit. Produced by a fetch, never mutated afterwards."""

    id: str
    type: ResultType
    title: str
    description: str | None = None
    url: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=_empty_mapping)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SearchResult":
        """Build from a backend payload. Raises InvalidResultError."""
        for key in ("id", "type", "title"):
            if not data.get(key):
                raise InvalidResultError(f"Search result is missing '{key}'", key)
        try:
            result_type = ResultType(data["type"])
        except ValueError:
            raise InvalidResultError(
                f"Unknown search result type '{data['type']}'", "type",
            )
        return cls(
            id=str(data["id"]),
            type=result_type,
            title=str(data["title"]),
            description=data.get("description"),
            url=data.get("url") or None,
            metadata=MappingProxyType(dict(data.get("metadata") or {})),
        )

    def to_dict(self) -> dict:
        """JSON-safe view. Callable metadata values are dropped."""
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "metadata": {
                k: v for k, v in self.metadata.items() if not callable(v)
            },
        }


@dataclass(frozen=True)
class SearchState:
    """Per-session palette state. Owned and replaced by the store only."""

    query: str = ""
    results: tuple[SearchResult, ...] = ()
    filters: Mapping[str, Any] = field(default_factory=_empty_mapping)
    is_loading: bool = False
    error: str | None = None
    recent_searches: tuple[str, ...] = ()
    popular_searches: tuple[str, ...] = ()
    selected_result_index: int = NO_SELECTION
    is_open: bool = False
    active_request: int | None = None

    # --- Computed properties ---------------------------------------------------

    @property
    def has_query(self) -> bool:
        return bool(self.query.strip())

    @property
    def status(self) -> PanelStatus:
        """Panel status derived from the fields."""
        if not self.is_open:
            return PanelStatus.CLOSED
        if not self.has_query:
            return PanelStatus.OPEN_EMPTY
        if self.is_loading:
            return PanelStatus.OPEN_LOADING
        if self.error is not None:
            return PanelStatus.OPEN_ERROR
        return PanelStatus.OPEN_RESULTS

    @property
    def selected_result(self) -> SearchResult | None:
        """Highlighted result, or None when nothing is selected."""
        if 0 <= self.selected_result_index < len(self.results):
            return self.results[self.selected_result_index]
        return None

    def to_dict(self) -> dict:
        """JSON-safe snapshot for the rendering layer."""
        return {
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "filters": dict(self.filters),
            "is_loading": self.is_loading,
            "error": self.error,
            "recent_searches": list(self.recent_searches),
            "popular_searches": list(self.popular_searches),
            "selected_result_index": self.selected_result_index,
            "is_open": self.is_open,
            "status": self.status.value,
        }
