"""Suggestion Resolver - decides what committing a result or a suggestion means.

Invariants:
    - Pure: returns a Resolution, never navigates, executes or records anything itself
    - Precedence for results: corrected-query suggestion > command action > url > missing url
    - Free-text suggestions match direct routes exactly, case-insensitively, after trimming
    - Unmatched free text becomes a new query (REQUERY)

Design Decisions:
    - Direct-navigation phrases are a fixed table, not derived from the command catalog
"""

from dataclasses import dataclass
from typing import Any

from palette.core.domain_types import ResolutionKind, ResultType
from palette.core.search_state import SearchResult

CORRECTED_QUERY_KEY = "correctedQuery"
ACTION_KEY = "action"

DIRECT_NAVIGATION_ROUTES: dict[str, str] = {
    "send money": "/send-money",
    "exchange rates": "/exchange",
    "transactions": "/transactions",
    "clients": "/clients",
    "settings": "/settings",
    "help center": "/help",
    "new client": "/clients/new",
    "cash register": "/cash-register",
}


@dataclass(frozen=True)
class Resolution:
    """Outcome of a commit. Exactly one of url/query/action is relevant per kind."""
    kind: ResolutionKind
    result: SearchResult | None = None
    url: str | None = None
    query: str | None = None
    action: Any = None


def resolve_result(result: SearchResult) -> Resolution:
    """Resolve a committed SearchResult."""
    if result.type == ResultType.SUGGESTION:
        corrected = result.metadata.get(CORRECTED_QUERY_KEY)
        if isinstance(corrected, str) and corrected.strip():
            return Resolution(ResolutionKind.REQUERY, result, query=corrected)

    if result.type == ResultType.COMMAND:
        action = result.metadata.get(ACTION_KEY)
        if action:
            return Resolution(ResolutionKind.EXECUTE, result, action=action)

    if result.url and result.url != "#":
        return Resolution(ResolutionKind.NAVIGATE, result, url=result.url)
    return Resolution(ResolutionKind.MISSING_URL, result)


def direct_route_for(text: str) -> str | None:
    """Route mapped to `text`, if it is one of the known phrases."""
    return DIRECT_NAVIGATION_ROUTES.get(text.strip().lower())


def resolve_suggestion_text(text: str) -> Resolution:
    """Resolve a free-text autocomplete suggestion."""
    route = direct_route_for(text)
    if route is None:
        return Resolution(ResolutionKind.REQUERY, query=text)
    result = SearchResult(
        id=f"suggestion:{route}",
        type=ResultType.SUGGESTION,
        title=text.strip(),
        url=route,
    )
    return Resolution(ResolutionKind.NAVIGATE, result, url=route)
