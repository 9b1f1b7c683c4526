"""Result Grouping - shapes a raw lookup payload into display/selection order.

Invariants:
    - Pure functions: no IO, no async, no logging
    - Groups appear in first-seen order; items keep their original order inside a group
    - flatten(group(results)) is the selection order used by the navigation state machine
    - Items that cannot become a SearchResult are reported, never silently kept

Design Decisions:
    - Payload items may be SearchResult instances or plain mappings (HTTP backends)
    - Duplicate ids keep the first occurrence so selection indices stay unambiguous
"""

from collections.abc import Iterable, Mapping
from typing import Any

from palette.core.domain_types import NO_SELECTION, ResultType
from palette.core.errors import InvalidResultError
from palette.core.search_state import SearchResult


def coerce_results(
    payload: Iterable[SearchResult | Mapping[str, Any]],
) -> tuple[list[SearchResult], list[InvalidResultError]]:
    """Convert payload items into SearchResults. Returns (results, rejected)."""
    results: list[SearchResult] = []
    rejected: list[InvalidResultError] = []
    seen: set[str] = set()
    for item in payload:
        try:
            result = item if isinstance(item, SearchResult) else SearchResult.from_dict(item)
        except InvalidResultError as e:
            rejected.append(e)
            continue
        if result.id in seen:
            continue
        seen.add(result.id)
        results.append(result)
    return results, rejected


def group_by_type(
    results: Iterable[SearchResult],
) -> list[tuple[ResultType, list[SearchResult]]]:
    """Group results by type, preserving first-seen group order."""
    groups: dict[ResultType, list[SearchResult]] = {}
    for result in results:
        groups.setdefault(result.type, []).append(result)
    return list(groups.items())


def flatten_groups(
    groups: Iterable[tuple[ResultType, list[SearchResult]]],
) -> tuple[SearchResult, ...]:
    """Concatenate groups back into one ordered sequence."""
    return tuple(r for _, items in groups for r in items)


def normalize_results(
    payload: Iterable[SearchResult | Mapping[str, Any]],
) -> tuple[tuple[SearchResult, ...], list[InvalidResultError]]:
    """Coerce, group and flatten in one step."""
    results, rejected = coerce_results(payload)
    return flatten_groups(group_by_type(results)), rejected


def initial_selection(results: tuple[SearchResult, ...]) -> int:
    """First item selected when anything came back."""
    return 0 if results else NO_SELECTION


def display_sections(results: tuple[SearchResult, ...]) -> list[dict]:
    """Sections for the rendering layer, each item tagged with its flat index."""
    sections: list[dict] = []
    index = 0
    for result_type, items in group_by_type(results):
        entries = []
        for item in items:
            entries.append({"index": index, "result": item})
            index += 1
        sections.append({"type": result_type.value, "items": entries})
    return sections
