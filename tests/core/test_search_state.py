"""Search State - tests for result parsing and derived panel status.

Tests cover:
    - SearchResult.from_dict validation (missing fields, unknown type)
    - Metadata is read-only and callables are dropped from snapshots
    - PanelStatus derivation across open/query/loading/error combinations
    - selected_result bounds
"""

import pytest

from palette.core.domain_types import NO_SELECTION, PanelStatus, ResultType
from palette.core.errors import InvalidResultError
from palette.core.search_state import SearchResult, SearchState
from tests.fakes import make_result


def test_from_dict_builds_result():
    result = SearchResult.from_dict({
        "id": "c1", "type": "client", "title": "Ana Souza",
        "description": "VIP", "url": "/clients/c1", "metadata": {"phone": "555"},
    })
    assert result.type == ResultType.CLIENT
    assert result.url == "/clients/c1"
    assert result.metadata["phone"] == "555"


@pytest.mark.parametrize("missing", ["id", "type", "title"])
def test_from_dict_rejects_missing_required_field(missing):
    data = {"id": "c1", "type": "client", "title": "Ana"}
    del data[missing]
    with pytest.raises(InvalidResultError) as exc:
        SearchResult.from_dict(data)
    assert exc.value.field == missing


def test_from_dict_rejects_unknown_type():
    with pytest.raises(InvalidResultError, match="Unknown search result type"):
        SearchResult.from_dict({"id": "x", "type": "spaceship", "title": "X"})


def test_empty_url_becomes_none():
    result = SearchResult.from_dict({"id": "x", "type": "note", "title": "X", "url": ""})
    assert result.url is None


def test_metadata_is_read_only():
    result = make_result("c1", origin="crm")
    with pytest.raises(TypeError):
        result.metadata["origin"] = "other"


def test_to_dict_drops_callable_metadata():
    result = SearchResult(
        id="cmd", type=ResultType.COMMAND, title="Run",
        metadata={"action": lambda: None, "icon": "send"},
    )
    assert result.to_dict()["metadata"] == {"icon": "send"}


def test_default_state_is_closed_and_empty():
    state = SearchState()
    assert state.status == PanelStatus.CLOSED
    assert state.selected_result_index == NO_SELECTION
    assert state.selected_result is None


def test_open_with_blank_query_is_empty():
    assert SearchState(is_open=True, query="   ").status == PanelStatus.OPEN_EMPTY


def test_open_loading_takes_precedence_over_error():
    state = SearchState(is_open=True, query="ab", is_loading=True, error="boom")
    assert state.status == PanelStatus.OPEN_LOADING


def test_open_error():
    state = SearchState(is_open=True, query="ab", error="Failed to fetch search results")
    assert state.status == PanelStatus.OPEN_ERROR


def test_open_results_even_when_empty():
    assert SearchState(is_open=True, query="ab").status == PanelStatus.OPEN_RESULTS


def test_closed_wins_over_everything():
    state = SearchState(is_open=False, query="ab", is_loading=True)
    assert state.status == PanelStatus.CLOSED


def test_selected_result_follows_index():
    results = (make_result("a"), make_result("b"))
    state = SearchState(results=results, selected_result_index=1)
    assert state.selected_result.id == "b"


def test_selected_result_none_when_index_out_of_range():
    state = SearchState(results=(make_result("a"),), selected_result_index=3)
    assert state.selected_result is None


def test_to_dict_includes_status_and_results():
    state = SearchState(is_open=True, query="a", results=(make_result("a"),),
                        selected_result_index=0)
    snapshot = state.to_dict()
    assert snapshot["status"] == "open_results"
    assert snapshot["results"][0]["id"] == "a"
    assert snapshot["selected_result_index"] == 0
