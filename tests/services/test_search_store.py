"""Search Store - tests for dispatch and listener fan-out."""

from palette.core.search_events import PanelClosed, PanelOpened
from palette.services.search_store import SearchStore


def test_dispatch_replaces_state():
    store = SearchStore()
    state = store.dispatch(PanelOpened())
    assert state.is_open
    assert store.state is state


def test_listeners_notified_only_on_change():
    store = SearchStore()
    seen = []
    store.subscribe(seen.append)
    store.dispatch(PanelClosed())
    store.dispatch(PanelOpened())
    assert len(seen) == 1
    assert seen[0].is_open


def test_unsubscribe_callable():
    store = SearchStore()
    seen = []
    unsubscribe = store.subscribe(seen.append)
    unsubscribe()
    store.dispatch(PanelOpened())
    assert seen == []


def test_failing_listener_does_not_break_dispatch():
    store = SearchStore()
    seen = []

    def broken(state):
        raise RuntimeError("render failed")

    store.subscribe(broken)
    store.subscribe(seen.append)
    store.dispatch(PanelOpened())
    assert store.state.is_open
    assert len(seen) == 1
