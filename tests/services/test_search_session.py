"""Search Session - end-to-end tests of the palette handlers.

Tests cover:
    - "exchange rates" typed char-by-char -> one lookup; the suggestion navigates directly
    - Keyboard flow: open, clamp, Enter commits, Escape closes, keys inert while closed
    - Commit semantics: history recorded first, commands execute, corrected
      queries re-query, missing urls abort
    - Mount/unmount: history loaded, keyboard listener bound and removed
"""

import pytest

from palette.core.domain_types import PanelStatus, ResultType
from palette.core.key_bindings import KeyEvent
from palette.infrastructure.kv_store import MemoryKeyValueStore
from palette.services.history_tracker import HistoryTracker
from palette.services.search_session import SearchSession
from tests.fakes import (
    BlockingStore, FailingStore, FakeBackend, FakeInputPort, FakeRouter,
    eventually, make_result,
)

CTRL_K = KeyEvent("k", ctrl=True)


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
async def make_session(store):
    sessions = []

    async def _make(backend, router=None, kv=None, **kwargs):
        session = SearchSession(
            backend,
            HistoryTracker(kv or store),
            router or FakeRouter(),
            session_id="test-session",
            debounce_ms=10,
            **kwargs,
        )
        sessions.append(session)
        return await session.start()

    yield _make
    for session in sessions:
        await session.close()


async def _search(session, query):
    session.handle_query_change(query)
    await session.wait_idle()


async def test_exchange_rates_scenario(make_session):
    backend = FakeBackend({"exchange rates": [
        make_result("sg", ResultType.SUGGESTION, title="exchange rates", url=None),
    ]})
    router = FakeRouter()
    session = await make_session(backend, router)
    await session.handle_key_down(CTRL_K)

    text = "exchange rates"
    for i in range(1, len(text) + 1):
        session.handle_query_change(text[:i])
    await session.wait_idle()
    assert backend.queries == ["exchange rates"]

    assert await session.use_suggestion("exchange rates")
    await session.wait_idle()
    assert router.navigations == ["/exchange"]
    assert backend.queries == ["exchange rates"]
    assert not session.state.is_open


async def test_ctrl_k_opens_and_is_consumed(make_session):
    session = await make_session(FakeBackend())
    assert await session.handle_key_down(CTRL_K)
    assert session.state.status == PanelStatus.OPEN_EMPTY


async def test_arrow_navigation_clamps(make_session):
    backend = FakeBackend(default=[make_result("a"), make_result("b"), make_result("c")])
    session = await make_session(backend)
    session.open_search_panel()
    await _search(session, "x")

    for _ in range(5):
        await session.handle_key_down(KeyEvent("ArrowDown"))
    assert session.state.selected_result_index == 2
    for _ in range(5):
        await session.handle_key_down(KeyEvent("ArrowUp"))
    assert session.state.selected_result_index == 0


async def test_enter_commits_selected_result(make_session):
    backend = FakeBackend(default=[make_result("a", url="/clients/7"), make_result("b")])
    router = FakeRouter()
    session = await make_session(backend, router)
    session.open_search_panel()
    await _search(session, "ana")

    assert await session.handle_key_down(KeyEvent("Enter"))
    assert router.navigations == ["/clients/7"]
    assert not session.state.is_open
    assert session.state.recent_searches == ("Clients",)
    assert session.state.popular_searches == ("Clients",)


async def test_escape_then_arrow_down_has_no_effect(make_session):
    backend = FakeBackend(default=[make_result("a"), make_result("b")])
    session = await make_session(backend)
    session.open_search_panel()
    await _search(session, "ana")

    assert await session.handle_key_down(KeyEvent("Escape"))
    assert session.state.status == PanelStatus.CLOSED
    consumed = await session.handle_key_down(KeyEvent("ArrowDown"))
    assert not consumed
    assert session.state.selected_result_index == 0
    assert session.state.status == PanelStatus.CLOSED


async def test_history_recorded_before_navigation(make_session):
    class CheckingRouter(FakeRouter):
        def navigate(self, url):
            self.recent_at_navigation = session.tracker.recent_searches()
            super().navigate(url)

    router = CheckingRouter()
    session = await make_session(FakeBackend(), router)
    await session.handle_result_select(make_result("p", url="/send-money"))
    assert router.recent_at_navigation == ("Send Money",)


async def test_command_result_executes_registered_action(make_session):
    calls = []

    async def logout():
        calls.append("logout")

    router = FakeRouter()
    session = await make_session(FakeBackend(), router, actions={"logout": logout})
    result = make_result("logout", ResultType.COMMAND, title="Log Out", url=None, action="logout")
    assert await session.handle_result_select(result)
    assert calls == ["logout"]
    assert router.navigations == []
    assert session.state.recent_searches == ("Log Out",)


async def test_builtin_command_navigates_to_its_route(make_session):
    router = FakeRouter()
    session = await make_session(FakeBackend(), router)
    result = make_result("cmd", ResultType.COMMAND, title="New Client", url=None, action="new-client")
    await session.handle_result_select(result)
    assert router.navigations == ["/clients/new"]


async def test_unknown_command_action_is_logged_not_raised(make_session):
    router = FakeRouter()
    session = await make_session(FakeBackend(), router)
    result = make_result("cmd", ResultType.COMMAND, url=None, action="does-not-exist")
    assert await session.handle_result_select(result)
    assert router.navigations == []


async def test_corrected_query_suggestion_requeries(make_session):
    backend = FakeBackend()
    router = FakeRouter()
    session = await make_session(backend, router)
    result = make_result("s", ResultType.SUGGESTION, url=None, correctedQuery="exchange")
    assert await session.handle_result_select(result)
    assert session.state.status == PanelStatus.OPEN_LOADING
    await session.wait_idle()
    assert backend.queries == ["exchange"]
    assert router.navigations == []
    assert session.state.recent_searches == ("exchange",)


async def test_free_text_suggestion_becomes_query(make_session):
    backend = FakeBackend()
    session = await make_session(backend)
    await session.use_suggestion("ana souza")
    assert session.state.is_open
    await session.wait_idle()
    assert backend.queries == ["ana souza"]


async def test_missing_url_aborts_commit(make_session, caplog):
    router = FakeRouter()
    session = await make_session(FakeBackend(), router)
    session.open_search_panel()
    assert not await session.handle_result_select(make_result("c1", url=None))
    assert router.navigations == []
    assert not session.state.is_open
    assert session.state.recent_searches == ()
    assert any(getattr(r, "error_code", None) == "MISSING_URL" for r in caplog.records)


async def test_router_failure_does_not_escape(make_session):
    class BrokenRouter:
        def navigate(self, url):
            raise RuntimeError("history API unavailable")

    session = await make_session(FakeBackend(), BrokenRouter())
    assert await session.handle_result_select(make_result("c1"))


async def test_recent_and_popular_selection_open_and_search(make_session):
    backend = FakeBackend()
    session = await make_session(backend)
    session.use_recent_search("ana")
    assert session.state.is_open
    await session.wait_idle()
    session.use_popular_search("Send Money")
    await session.wait_idle()
    assert backend.queries == ["ana", "Send Money"]


async def test_filter_change_reissues_current_query(make_session):
    backend = FakeBackend()
    session = await make_session(backend)
    session.open_search_panel()
    await _search(session, "ana")
    session.handle_filter_change({"type": "client"})
    await session.wait_idle()
    assert backend.calls[-1] == ("ana", {"type": "client"})


async def test_filter_change_without_query_does_not_search(make_session):
    backend = FakeBackend()
    session = await make_session(backend)
    session.handle_filter_change({"type": "client"})
    await session.wait_idle()
    assert backend.calls == []
    assert session.state.filters == {"type": "client"}


async def test_clear_search_cancels_pending_lookup(make_session):
    backend = FakeBackend()
    session = await make_session(backend)
    session.open_search_panel()
    session.handle_query_change("ana")
    session.clear_search()
    await session.wait_idle()
    assert backend.calls == []
    assert session.state.status == PanelStatus.OPEN_EMPTY


async def test_route_change_closes_panel(make_session):
    session = await make_session(FakeBackend())
    session.toggle_search_panel()
    session.handle_route_change()
    assert not session.state.is_open


async def test_mount_loads_persisted_history(make_session):
    kv = MemoryKeyValueStore({"default:recent-searches": ["ana", "bruno"]})
    session = await make_session(FakeBackend(), kv=kv)
    assert session.state.recent_searches == ("ana", "bruno")


async def test_clear_recent_searches(make_session, store):
    session = await make_session(FakeBackend())
    await session.handle_result_select(make_result("p", url="/send-money"))
    await session.clear_recent_searches()
    assert session.state.recent_searches == ()
    assert session.state.popular_searches == ("Send Money",)
    assert await store.get("default:recent-searches") is None


async def test_storage_failure_does_not_break_commit(make_session):
    router = FakeRouter()
    session = await make_session(FakeBackend(), router, kv=FailingStore())
    assert await session.handle_result_select(make_result("p", url="/send-money"))
    assert router.navigations == ["/send-money"]
    assert session.state.recent_searches == ("Send Money",)


async def test_input_port_bound_on_start_and_removed_on_close():
    port = FakeInputPort()
    session = SearchSession(
        FakeBackend(), HistoryTracker(MemoryKeyValueStore()), FakeRouter(),
        debounce_ms=10, input_port=port,
    )
    async with session:
        assert len(port.handlers) == 1
        assert await port.press(CTRL_K)
        assert session.state.is_open
    assert port.handlers == []
    assert session.closed


async def test_query_after_close_is_ignored():
    backend = FakeBackend()
    session = await SearchSession(
        backend, HistoryTracker(MemoryKeyValueStore()), FakeRouter(), debounce_ms=5,
    ).start()
    await session.close()
    session.handle_query_change("ana")
    await session.wait_idle()
    assert backend.calls == []


async def test_results_shown_while_history_store_is_slow(make_session):
    kv = BlockingStore()
    backend = FakeBackend({"ana": [make_result("c1")]})
    session = await make_session(backend, kv=kv)
    await session.handle_key_down(CTRL_K)

    session.handle_query_change("ana")
    await eventually(lambda: kv.pending_writes == 1)
    assert backend.queries == ["ana"]
    assert session.state.is_loading is False
    assert [r.id for r in session.state.results] == ["c1"]
    kv.release.set()
    await session.wait_idle()
