"""Palette Sessions - mount/unmount palette instances and relay user actions to them.

Invariants:
    - One SearchSession per mounted palette, held in-memory (module-level dict)
    - Every action response carries the snapshot after the call and the navigations issued
    - Unknown session ids -> ResourceNotFoundError (404 via the global handler)
    - DELETE unmounts: timer cancelled, lookups abandoned, open streams ended
    - Stream queues are bounded; a slow reader loses its oldest snapshots, never the latest
    - Palettes with no open stream and no request for the idle timeout are unmounted by the sweep

Design Decisions:
    - _sessions as module-level dict: palette state is per-tab and short-lived,
      single-process uvicorn, lost on restart
    - Navigation is relayed to the client (RecordingRouter) rather than performed here
    - ?wait=true on query-producing actions waits for the lookup to settle, for clients
      without a stream open
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from uuid import uuid4

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse

from palette.api.dependencies import get_kv_store, get_search_backend
from palette.config import Settings, get_settings
from palette.core.errors import InvalidResultError, ResourceNotFoundError
from palette.core.grouping import display_sections
from palette.core.history import empty_panel_lists
from palette.core.key_bindings import KeyEvent
from palette.core.ports import KeyValueStore, SearchBackend
from palette.core.search_state import SearchResult, SearchState
from palette.infrastructure.router import RecordingRouter
from palette.schemas.palette import (
    ActionResponse, ChoiceRequest, FiltersRequest, HighlightRequest, KeyRequest,
    QueryRequest, SelectRequest, SessionCreate, SessionResponse, SuggestionRequest,
)
from palette.services.history_tracker import HistoryTracker
from palette.services.search_session import SearchSession

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/palette/sessions", tags=["palette"])

# SSE headers prevent proxy/browser buffering of streamed events.
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}
_KEEPALIVE_SECONDS = 15.0


def _offer(queue: asyncio.Queue, item) -> None:
    """Enqueue without waiting; a full queue gives up its oldest entry."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(item)


@dataclass
class _MountedPalette:
    session: SearchSession
    router: RecordingRouter
    namespace: str
    stream_backlog: int = 32
    streams: set[asyncio.Queue] = field(default_factory=set)
    last_seen: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def open_stream(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.stream_backlog)
        self.streams.add(queue)
        return queue

    def broadcast(self, state: SearchState) -> None:
        event = {"type": "state", "data": build_snapshot(state)}
        for queue in list(self.streams):
            _offer(queue, event)

    def end_streams(self) -> None:
        for queue in list(self.streams):
            _offer(queue, None)


_sessions: dict[str, _MountedPalette] = {}


def get_palette_or_404(session_id: str) -> _MountedPalette:
    """Get a mounted palette or raise 404."""
    mounted = _sessions.get(session_id)
    if mounted is None:
        raise ResourceNotFoundError("Palette session", session_id)
    mounted.touch()
    return mounted


def build_snapshot(state: SearchState) -> dict:
    """State plus grouped sections and the blank-query lists."""
    return {
        "state": state.to_dict(),
        "sections": [
            {
                "type": section["type"],
                "items": [
                    {"index": item["index"], "result": item["result"].to_dict()}
                    for item in section["items"]
                ],
            }
            for section in display_sections(state.results)
        ],
        "empty_panel": empty_panel_lists(state.recent_searches, state.popular_searches),
    }


def _respond(mounted: _MountedPalette, **extra) -> ActionResponse:
    return ActionResponse(
        **build_snapshot(mounted.session.state),
        navigations=mounted.router.drain(),
        **extra,
    )


async def _settle(mounted: _MountedPalette, wait: bool) -> None:
    if wait:
        await mounted.session.wait_idle()


async def unmount(session_id: str) -> bool:
    """Close a mounted palette and end its streams. False if it was not mounted."""
    mounted = _sessions.pop(session_id, None)
    if mounted is None:
        return False
    await mounted.session.close()
    mounted.end_streams()
    return True


async def sweep_idle_sessions(
    max_idle_seconds: float, now: float | None = None,
) -> list[str]:
    """Unmount palettes with no open stream that saw no request for `max_idle_seconds`."""
    now = time.monotonic() if now is None else now
    expired = [
        session_id for session_id, mounted in _sessions.items()
        if not mounted.streams and now - mounted.last_seen > max_idle_seconds
    ]
    for session_id in expired:
        await unmount(session_id)
    if expired:
        logger.info("Unmounted %d idle palette session(s)", len(expired))
    return expired


async def sweep_forever(max_idle_seconds: float, interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        await sweep_idle_sessions(max_idle_seconds)


# --- Lifecycle -------------------------------------------------------------------

@router.post(
    "", response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    body: SessionCreate,
    backend: SearchBackend = Depends(get_search_backend),
    store: KeyValueStore = Depends(get_kv_store),
    settings: Settings = Depends(get_settings),
):
    """Mount a palette: load history, start with the panel closed."""
    session_id = uuid4().hex
    navigator = RecordingRouter()
    tracker = HistoryTracker(
        store,
        namespace=body.namespace,
        recent_limit=settings.max_recent_searches,
        popular_limit=settings.popular_searches_shown,
        popular_cap=settings.max_popular_entries,
        history_limit=settings.max_search_history,
    )
    session = SearchSession(
        backend, tracker, navigator,
        session_id=session_id,
        debounce_ms=settings.debounce_ms,
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
    )
    await session.start()
    mounted = _MountedPalette(
        session=session, router=navigator, namespace=body.namespace,
        stream_backlog=settings.stream_backlog,
    )
    session.subscribe(mounted.broadcast)
    _sessions[session_id] = mounted
    logger.info("Palette session created", extra={"session_id": session_id})
    return SessionResponse(
        id=session_id, namespace=body.namespace, **build_snapshot(session.state),
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    mounted = get_palette_or_404(session_id)
    return SessionResponse(
        id=session_id, namespace=mounted.namespace,
        **build_snapshot(mounted.session.state),
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str):
    """Unmount: cancel the timer, abandon lookups, end open streams."""
    get_palette_or_404(session_id)
    await unmount(session_id)


# --- Query actions -----------------------------------------------------------------

@router.post("/{session_id}/query", response_model=ActionResponse)
async def change_query(
    session_id: str, body: QueryRequest, wait: bool = Query(False),
):
    mounted = get_palette_or_404(session_id)
    mounted.session.handle_query_change(body.query)
    await _settle(mounted, wait)
    return _respond(mounted)


@router.post("/{session_id}/filters", response_model=ActionResponse)
async def change_filters(
    session_id: str, body: FiltersRequest, wait: bool = Query(False),
):
    mounted = get_palette_or_404(session_id)
    mounted.session.handle_filter_change(body.filters)
    await _settle(mounted, wait)
    return _respond(mounted)


@router.post("/{session_id}/clear", response_model=ActionResponse)
async def clear_search(session_id: str):
    mounted = get_palette_or_404(session_id)
    mounted.session.clear_search()
    return _respond(mounted)


@router.post("/{session_id}/recent", response_model=ActionResponse)
async def use_recent_search(
    session_id: str, body: ChoiceRequest, wait: bool = Query(False),
):
    mounted = get_palette_or_404(session_id)
    mounted.session.use_recent_search(body.query)
    await _settle(mounted, wait)
    return _respond(mounted)


@router.post("/{session_id}/popular", response_model=ActionResponse)
async def use_popular_search(
    session_id: str, body: ChoiceRequest, wait: bool = Query(False),
):
    mounted = get_palette_or_404(session_id)
    mounted.session.use_popular_search(body.query)
    await _settle(mounted, wait)
    return _respond(mounted)


@router.delete("/{session_id}/recent-searches", response_model=ActionResponse)
async def clear_recent_searches(session_id: str):
    mounted = get_palette_or_404(session_id)
    await mounted.session.clear_recent_searches()
    return _respond(mounted)


# --- Navigation actions ------------------------------------------------------------

@router.post("/{session_id}/keys", response_model=ActionResponse)
async def key_down(
    session_id: str, body: KeyRequest, wait: bool = Query(False),
):
    """Apply a key press. `consumed` tells the client to preventDefault."""
    mounted = get_palette_or_404(session_id)
    consumed = await mounted.session.handle_key_down(KeyEvent(
        key=body.key, ctrl=body.ctrl, meta=body.meta,
        shift=body.shift, alt=body.alt,
    ))
    await _settle(mounted, wait)
    return _respond(mounted, consumed=consumed)


@router.post("/{session_id}/select", response_model=ActionResponse)
async def select_result(
    session_id: str, body: SelectRequest, wait: bool = Query(False),
):
    """Commit a result by index into the current results, or by value."""
    mounted = get_palette_or_404(session_id)
    if body.index is not None:
        results = mounted.session.state.results
        if body.index >= len(results):
            raise InvalidResultError(
                f"No result at index {body.index} ({len(results)} available)", "index",
            )
        result = results[body.index]
    else:
        result = SearchResult.from_dict(body.result.model_dump())
    committed = await mounted.session.handle_result_select(result)
    await _settle(mounted, wait)
    return _respond(mounted, committed=committed)


@router.post("/{session_id}/highlight", response_model=ActionResponse)
async def highlight_result(session_id: str, body: HighlightRequest):
    """Pointer hover: move the selection without committing."""
    mounted = get_palette_or_404(session_id)
    mounted.session.highlight_result(body.index)
    return _respond(mounted)


@router.post("/{session_id}/suggestion", response_model=ActionResponse)
async def use_suggestion(
    session_id: str, body: SuggestionRequest, wait: bool = Query(False),
):
    mounted = get_palette_or_404(session_id)
    committed = await mounted.session.use_suggestion(body.text)
    await _settle(mounted, wait)
    return _respond(mounted, committed=committed)


@router.post("/{session_id}/toggle", response_model=ActionResponse)
async def toggle_panel(session_id: str):
    mounted = get_palette_or_404(session_id)
    mounted.session.toggle_search_panel()
    return _respond(mounted)


@router.post("/{session_id}/close", response_model=ActionResponse)
async def close_panel(session_id: str):
    mounted = get_palette_or_404(session_id)
    mounted.session.close_search_panel()
    return _respond(mounted)


@router.post("/{session_id}/route-change", response_model=ActionResponse)
async def route_change(session_id: str):
    """The client navigated (back/forward, link): the panel closes."""
    mounted = get_palette_or_404(session_id)
    mounted.session.handle_route_change()
    return _respond(mounted)


# --- Stream --------------------------------------------------------------------------

def _sse_line(event: dict) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


@router.get("/{session_id}/stream")
async def stream_session(session_id: str):
    """SSE stream of state snapshots, starting with the current one."""
    mounted = get_palette_or_404(session_id)
    queue = mounted.open_stream()
    initial = _sse_line({"type": "state", "data": build_snapshot(mounted.session.state)})

    async def event_generator():
        try:
            yield initial
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    if mounted.session.closed:
                        break
                    yield ": keep-alive\n\n"
                    continue
                if event is None:
                    yield _sse_line({"type": "done", "data": {"session_id": session_id}})
                    break
                yield _sse_line(event)
        finally:
            mounted.streams.discard(queue)
            mounted.touch()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )
