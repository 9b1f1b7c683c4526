"""Resilient Search Client - tests for retry, backoff and error mapping.

Tests cover:
    - Bare-list and {"results": [...]} payloads
    - 5xx and connection errors retried, then mapped to SearchBackendError
    - 4xx fails immediately; timeouts fail immediately
    - 429 retried, Retry-After parsed in milliseconds
"""

import json

import httpx
import pytest

from palette.core.errors import SearchBackendError
from palette.infrastructure.search_client import ResilientSearchClient


def _client(handler, max_retries=2) -> ResilientSearchClient:
    return ResilientSearchClient(
        "http://search.test",
        max_retries=max_retries,
        base_delay_ms=1,
        max_delay_ms=2,
        transport=httpx.MockTransport(handler),
    )


class Scripted:
    """Handler answering with the given responses in order, recording requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


ITEMS = [{"id": "c1", "type": "client", "title": "Ana"}]


async def test_posts_query_and_filters():
    handler = Scripted(httpx.Response(200, json=ITEMS))
    client = _client(handler)
    assert await client.search("ana", {"type": "client"}) == ITEMS
    request = handler.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/v1/search"
    assert json.loads(request.content) == {"query": "ana", "filters": {"type": "client"}}
    await client.aclose()


async def test_results_envelope_unwrapped():
    client = _client(Scripted(httpx.Response(200, json={"results": ITEMS, "total": 1})))
    assert await client.search("ana", {}) == ITEMS


async def test_server_error_retried_then_succeeds():
    handler = Scripted(httpx.Response(503), httpx.Response(200, json=ITEMS))
    assert await _client(handler).search("ana", {}) == ITEMS
    assert len(handler.requests) == 2


async def test_server_error_exhausts_retries():
    handler = Scripted(httpx.Response(500))
    with pytest.raises(SearchBackendError) as exc:
        await _client(handler, max_retries=2).search("ana", {})
    assert exc.value.failure_type == "connection_error"
    assert exc.value.status_code == 500
    assert len(handler.requests) == 3


async def test_connection_error_retried():
    handler = Scripted(httpx.ConnectError("refused"))
    with pytest.raises(SearchBackendError) as exc:
        await _client(handler, max_retries=1).search("ana", {})
    assert exc.value.failure_type == "connection_error"
    assert len(handler.requests) == 2


async def test_client_error_fails_immediately():
    handler = Scripted(httpx.Response(400, json={"detail": "bad"}))
    with pytest.raises(SearchBackendError) as exc:
        await _client(handler).search("ana", {})
    assert exc.value.failure_type == "client_error"
    assert exc.value.status_code == 400
    assert len(handler.requests) == 1


async def test_timeout_fails_immediately():
    handler = Scripted(httpx.ReadTimeout("slow"))
    with pytest.raises(SearchBackendError) as exc:
        await _client(handler).search("ana", {})
    assert exc.value.failure_type == "timeout"
    assert len(handler.requests) == 1


async def test_rate_limit_retried_then_reported():
    handler = Scripted(httpx.Response(429))
    with pytest.raises(SearchBackendError) as exc:
        await _client(handler, max_retries=1).search("ana", {})
    assert exc.value.failure_type == "rate_limit"
    assert len(handler.requests) == 2


async def test_invalid_json_is_reported():
    handler = Scripted(httpx.Response(200, content=b"<html>"))
    with pytest.raises(SearchBackendError) as exc:
        await _client(handler).search("ana", {})
    assert exc.value.failure_type == "invalid_response"


def test_retry_after_header_in_milliseconds():
    client = _client(Scripted(httpx.Response(200)))
    assert client._extract_retry_after(httpx.Response(429, headers={"Retry-After": "3"})) == 3000
    assert client._extract_retry_after(httpx.Response(429)) is None


def test_backoff_has_jitter_and_cap():
    client = ResilientSearchClient("http://search.test", base_delay_ms=100, max_delay_ms=1000)
    assert 75 <= client._backoff(0) <= 125
    assert client._backoff(10) <= 1250
