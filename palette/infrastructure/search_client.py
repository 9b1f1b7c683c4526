"""Resilient Search Client - httpx-backed SearchBackend with retry, backoff and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, connection): max_retries retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - Request timeout: immediate failure (the fetcher's own deadline bounds the whole call)
    - All failures mapped to SearchBackendError (core/errors.py)

Design Decisions:
    - Wrapper over raw httpx client: retry logic stays out of the result fetcher
    - ±25% jitter on backoff: prevents synchronized retries against a shared service
    - Response may be a bare list or {"results": [...]}; items are returned as mappings
      and validated by the normalizer, not here
"""

import asyncio
import logging
import random
from collections.abc import Mapping
from typing import Any

import httpx

from palette.core.errors import ErrorContext, SearchBackendError

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/v1/search"


class ResilientSearchClient:
    """Calls the remote search service; implements the SearchBackend protocol."""

    def __init__(
        self,
        base_url: str,
        max_retries: int = 2,
        base_delay_ms: int = 200,
        max_delay_ms: int = 2_000,
        timeout_seconds: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def search(
        self, query: str, filters: Mapping[str, Any],
    ) -> list[Mapping[str, Any]]:
        """Look up `query`; retries transient failures before giving up."""
        context = ErrorContext(query=query)
        payload = {"query": query, "filters": dict(filters)}
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.post(SEARCH_PATH, json=payload)
            except httpx.TimeoutException:
                raise SearchBackendError("Search service timeout", "timeout", context=context)
            except httpx.TransportError as e:
                await self._handle_transient_error(e, None, attempt, context)
                continue

            if response.status_code == 429:
                await self._handle_rate_limit(response, attempt, context)
                continue
            if response.status_code >= 500:
                await self._handle_transient_error(
                    f"HTTP {response.status_code}", response.status_code, attempt, context,
                )
                continue
            if response.status_code >= 400:
                raise SearchBackendError(
                    f"HTTP {response.status_code}", "client_error",
                    status_code=response.status_code, context=context,
                )
            logger.debug("Search service success", extra={"attempt": attempt + 1, "query": query})
            return self._parse(response, context)
        # unreachable: the last attempt either returns or raises
        raise SearchBackendError("Retries exhausted", "unknown", context=context)

    async def aclose(self) -> None:
        await self.client.aclose()

    def _parse(self, response: httpx.Response, context: ErrorContext) -> list[Mapping[str, Any]]:
        try:
            body = response.json()
        except ValueError:
            raise SearchBackendError(
                "Search service returned invalid JSON", "invalid_response",
                status_code=response.status_code, context=context,
            )
        if isinstance(body, Mapping):
            body = body.get("results", [])
        if not isinstance(body, list):
            raise SearchBackendError(
                "Search service returned an unexpected payload", "invalid_response",
                status_code=response.status_code, context=context,
            )
        return body

    async def _handle_rate_limit(
        self, response: httpx.Response, attempt: int, context: ErrorContext,
    ) -> None:
        """Handle rate limit with retry or raise."""
        retry_after_ms = self._extract_retry_after(response)
        if attempt >= self.max_retries:
            raise SearchBackendError(
                "Rate limit exceeded after retries", "rate_limit",
                status_code=429, retry_after_ms=retry_after_ms, context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Search rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, error: object, status_code: int | None, attempt: int, context: ErrorContext,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise SearchBackendError(
                f"Transient failure after {self.max_retries} retries: {error}",
                "connection_error", status_code=status_code, context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(
            f"Search transient error, retry after {delay}ms: {error}",
            extra={"attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Retry-After header in milliseconds (seconds form only)."""
        val = response.headers.get("retry-after")
        if val and val.strip().isdigit():
            return int(val) * 1000
        return None
