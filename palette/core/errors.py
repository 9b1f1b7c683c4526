"""Error Hierarchy - typed, categorized exceptions for all palette failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Core failures (fetch, missing url, storage) are recovered locally, never raised to the host
    - to_response() produces the REST error envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with PaletteError base: the HTTP layer has one handler for all of them
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    STORAGE = "storage"
    EXTERNAL_API = "external_api"
    NAVIGATION = "navigation"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str | None = None
    query: str | None = None
    request_seq: int | None = None
    result_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class PaletteError(Exception):
    """Base exception for all palette errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "session_id": self.context.session_id,
                    "request_seq": self.context.request_seq,
                    "result_id": self.context.result_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidResultError(PaletteError):
    """A backend payload item cannot be turned into a SearchResult."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_RESULT", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 422,
        )
        self.field = field


class MissingUrlError(PaletteError):
    """A committed result has no navigation target."""
    def __init__(self, result_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.result_id = result_id
        super().__init__(
            f"Result '{result_id}' has no URL to navigate to",
            "MISSING_URL", ErrorCategory.NAVIGATION,
            ErrorSeverity.ERROR, ctx, 400,
        )


class ResourceNotFoundError(PaletteError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class FetchFailureError(PaletteError):
    """Lookup against the search service failed or timed out."""
    def __init__(
        self,
        message: str,
        failure_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        category = (
            ErrorCategory.TIMEOUT if failure_type == "timeout"
            else ErrorCategory.EXTERNAL_API
        )
        super().__init__(
            f"Search lookup failed ({failure_type}): {message}",
            "FETCH_FAILURE", category,
            ErrorSeverity.ERROR, ctx, 502,
        )
        self.failure_type = failure_type


class SearchBackendError(FetchFailureError):
    """HTTP search service returned an error or was unreachable."""
    def __init__(
        self,
        message: str,
        failure_type: str,
        status_code: int | None = None,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(message, failure_type, retry_after_ms, context)
        self.code = "SEARCH_BACKEND_ERROR"
        self.status_code = status_code


class StorageUnavailableError(PaletteError):
    """Durable key-value storage cannot be read or written."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Storage {operation} failed: {message}",
            "STORAGE_UNAVAILABLE", ErrorCategory.STORAGE,
            ErrorSeverity.WARNING, context, 503,
        )
        self.operation = operation
