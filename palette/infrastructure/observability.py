"""Structured Logging - JSON and text formatters carrying palette request context.

Invariants:
    - Every line has the record's own timestamp, level, logger name and message
    - Palette context (session, query, request seq, result count, error code) is
      emitted only when the call site passed it in `extra`
    - setup_logging is idempotent: calling it again replaces the palette handler

Design Decisions:
    - Text format keeps the context as a trailing key=value list so dev logs stay greppable
    - httpx/httpcore and the SQLAlchemy engine are held at WARNING; a lookup per
      keystroke would otherwise drown the palette's own lines
"""

import logging
import json
from datetime import datetime, timezone

from palette.config import LogFormat

CONTEXT_FIELDS = (
    "session_id", "query", "request_seq", "result_count",
    "error_code", "url", "attempt", "path",
)
_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def _context(record: logging.LogRecord) -> dict:
    return {
        key: record.__dict__[key]
        for key in CONTEXT_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


class ContextTextFormatter(logging.Formatter):
    """`<time> LEVEL logger: message [session_id=.. request_seq=..]`."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        context = _context(record)
        if not context:
            return text
        pairs = " ".join(
            f"{k}={v!r}" if k == "query" else f"{k}={v}" for k, v in context.items()
        )
        head, sep, tail = text.partition("\n")
        return f"{head} [{pairs}]{sep}{tail}"


def setup_logging(
    level: str = "INFO", fmt: LogFormat | str = LogFormat.JSON,
) -> logging.Handler:
    """Install the palette handler on the root logger and return it."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "palette_handler", False):
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.palette_handler = True
    if LogFormat(fmt) == LogFormat.JSON:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ContextTextFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
