"""Domain Types - enums, identity types and constants shared across the palette.

Invariants:
    - Every valid result type and panel status is an Enum member (no raw string matching)
    - Constants here are defaults; runtime values come from Settings

Design Decisions:
    - str Enums: serialize to JSON without custom encoders
    - NewType for identities: zero runtime cost, full type-checker support
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

PaletteSessionId = NewType("PaletteSessionId", UUID)
RequestSeq = NewType("RequestSeq", int)


# ─── Defaults ────────────────────────────────────────────────────

DEBOUNCE_MS = 300
FETCH_TIMEOUT_SECONDS = 10.0
MAX_RECENT_SEARCHES = 10
POPULAR_SEARCHES_SHOWN = 5
MAX_POPULAR_ENTRIES = 20
MAX_SEARCH_HISTORY = 100
NO_SELECTION = -1

FETCH_ERROR_MESSAGE = "Failed to fetch search results"


# ─── Enums ───────────────────────────────────────────────────────

class ResultType(str, Enum):
    """Display group of a search result."""
    CLIENT = "client"
    DOCUMENT = "document"
    TRANSACTION = "transaction"
    NOTE = "note"
    COMMAND = "command"
    HELP = "help"
    SETTING = "setting"
    EXCHANGE = "exchange"
    SUGGESTION = "suggestion"


class PanelStatus(str, Enum):
    """Derived state of the palette panel."""
    CLOSED = "closed"
    OPEN_EMPTY = "open_empty"
    OPEN_LOADING = "open_loading"
    OPEN_RESULTS = "open_results"
    OPEN_ERROR = "open_error"


class KeyAction(str, Enum):
    """What a key press means for the palette."""
    OPEN = "open"
    CLOSE = "close"
    MOVE_DOWN = "move_down"
    MOVE_UP = "move_up"
    COMMIT = "commit"
    NONE = "none"


class ResolutionKind(str, Enum):
    """Outcome of resolving a committed result or suggestion."""
    NAVIGATE = "navigate"
    REQUERY = "requery"
    EXECUTE = "execute"
    MISSING_URL = "missing_url"


class KeyValueBackend(str, Enum):
    """Durable store used by the history tracker."""
    MEMORY = "memory"
    SQL = "sql"
