"""Key Bindings - maps raw key events to palette actions.

Invariants:
    - Ctrl/Cmd+K opens the panel from any state
    - While closed, every other key is ignored and left to the page
    - While open, ArrowUp/ArrowDown/Enter/Escape are always consumed
    - Arrow moves and Enter only act in OPEN_RESULTS; Enter needs a valid selection

Design Decisions:
    - KeyEvent is substrate-neutral (no DOM/terminal types); hosts translate their events
"""

from dataclasses import dataclass

from palette.core.domain_types import KeyAction, PanelStatus
from palette.core.search_state import SearchState

OPEN_SHORTCUT_KEY = "k"
RESERVED_KEYS = frozenset({"ArrowUp", "ArrowDown", "Enter", "Escape"})


@dataclass(frozen=True)
class KeyEvent:
    """Host-agnostic key press."""
    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False

    @property
    def is_open_shortcut(self) -> bool:
        return (self.ctrl or self.meta) and self.key.lower() == OPEN_SHORTCUT_KEY


@dataclass(frozen=True)
class KeyDecision:
    """What to do with a key, and whether the host must stop propagation."""
    action: KeyAction
    consumed: bool


_IGNORED = KeyDecision(KeyAction.NONE, consumed=False)


def interpret_key(state: SearchState, event: KeyEvent) -> KeyDecision:
    """Decide the palette action for `event` in `state`. Pure."""
    if event.is_open_shortcut:
        return KeyDecision(KeyAction.OPEN, consumed=True)
    if not state.is_open:
        return _IGNORED
    if event.key not in RESERVED_KEYS:
        return _IGNORED
    if event.key == "Escape":
        return KeyDecision(KeyAction.CLOSE, consumed=True)

    in_results = state.status == PanelStatus.OPEN_RESULTS
    if event.key == "ArrowDown" and in_results:
        return KeyDecision(KeyAction.MOVE_DOWN, consumed=True)
    if event.key == "ArrowUp" and in_results:
        return KeyDecision(KeyAction.MOVE_UP, consumed=True)
    if event.key == "Enter" and in_results and state.selected_result is not None:
        return KeyDecision(KeyAction.COMMIT, consumed=True)
    return KeyDecision(KeyAction.NONE, consumed=True)
