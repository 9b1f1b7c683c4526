"""Command Catalog - built-in palette commands and local command matching.

Invariants:
    - Every command has a unique id, used as its action reference in result metadata
    - match_commands is pure and case-insensitive (title, description or keyword substring)
    - Command results carry metadata["action"] == command id and no url

Design Decisions:
    - Commands reference actions by id; the session owns the callables (results stay data)
    - Default action for a command is navigation to its route
"""

from dataclasses import dataclass

from palette.core.domain_types import ResultType
from palette.core.search_state import SearchResult


@dataclass(frozen=True)
class PaletteCommand:
    id: str
    title: str
    description: str
    keywords: tuple[str, ...]
    route: str
    icon: str = "command"

    def matches(self, normalized_query: str) -> bool:
        return (
            normalized_query in self.title.lower()
            or normalized_query in self.description.lower()
            or any(normalized_query in k for k in self.keywords)
        )

    def to_result(self) -> SearchResult:
        return SearchResult.from_dict({
            "id": self.id,
            "type": ResultType.COMMAND.value,
            "title": self.title,
            "description": self.description,
            "metadata": {
                "action": self.id,
                "keywords": list(self.keywords),
                "icon": self.icon,
            },
        })


COMMANDS: tuple[PaletteCommand, ...] = (
    PaletteCommand(
        "new-transaction", "New Transaction", "Start a new money transfer",
        ("send", "money", "transfer", "new", "transaction"),
        "/transactions/new", "send",
    ),
    PaletteCommand(
        "new-client", "New Client", "Register a new client",
        ("add", "client", "register", "new", "customer"),
        "/clients/new", "user-plus",
    ),
    PaletteCommand(
        "reset-password", "Reset Password", "Reset your account password",
        ("reset", "password", "change", "security"),
        "/settings/security", "lock",
    ),
    PaletteCommand(
        "exchange-rates", "View Exchange Rates", "Check current exchange rates",
        ("exchange", "rates", "currency", "conversion"),
        "/exchange-rates", "refresh-cw",
    ),
    PaletteCommand(
        "cash-register", "Open Cash Register", "Open the cash register",
        ("cash", "register", "drawer", "money"),
        "/cash-register", "dollar-sign",
    ),
    PaletteCommand(
        "help-center", "Help Center", "Visit the help center",
        ("help", "support", "guide", "assistance"),
        "/help", "help-circle",
    ),
    PaletteCommand(
        "settings", "Settings", "Manage your settings",
        ("settings", "preferences", "account", "profile"),
        "/settings", "settings",
    ),
    PaletteCommand(
        "logout", "Log Out", "Log out of your account",
        ("logout", "signout", "exit", "leave"),
        "/logout", "log-out",
    ),
)

COMMANDS_BY_ID: dict[str, PaletteCommand] = {c.id: c for c in COMMANDS}


def match_commands(query: str) -> list[SearchResult]:
    """Command results whose title, description or keywords contain `query`."""
    normalized = query.strip().lower()
    if not normalized:
        return []
    return [c.to_result() for c in COMMANDS if c.matches(normalized)]
