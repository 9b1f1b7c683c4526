"""Recording Router - Router adapter for hosts that relay navigation to a client.

Invariants:
    - navigate() never blocks and never raises
    - Navigations are kept in call order until drained
"""

import logging

logger = logging.getLogger(__name__)


class RecordingRouter:
    """Collects requested URLs; the HTTP layer drains them into each response."""

    def __init__(self):
        self.navigations: list[str] = []

    def navigate(self, url: str) -> None:
        logger.debug("Navigation requested", extra={"url": url})
        self.navigations.append(url)

    def drain(self) -> list[str]:
        urls, self.navigations = self.navigations, []
        return urls
