"""Host background-execution registration.

Starting collection asks the host to keep the process alive and visible as
doing location work; stopping releases that request. How the host does it
(a foreground-service notification, a systemd inhibitor, a wake lock) is
outside this library; implement :class:`BackgroundRegistrar` to plug it in.
"""

from __future__ import annotations

import logging
from typing import Protocol

_logger = logging.getLogger(__name__)


class BackgroundRegistrar(Protocol):
    async def register(self, interval_ms: int) -> None:
        """Request (or refresh) keep-alive for collection at *interval_ms*.

        Called on start and again whenever the interval changes while running.
        """
        ...

    async def unregister(self) -> None:
        """Release the keep-alive request."""
        ...


class NullRegistrar:
    """Registrar for hosts that need no keep-alive (servers, CLIs, tests)."""

    def __init__(self) -> None:
        self.registered_interval_ms: int | None = None

    async def register(self, interval_ms: int) -> None:
        _logger.debug("Background registration interval_ms=%d", interval_ms)
        self.registered_interval_ms = interval_ms

    async def unregister(self) -> None:
        _logger.debug("Background registration released")
        self.registered_interval_ms = None
