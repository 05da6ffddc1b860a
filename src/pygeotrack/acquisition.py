"""Location fix providers.

The collection loop treats a provider as an opaque capability: it asks for
one fix with a bounded wait and gets back a :class:`LocationFix`, or one of
:class:`AcquisitionTimeout` / :class:`AcquisitionUnavailable`. Sensor
warm-up, permissions and provider selection live behind this interface.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

import aiohttp

from pygeotrack._constants import USER_AGENT
from pygeotrack.exceptions import AcquisitionTimeout, AcquisitionUnavailable
from pygeotrack.models.sample import LocationFix

_logger = logging.getLogger(__name__)


class FixProvider(Protocol):
    """Structural acquisition interface consumed by the collection loop."""

    async def request_fix(self, timeout_ms: int) -> LocationFix:
        ...


class HttpFixProvider:
    """Fetch a fix from a JSON endpoint.

    The endpoint must answer ``GET`` with an object carrying latitude,
    longitude and an accuracy estimate, e.g.::

        {"lat": 52.37, "lon": 4.89, "accuracy": 12.5}

    Nested ``{"location": {...}}`` / ``{"coords": {...}}`` documents are
    accepted too (see :class:`LocationFix` for the recognised keys).
    """

    def __init__(
        self,
        url: str,
        http_session: aiohttp.ClientSession,
        *,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._url = url
        self._http = http_session
        self._headers = {"accept": "application/json", "user-agent": USER_AGENT}
        if headers:
            self._headers.update(headers)

    @property
    def url(self) -> str:
        return self._url

    async def request_fix(self, timeout_ms: int) -> LocationFix:
        timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        _logger.debug("GET %s timeout_ms=%d", self._url, timeout_ms)

        try:
            async with self._http.get(self._url, headers=self._headers, timeout=timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise AcquisitionUnavailable(
                        f"HTTP {resp.status} from {self._url}: {text[:200]}",
                        status_code=resp.status,
                    )
        except AcquisitionUnavailable:
            raise
        except TimeoutError as exc:
            raise AcquisitionTimeout(
                f"No fix from {self._url} within {timeout_ms} ms",
                timeout_ms=timeout_ms,
            ) from exc
        except aiohttp.ClientError as exc:
            raise AcquisitionUnavailable(f"Request to {self._url} failed: {exc}") from exc

        try:
            body: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise AcquisitionUnavailable(f"Invalid JSON from {self._url}: {text[:200]}") from exc

        if not isinstance(body, dict):
            raise AcquisitionUnavailable(f"Expected a JSON object from {self._url}")

        return LocationFix.model_validate(body)


async def request_fix_bounded(provider: FixProvider, timeout_ms: int) -> LocationFix:
    """Ask *provider* for a fix, enforcing *timeout_ms* even if it ignores it."""
    try:
        return await asyncio.wait_for(provider.request_fix(timeout_ms), timeout_ms / 1000)
    except TimeoutError as exc:
        raise AcquisitionTimeout(f"No fix within {timeout_ms} ms", timeout_ms=timeout_ms) from exc
