"""The collection loop: acquire, validate, store, notify, at a fixed cadence."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from pygeotrack._constants import DEFAULT_FIX_TIMEOUT_MS, require_interval_ms
from pygeotrack.acquisition import FixProvider, request_fix_bounded
from pygeotrack.exceptions import (
    AcquisitionTimeout,
    AcquisitionUnavailable,
    ConcurrentStartRejected,
    InvalidFixError,
    StorageFault,
)
from pygeotrack.models.sample import LocationSample
from pygeotrack.store.base import SampleStore
from pygeotrack.validation import accept_fix

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class LoopState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(slots=True)
class LoopStats:
    """Per-loop counters, reset whenever the loop is started."""

    ticks: int = 0
    stored: int = 0
    skipped: int = 0
    invalid: int = 0
    storage_faults: int = 0


class CollectionLoop:
    """Drive one acquisition cycle until stopped.

    Attempts are spaced ``interval_ms`` apart measured start-to-start. If an
    attempt overruns the interval, the next one begins as soon as it
    finishes. Every failure mode of a single tick (timeout, unavailable
    provider, invalid fix, storage fault) is logged and skipped; none of
    them stops the loop.

    This class does not guard against other loops running in the same
    process; :class:`~pygeotrack.controller.LifecycleController` does.
    """

    def __init__(
        self,
        provider: FixProvider,
        store: SampleStore,
        *,
        fix_timeout_ms: int = DEFAULT_FIX_TIMEOUT_MS,
        on_stored: Callable[[LocationSample], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        now_ms: Callable[[], int] = _now_ms,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._store = store
        self._fix_timeout_ms = fix_timeout_ms
        self._on_stored = on_stored
        self._clock = clock
        self._now_ms = now_ms
        self._sleep = sleep

        self._state = LoopState.IDLE
        self._interval_ms = 0
        self._task: asyncio.Task[None] | None = None
        self._rescheduled = asyncio.Event()
        self._attempt_started = 0.0
        self.stats = LoopStats()

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LoopState.RUNNING

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, interval_ms: int) -> None:
        """Transition IDLE -> RUNNING and schedule the first attempt immediately.

        Must be called from inside a running event loop.
        """
        interval_ms = require_interval_ms(interval_ms)
        if self._state is not LoopState.IDLE or self._task is not None:
            raise ConcurrentStartRejected(f"Collection loop already {self._state.value}")

        self._interval_ms = interval_ms
        self._rescheduled.clear()
        self.stats = LoopStats()
        self._state = LoopState.RUNNING
        self._task = asyncio.get_running_loop().create_task(self._run(), name="pygeotrack-collection-loop")
        _logger.debug("Collection loop started interval_ms=%d", interval_ms)

    def reconfigure(self, interval_ms: int) -> None:
        """Change the cadence without restarting an in-flight attempt.

        The next attempt is scheduled ``interval_ms`` after the start of the
        most recent one. A pending inter-tick wait is re-armed.
        """
        interval_ms = require_interval_ms(interval_ms)
        if interval_ms == self._interval_ms:
            return
        _logger.debug("Collection loop reconfigured interval_ms=%d -> %d", self._interval_ms, interval_ms)
        self._interval_ms = interval_ms
        if self._state is LoopState.RUNNING:
            self._rescheduled.set()

    async def stop(self) -> None:
        """Cancel any pending wait or in-flight request and wait for the task to end.

        Once this returns no further samples are appended by this loop.
        """
        task = self._task
        if task is None:
            self._state = LoopState.IDLE
            return
        self._state = LoopState.STOPPING
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            # The loop task ending cancelled is expected; the caller being cancelled is not.
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        finally:
            self._task = None
            self._state = LoopState.IDLE
        _logger.debug("Collection loop stopped stats=%s", self.stats)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def remaining_delay(self) -> float:
        """Seconds until the next attempt is due (``0.0`` if already due)."""
        elapsed = self._clock() - self._attempt_started
        return max(0.0, self._interval_ms / 1000 - elapsed)

    async def _run(self) -> None:
        while True:
            self._attempt_started = self._clock()
            try:
                await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                self.stats.skipped += 1
                _logger.warning("Unexpected error during collection tick", exc_info=True)
            await self._wait_for_next_tick()

    async def _wait_for_next_tick(self) -> None:
        while True:
            self._rescheduled.clear()
            delay = self.remaining_delay()
            if delay <= 0:
                return
            sleeper = asyncio.ensure_future(self._sleep(delay))
            waker = asyncio.ensure_future(self._rescheduled.wait())
            try:
                done, _pending = await asyncio.wait({sleeper, waker}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                sleeper.cancel()
                waker.cancel()
            if sleeper in done:
                return
            # Interval changed mid-wait: recompute against the new interval.

    # ------------------------------------------------------------------
    # One attempt
    # ------------------------------------------------------------------

    async def _tick(self) -> None:
        self.stats.ticks += 1
        try:
            fix = await request_fix_bounded(self._provider, self._fix_timeout_ms)
        except AcquisitionTimeout as exc:
            self.stats.skipped += 1
            _logger.debug("Tick %d skipped: %s", self.stats.ticks, exc)
            return
        except AcquisitionUnavailable as exc:
            self.stats.skipped += 1
            _logger.debug("Tick %d skipped, provider unavailable: %s", self.stats.ticks, exc)
            return

        # Nothing below awaits, so a stop() cannot interleave with the append.
        if self._state is not LoopState.RUNNING:
            _logger.debug("Discarding fix delivered while %s", self._state.value)
            return

        try:
            sample = accept_fix(fix, self._now_ms())
        except InvalidFixError as exc:
            self.stats.invalid += 1
            _logger.info("Discarding invalid fix: %s", exc)
            return

        try:
            sample_id = self._store.append(sample)
        except StorageFault as exc:
            self.stats.storage_faults += 1
            _logger.warning("Sample lost, store append failed: %s", exc)
            return

        self.stats.stored += 1
        stored = sample.with_id(sample_id)
        _logger.debug("Stored sample id=%d timestamp=%d", stored.id, stored.timestamp)

        if self._on_stored is not None:
            try:
                self._on_stored(stored)
            except Exception:
                _logger.debug("on_stored callback failed", exc_info=True)
