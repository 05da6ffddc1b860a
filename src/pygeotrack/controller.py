"""Lifecycle controller: the single owner of collection run-state."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable

from pygeotrack._constants import DEFAULT_INTERVAL_MS, require_interval_ms
from pygeotrack.exceptions import ConcurrentStartRejected, TrackerConfigError
from pygeotrack.loop import CollectionLoop
from pygeotrack.models.command import CommandAction, ControlCommand
from pygeotrack.models.state import CollectionState
from pygeotrack.registrar import BackgroundRegistrar, NullRegistrar

_logger = logging.getLogger(__name__)

# At most one controller in the process may own a running loop.
_active_lock = threading.Lock()
_active_owner: LifecycleController | None = None


def _claim_process_slot(owner: LifecycleController) -> None:
    global _active_owner
    with _active_lock:
        if _active_owner is not None and _active_owner is not owner:
            raise ConcurrentStartRejected("Another collection loop is already running in this process")
        _active_owner = owner


def _release_process_slot(owner: LifecycleController) -> None:
    global _active_owner
    with _active_lock:
        if _active_owner is owner:
            _active_owner = None


def _check_interval(interval_ms: object) -> int:
    try:
        return require_interval_ms(interval_ms)
    except ValueError as exc:
        raise TrackerConfigError(str(exc)) from exc


class LifecycleController:
    """Start, stop and reconfigure background collection.

    The controller is the only writer of :class:`CollectionState`. Every
    transition runs under one :class:`asyncio.Lock`, and the reported state
    never says ``running`` unless a loop instance exists.

    Parameters
    ----------
    loop_factory
        Builds a fresh, idle :class:`CollectionLoop` for each start.
    registrar
        Host keep-alive hook; defaults to :class:`NullRegistrar`.
    interval_ms
        Interval used by :meth:`start` when none is given.
    on_state
        Called with every new state snapshot.
    """

    def __init__(
        self,
        loop_factory: Callable[[], CollectionLoop],
        *,
        registrar: BackgroundRegistrar | None = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        on_state: Callable[[CollectionState], None] | None = None,
    ) -> None:
        self._loop_factory = loop_factory
        self._registrar: BackgroundRegistrar = registrar or NullRegistrar()
        self._on_state = on_state
        self._state = CollectionState(interval_ms=_check_interval(interval_ms), running=False)
        self._loop: CollectionLoop | None = None
        self._lock = asyncio.Lock()

    def current_state(self) -> CollectionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state.running

    @property
    def collection_loop(self) -> CollectionLoop | None:
        return self._loop

    def _set_state(self, state: CollectionState) -> None:
        if state == self._state:
            return
        self._state = state
        if self._on_state is not None:
            try:
                self._on_state(state)
            except Exception:
                _logger.debug("on_state callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self, interval_ms: int | None = None) -> CollectionState:
        """Start collecting, or just change the interval if already running."""
        interval = _check_interval(self._state.interval_ms if interval_ms is None else interval_ms)
        async with self._lock:
            if self._loop is not None:
                await self._apply_interval(interval)
                return self._state

            _claim_process_slot(self)
            try:
                await self._registrar.register(interval)
            except BaseException:
                _release_process_slot(self)
                raise

            # Nothing may be collected until the host has accepted the registration.
            loop = self._loop_factory()
            try:
                loop.start(interval)
            except BaseException:
                await loop.stop()
                _release_process_slot(self)
                await self._release_registration()
                raise

            self._loop = loop
            self._set_state(CollectionState(interval_ms=interval, running=True))
            _logger.info("Location collection started interval_ms=%d", interval)
            return self._state

    async def stop(self) -> CollectionState:
        """Stop collecting. A no-op when not running."""
        async with self._lock:
            loop = self._loop
            if loop is None:
                return self._state
            try:
                await loop.stop()
            finally:
                self._loop = None
                _release_process_slot(self)
                self._set_state(CollectionState(interval_ms=self._state.interval_ms, running=False))

            await self._release_registration()
            _logger.info("Location collection stopped")
            return self._state

    async def reconfigure(self, interval_ms: int) -> CollectionState:
        """Change the interval; a running loop applies it from its next tick."""
        interval = _check_interval(interval_ms)
        async with self._lock:
            await self._apply_interval(interval)
            return self._state

    async def handle_command(self, command: ControlCommand) -> CollectionState:
        """Dispatch a host control signal."""
        if command.action is CommandAction.STOP:
            return await self.stop()
        return await self.start(command.interval_ms)

    async def _release_registration(self) -> None:
        try:
            await self._registrar.unregister()
        except Exception:
            _logger.warning("Releasing background registration failed", exc_info=True)

    async def _apply_interval(self, interval: int) -> None:
        if interval == self._state.interval_ms:
            return
        if self._loop is not None:
            self._loop.reconfigure(interval)
            try:
                await self._registrar.register(interval)
            except Exception:
                _logger.warning("Refreshing background registration failed", exc_info=True)
        self._set_state(CollectionState(interval_ms=interval, running=self._state.running))
        _logger.info("Collection interval set to %d ms", interval)
