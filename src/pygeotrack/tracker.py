"""High-level async facade wiring store, provider, controller and feeds."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from pygeotrack._mqtt import MqttCommandRuntime, MqttEndpoint
from pygeotrack.acquisition import FixProvider, HttpFixProvider
from pygeotrack.config import TrackerConfig
from pygeotrack.controller import LifecycleController
from pygeotrack.exceptions import TrackerConfigError, TrackerError
from pygeotrack.feed import FeedPublisher, Subscription
from pygeotrack.loop import CollectionLoop
from pygeotrack.models.command import ControlCommand
from pygeotrack.models.sample import LocationSample
from pygeotrack.models.state import CollectionState
from pygeotrack.registrar import BackgroundRegistrar
from pygeotrack.store import SampleStore, open_store

_logger = logging.getLogger(__name__)


class LocationTracker:
    """Background location collector with durable history and live feeds.

    Usage::

        config = TrackerConfig(provider_url="http://phone.local:8080/fix")
        async with LocationTracker(config) as tracker:
            await tracker.start(60_000)
            async with tracker.observe_samples() as feed:
                async for samples in feed:
                    render(samples)

    Anything passed explicitly (provider, store, registrar, HTTP session)
    is used as-is and left open on exit; anything built from the config is
    owned and closed by the tracker.
    """

    def __init__(
        self,
        config: TrackerConfig | None = None,
        *,
        provider: FixProvider | None = None,
        store: SampleStore | None = None,
        registrar: BackgroundRegistrar | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = (config or TrackerConfig()).validate()
        self._provider = provider
        self._store = store
        self._owns_store = store is None
        self._registrar = registrar
        self._http_session = session
        self._owns_http_session = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._publisher: FeedPublisher | None = None
        self._controller: LifecycleController | None = None
        self._mqtt_runtime: MqttCommandRuntime | None = None
        self._command_tasks: set[asyncio.Task[CollectionState]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LocationTracker:
        self._loop = asyncio.get_running_loop()
        if self._provider is None:
            if not self._config.provider_url:
                raise TrackerConfigError("No fix provider: pass provider= or set provider_url")
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
                self._owns_http_session = True
            self._provider = HttpFixProvider(self._config.provider_url, self._http_session)

        try:
            if self._store is None:
                self._store = open_store(self._config.database_path)

            self._publisher = FeedPublisher(
                self._store,
                initial_state=CollectionState(interval_ms=self._config.interval_ms),
            )
            self._controller = LifecycleController(
                self._new_collection_loop,
                registrar=self._registrar,
                interval_ms=self._config.interval_ms,
                on_state=self._on_state,
            )
            await self._ensure_mqtt_started()
        except BaseException:
            await self.__aexit__(None, None, None)
            raise
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._controller is not None:
            await self._controller.stop()
        for task in list(self._command_tasks):
            task.cancel()
        await self._stop_mqtt()
        if self._publisher is not None:
            self._publisher.close()
        if self._owns_store and self._store is not None:
            self._store.close()
            self._store = None
        if self._owns_http_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._provider = None
        self._controller = None
        self._publisher = None
        self._loop = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_controller(self) -> LifecycleController:
        if self._controller is None:
            raise TrackerError("Tracker not initialized. Use 'async with LocationTracker(...) as tracker:'")
        return self._controller

    def _require_publisher(self) -> FeedPublisher:
        if self._publisher is None:
            raise TrackerError("Tracker not initialized. Use 'async with LocationTracker(...) as tracker:'")
        return self._publisher

    def _require_store(self) -> SampleStore:
        if self._store is None:
            raise TrackerError("Tracker not initialized. Use 'async with LocationTracker(...) as tracker:'")
        return self._store

    def _new_collection_loop(self) -> CollectionLoop:
        assert self._provider is not None  # noqa: S101
        return CollectionLoop(
            self._provider,
            self._require_store(),
            fix_timeout_ms=self._config.fix_timeout_ms,
            on_stored=self._require_publisher().sample_appended,
        )

    def _on_state(self, state: CollectionState) -> None:
        if self._publisher is not None:
            self._publisher.state_changed(state)
        if self._mqtt_runtime is not None:
            try:
                self._mqtt_runtime.publish_state(state)
            except Exception:
                _logger.debug("MQTT state publish failed", exc_info=True)

    # ------------------------------------------------------------------
    # MQTT command surface
    # ------------------------------------------------------------------

    async def _ensure_mqtt_started(self) -> None:
        """Best-effort MQTT startup (failures must not break local control)."""
        if not self._config.mqtt_enabled:
            return
        loop = self._loop or asyncio.get_running_loop()
        runtime = MqttCommandRuntime(
            loop=loop,
            on_command=self._on_mqtt_command,
            keepalive=self._config.mqtt_keepalive,
            logger=_logger,
        )
        endpoint = MqttEndpoint(
            host=self._config.mqtt_host,
            port=self._config.mqtt_port,
            topic_prefix=self._config.mqtt_topic_prefix,
        )
        try:
            await loop.run_in_executor(None, runtime.start, endpoint)
        except Exception:
            _logger.warning("MQTT command surface unavailable host=%s", endpoint.host, exc_info=True)
            return
        self._mqtt_runtime = runtime
        runtime.publish_state(self.current_state())

    async def _stop_mqtt(self) -> None:
        runtime = self._mqtt_runtime
        self._mqtt_runtime = None
        if runtime is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, runtime.stop)
        except Exception:
            _logger.debug("MQTT runtime stop failed", exc_info=True)

    def _on_mqtt_command(self, command: ControlCommand) -> None:
        """Run a host command on the event loop (called via call_soon_threadsafe)."""
        controller = self._controller
        if controller is None:
            return
        task = asyncio.get_running_loop().create_task(controller.handle_command(command))
        self._command_tasks.add(task)
        task.add_done_callback(self._command_done)

    def _command_done(self, task: asyncio.Task[CollectionState]) -> None:
        self._command_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Control command failed: %s", exc)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def start(self, interval_ms: int | None = None) -> CollectionState:
        """Start collecting (or change the interval if already running)."""
        return await self._require_controller().start(interval_ms)

    async def stop(self) -> CollectionState:
        return await self._require_controller().stop()

    async def reconfigure(self, interval_ms: int) -> CollectionState:
        return await self._require_controller().reconfigure(interval_ms)

    async def handle_command(self, command: ControlCommand) -> CollectionState:
        return await self._require_controller().handle_command(command)

    def current_state(self) -> CollectionState:
        return self._require_controller().current_state()

    # ------------------------------------------------------------------
    # Reads and feeds
    # ------------------------------------------------------------------

    def history(self) -> tuple[LocationSample, ...]:
        """All stored samples, oldest first."""
        return self._require_store().scan_all_ordered_by_time()

    def latest(self) -> LocationSample | None:
        return self._require_store().latest()

    def observe_samples(self) -> Subscription[tuple[LocationSample, ...]]:
        return self._require_publisher().observe_samples()

    def observe_latest(self) -> Subscription[LocationSample | None]:
        return self._require_publisher().observe_latest()

    def observe_state(self) -> Subscription[CollectionState]:
        return self._require_publisher().observe_state()

    @property
    def publisher(self) -> FeedPublisher:
        return self._require_publisher()

    @property
    def controller(self) -> LifecycleController:
        return self._require_controller()
