from __future__ import annotations

import asyncio
from collections import deque
from pathlib import Path

import pytest

from pygeotrack import LocationTracker, TrackerConfig
from pygeotrack.exceptions import TrackerConfigError, TrackerError
from pygeotrack.models import CollectionState, ControlCommand, LocationFix, LocationSample
from pygeotrack.registrar import NullRegistrar
from pygeotrack.store import MemorySampleStore, SqliteSampleStore


class ScriptedProvider:
    def __init__(self, *fixes: LocationFix) -> None:
        self._fixes = deque(fixes)
        self.exhausted = asyncio.Event()

    async def request_fix(self, timeout_ms: int) -> LocationFix:
        if not self._fixes:
            self.exhausted.set()
            await asyncio.Event().wait()
        return self._fixes.popleft()


def _fix(lat: float, lon: float) -> LocationFix:
    return LocationFix(latitude=lat, longitude=lon, precision=5.0)


async def _collect_until(feed_len: int, tracker: LocationTracker) -> tuple[LocationSample, ...]:
    async with tracker.observe_samples() as feed:
        async for samples in feed:
            if len(samples) >= feed_len:
                return samples
    raise AssertionError("feed closed early")


@pytest.mark.asyncio
async def test_end_to_end_collection_with_live_feed() -> None:
    provider = ScriptedProvider(_fix(1.0, 1.0), _fix(2.0, 2.0), _fix(3.0, 3.0))
    store = MemorySampleStore()

    async with LocationTracker(TrackerConfig(interval_ms=10), provider=provider, store=store) as tracker:
        state = await tracker.start()
        assert state == CollectionState(interval_ms=10, running=True)

        samples = await asyncio.wait_for(_collect_until(3, tracker), 2.0)

        assert [s.latitude for s in samples] == [1.0, 2.0, 3.0]
        assert [s.timestamp for s in samples] == sorted(s.timestamp for s in samples)
        assert tracker.latest() == samples[-1]
        assert tracker.history() == samples

    # Caller-owned store stays open.
    assert store.count() == 3


@pytest.mark.asyncio
async def test_state_feed_follows_start_and_stop() -> None:
    provider = ScriptedProvider()

    async with LocationTracker(TrackerConfig(interval_ms=60_000), provider=provider) as tracker:
        async with tracker.observe_state() as states:
            assert await states.get() == CollectionState(interval_ms=60_000, running=False)

            await tracker.start()
            assert await states.get() == CollectionState(interval_ms=60_000, running=True)

            await tracker.reconfigure(300_000)
            assert await states.get() == CollectionState(interval_ms=300_000, running=True)

            await tracker.stop()
            assert await states.get() == CollectionState(interval_ms=300_000, running=False)


@pytest.mark.asyncio
async def test_history_survives_restart_with_sqlite(tmp_path: Path) -> None:
    config = TrackerConfig(interval_ms=10, database_path=str(tmp_path / "track.db"))

    first = ScriptedProvider(_fix(10.0, 20.0))
    async with LocationTracker(config, provider=first) as tracker:
        await tracker.start()
        await asyncio.wait_for(first.exhausted.wait(), 2.0)

    second = ScriptedProvider()
    async with LocationTracker(config, provider=second) as tracker:
        history = tracker.history()
        assert [(s.latitude, s.longitude) for s in history] == [(10.0, 20.0)]
        async with tracker.observe_latest() as latest:
            assert await latest.get() == history[-1]

    reopened = SqliteSampleStore(config.database_path or "")
    try:
        assert reopened.count() == 1
    finally:
        reopened.close()


@pytest.mark.asyncio
async def test_exit_stops_collection_and_releases_registration() -> None:
    registrar = NullRegistrar()
    provider = ScriptedProvider()

    async with LocationTracker(provider=provider, registrar=registrar) as tracker:
        await tracker.start(60_000)
        assert registrar.registered_interval_ms == 60_000
        controller = tracker.controller

    assert controller.current_state().running is False
    assert registrar.registered_interval_ms is None


@pytest.mark.asyncio
async def test_host_command_is_applied() -> None:
    provider = ScriptedProvider()

    async with LocationTracker(provider=provider) as tracker:
        async with tracker.observe_state() as states:
            await states.get()
            tracker._on_mqtt_command(ControlCommand.start(60_000))  # type: ignore[attr-defined]
            assert await asyncio.wait_for(states.get(), 1.0) == CollectionState(interval_ms=60_000, running=True)

            tracker._on_mqtt_command(ControlCommand.stop())  # type: ignore[attr-defined]
            assert await asyncio.wait_for(states.get(), 1.0) == CollectionState(interval_ms=60_000, running=False)


@pytest.mark.asyncio
async def test_missing_provider_and_url_is_config_error() -> None:
    with pytest.raises(TrackerConfigError):
        async with LocationTracker(TrackerConfig(provider_url=None)):
            pass


def test_bad_config_fails_fast() -> None:
    with pytest.raises(TrackerConfigError):
        LocationTracker(TrackerConfig(interval_ms=0), provider=ScriptedProvider())


def test_use_outside_context_manager_raises() -> None:
    tracker = LocationTracker(provider=ScriptedProvider())

    with pytest.raises(TrackerError):
        tracker.current_state()
    with pytest.raises(TrackerError):
        tracker.history()
