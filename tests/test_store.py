from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from pygeotrack.exceptions import StorageFault
from pygeotrack.models import NewSample
from pygeotrack.store import MemorySampleStore, SampleStore, SqliteSampleStore, open_store


def _sample(ts: int, lat: float = 1.0, lon: float = 1.0, precision: float = 5.0) -> NewSample:
    return NewSample(latitude=lat, longitude=lon, precision=precision, timestamp=ts)


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[SampleStore]:
    if request.param == "memory":
        instance: SampleStore = MemorySampleStore()
    else:
        instance = SqliteSampleStore(tmp_path / "samples.db")
    yield instance
    instance.close()


def test_empty_store(store: SampleStore) -> None:
    assert store.scan_all_ordered_by_time() == ()
    assert store.latest() is None
    assert store.count() == 0


def test_append_assigns_increasing_ids(store: SampleStore) -> None:
    ids = [store.append(_sample(ts)) for ts in (100, 50, 200)]

    assert ids == sorted(ids)
    assert len(set(ids)) == 3
    assert store.count() == 3


def test_scan_orders_by_timestamp_not_insertion(store: SampleStore) -> None:
    for ts in (3_000, 1_000, 5_000, 2_000, 4_000):
        store.append(_sample(ts))

    timestamps = [s.timestamp for s in store.scan_all_ordered_by_time()]

    assert timestamps == [1_000, 2_000, 3_000, 4_000, 5_000]


def test_scan_breaks_timestamp_ties_by_insertion_order(store: SampleStore) -> None:
    first = store.append(_sample(1_000, lat=10.0))
    store.append(_sample(500))
    second = store.append(_sample(1_000, lat=20.0))

    scanned = store.scan_all_ordered_by_time()

    assert [s.id for s in scanned[1:]] == [first, second]
    assert [s.latitude for s in scanned[1:]] == [10.0, 20.0]


def test_latest_is_max_timestamp_even_when_inserted_first(store: SampleStore) -> None:
    newest = store.append(_sample(9_000, lat=9.0))
    store.append(_sample(1_000))
    store.append(_sample(2_000))

    latest = store.latest()

    assert latest is not None
    assert latest.id == newest
    assert latest.latitude == 9.0


def test_latest_on_tie_is_last_in_scan_order(store: SampleStore) -> None:
    store.append(_sample(1_000, lat=1.0))
    store.append(_sample(1_000, lat=2.0))

    assert store.latest() == store.scan_all_ordered_by_time()[-1]


@pytest.mark.parametrize(
    ("lat", "lon", "precision"),
    [(90.0, 180.0, 0.0), (-90.0, -180.0, 0.0), (0.0, 0.0, 1e6), (45.123456789, -122.987654321, 3.25)],
)
def test_valid_values_round_trip_exactly(store: SampleStore, lat: float, lon: float, precision: float) -> None:
    sample_id = store.append(_sample(42, lat=lat, lon=lon, precision=precision))

    (stored,) = store.scan_all_ordered_by_time()

    assert stored.id == sample_id
    assert (stored.latitude, stored.longitude, stored.precision, stored.timestamp) == (lat, lon, precision, 42)


def test_sqlite_store_is_durable_and_never_reuses_ids(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "track.db"
    first = SqliteSampleStore(path)
    old_id = first.append(_sample(1_000))
    first.close()

    reopened = SqliteSampleStore(path)
    try:
        assert [s.id for s in reopened.scan_all_ordered_by_time()] == [old_id]
        assert reopened.append(_sample(2_000)) > old_id
    finally:
        reopened.close()


def test_sqlite_failures_surface_as_storage_fault(tmp_path: Path) -> None:
    store = SqliteSampleStore(tmp_path / "closed.db")
    store.close()

    with pytest.raises(StorageFault):
        store.append(_sample(1))
    with pytest.raises(StorageFault):
        store.scan_all_ordered_by_time()


class _CommitFailsOnce:
    """Connection wrapper whose first commit fails after the insert went through."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._failed = False

    def __getattr__(self, name: str) -> Any:
        return getattr(self._conn, name)

    def commit(self) -> None:
        if not self._failed:
            self._failed = True
            raise sqlite3.OperationalError("disk I/O error")
        self._conn.commit()


def test_sample_lost_on_failed_commit_is_not_committed_later(tmp_path: Path) -> None:
    store = SqliteSampleStore(tmp_path / "commit.db")
    store._conn = _CommitFailsOnce(store._conn)  # type: ignore[assignment]
    try:
        with pytest.raises(StorageFault):
            store.append(_sample(1_000))
        store.append(_sample(2_000))

        assert [s.timestamp for s in store.scan_all_ordered_by_time()] == [2_000]
    finally:
        store.close()


def test_open_store_picks_implementation(tmp_path: Path) -> None:
    memory = open_store(None)
    durable = open_store(tmp_path / "x.db")
    try:
        assert isinstance(memory, MemorySampleStore)
        assert isinstance(durable, SqliteSampleStore)
    finally:
        durable.close()
