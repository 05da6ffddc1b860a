"""SQLite-backed durable sample store."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from pygeotrack.exceptions import StorageFault
from pygeotrack.models.sample import LocationSample, NewSample

_logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS location_samples (
    id        INTEGER PRIMARY KEY AUTOINCREMENT,
    latitude  REAL    NOT NULL,
    longitude REAL    NOT NULL,
    precision REAL    NOT NULL,
    timestamp INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_location_samples_time
    ON location_samples (timestamp, id);
"""

_COLUMNS = "id, latitude, longitude, precision, timestamp"
_INSERT_SQL = "INSERT INTO location_samples (latitude, longitude, precision, timestamp) VALUES (?, ?, ?, ?)"
_SCAN_SQL = f"SELECT {_COLUMNS} FROM location_samples ORDER BY timestamp ASC, id ASC"
_LATEST_SQL = f"SELECT {_COLUMNS} FROM location_samples ORDER BY timestamp DESC, id DESC LIMIT 1"
_COUNT_SQL = "SELECT COUNT(*) FROM location_samples"


def _row_to_sample(row: sqlite3.Row) -> LocationSample:
    return LocationSample(
        id=int(row["id"]),
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        precision=float(row["precision"]),
        timestamp=int(row["timestamp"]),
    )


class SqliteSampleStore:
    """Append-only table of location samples in a single SQLite file.

    ``AUTOINCREMENT`` guarantees ids are never reused, even across process
    restarts. Every statement runs under one lock so the connection can be
    shared between the collection loop and readers on other threads.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        try:
            if str(db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            with self._lock:
                self._conn.executescript(_SCHEMA_SQL)
                self._conn.commit()
        except (OSError, sqlite3.Error) as exc:
            raise StorageFault(f"Could not open sample store at {db_path}: {exc}") from exc
        _logger.debug("Opened sample store path=%s", db_path)

    def append(self, sample: NewSample) -> int:
        with self._lock:
            try:
                cur = self._conn.execute(
                    _INSERT_SQL,
                    (sample.latitude, sample.longitude, sample.precision, sample.timestamp),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                # A lost sample must not be committed later by someone else's commit.
                self._rollback()
                raise StorageFault(f"Failed to append sample: {exc}") from exc
        if cur.lastrowid is None:
            raise StorageFault("Insert did not return a row id")
        return int(cur.lastrowid)

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error:
            _logger.debug("Rollback after failed append failed", exc_info=True)

    def scan_all_ordered_by_time(self) -> tuple[LocationSample, ...]:
        try:
            with self._lock:
                rows = self._conn.execute(_SCAN_SQL).fetchall()
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to scan samples: {exc}") from exc
        return tuple(_row_to_sample(row) for row in rows)

    def latest(self) -> LocationSample | None:
        try:
            with self._lock:
                row = self._conn.execute(_LATEST_SQL).fetchone()
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to read latest sample: {exc}") from exc
        return _row_to_sample(row) if row is not None else None

    def count(self) -> int:
        try:
            with self._lock:
                row = self._conn.execute(_COUNT_SQL).fetchone()
        except sqlite3.Error as exc:
            raise StorageFault(f"Failed to count samples: {exc}") from exc
        return int(row[0]) if row else 0

    def close(self) -> None:
        with self._lock:
            self._conn.close()
