"""In-memory sample store."""

from __future__ import annotations

import bisect
import threading

from pygeotrack.models.sample import LocationSample, NewSample


class MemorySampleStore:
    """Arena-style store: a growable sequence kept ordered by ``(timestamp, id)``.

    Ids come from a monotonic counter and are never reused. All access goes
    through one lock so a reader never observes a half-inserted sample.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: list[LocationSample] = []
        self._keys: list[tuple[int, int]] = []
        self._next_id = 1

    def append(self, sample: NewSample) -> int:
        with self._lock:
            sample_id = self._next_id
            self._next_id += 1
            stored = sample.with_id(sample_id)
            key = stored.sort_key()
            index = bisect.bisect_right(self._keys, key)
            self._keys.insert(index, key)
            self._samples.insert(index, stored)
            return sample_id

    def scan_all_ordered_by_time(self) -> tuple[LocationSample, ...]:
        with self._lock:
            return tuple(self._samples)

    def latest(self) -> LocationSample | None:
        with self._lock:
            return self._samples[-1] if self._samples else None

    def count(self) -> int:
        with self._lock:
            return len(self._samples)

    def close(self) -> None:
        return None
