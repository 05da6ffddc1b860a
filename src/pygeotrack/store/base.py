"""Sample store interface.

The store is write-once per row: it has no update or delete operation.
"""

from __future__ import annotations

from typing import Protocol

from pygeotrack.models.sample import LocationSample, NewSample


class SampleStore(Protocol):
    """Structural store interface used by the collection loop and publisher.

    ``MemorySampleStore`` and ``SqliteSampleStore`` are the concrete
    implementations; tests pass their own doubles.
    """

    def append(self, sample: NewSample) -> int:
        """Insert *sample* and return its newly assigned id.

        Raises :class:`~pygeotrack.exceptions.StorageFault` on I/O failure.
        """
        ...

    def scan_all_ordered_by_time(self) -> tuple[LocationSample, ...]:
        """All samples ascending by ``timestamp``, ties in insertion order."""
        ...

    def latest(self) -> LocationSample | None:
        """The sample with the greatest ``timestamp``, or ``None`` if empty."""
        ...

    def count(self) -> int:
        ...

    def close(self) -> None:
        ...
