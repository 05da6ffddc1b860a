"""Sample store layer.

The store is the single shared mutable resource between the collection
loop (the only writer) and the feed publisher / presentation (readers).
"""

from __future__ import annotations

from pathlib import Path

from pygeotrack.store.base import SampleStore
from pygeotrack.store.memory import MemorySampleStore
from pygeotrack.store.sqlite import SqliteSampleStore


def open_store(database_path: str | Path | None) -> SampleStore:
    """Open a durable store at *database_path*, or an in-memory one for ``None``."""
    if database_path is None:
        return MemorySampleStore()
    return SqliteSampleStore(database_path)


__all__ = ["MemorySampleStore", "SampleStore", "SqliteSampleStore", "open_store"]
