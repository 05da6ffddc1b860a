"""Collection run-state model."""

from __future__ import annotations

from pydantic import Field

from pygeotrack._constants import DEFAULT_INTERVAL_MS
from pygeotrack.models._base import GeoBaseModel


class CollectionState(GeoBaseModel):
    """Snapshot of the collector's run configuration.

    Held by the lifecycle controller and never persisted across restarts.

    Parameters
    ----------
    interval_ms : int
        Desired time between the starts of two acquisition attempts.
    running : bool
        Whether a collection loop is currently active.
    """

    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, gt=0, strict=True)
    running: bool = False
