"""Base model shared by pygeotrack data types.

Every model is frozen: samples are never updated after they are stored
and state snapshots handed to subscribers must not be mutated in place.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict

# Strings some providers use for "no value".
_SENTINELS = frozenset({"", "--", "null", "none"})


def coerce_float(value: Any) -> float | None:
    """Best-effort conversion of provider values to ``float``.

    Unlike a lenient parser this keeps ``nan``/``inf``: a non-finite
    coordinate is an invalid fix, not a missing one, and validation must
    see it.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in _SENTINELS:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    return None


def is_finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


class GeoBaseModel(BaseModel):
    """Base for immutable pygeotrack models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
