"""Fix validation.

A fix is accepted only when both coordinates are finite and in range and
the precision estimate is finite and non-negative. Anything else raises
:class:`~pygeotrack.exceptions.InvalidFixError`; the collection loop logs
and discards such fixes.
"""

from __future__ import annotations

from pygeotrack._constants import LATITUDE_MAX, LATITUDE_MIN, LONGITUDE_MAX, LONGITUDE_MIN
from pygeotrack.exceptions import InvalidFixError
from pygeotrack.models._base import is_finite
from pygeotrack.models.sample import LocationFix, NewSample


def _require_in_range(name: str, value: float | None, low: float, high: float) -> float:
    if value is None:
        raise InvalidFixError(f"{name} is missing", field=name)
    if not is_finite(value):
        raise InvalidFixError(f"{name} is not finite: {value}", field=name)
    if not low <= value <= high:
        raise InvalidFixError(f"{name} {value} outside [{low}, {high}]", field=name)
    return value


def validate_fix(fix: LocationFix) -> LocationFix:
    """Return *fix* unchanged if it is storable, else raise ``InvalidFixError``."""
    _require_in_range("latitude", fix.latitude, LATITUDE_MIN, LATITUDE_MAX)
    _require_in_range("longitude", fix.longitude, LONGITUDE_MIN, LONGITUDE_MAX)
    if fix.precision is None:
        raise InvalidFixError("precision is missing", field="precision")
    if not is_finite(fix.precision):
        raise InvalidFixError(f"precision is not finite: {fix.precision}", field="precision")
    if fix.precision < 0:
        raise InvalidFixError(f"precision must be non-negative, got {fix.precision}", field="precision")
    return fix


def accept_fix(fix: LocationFix, timestamp_ms: int) -> NewSample:
    """Validate *fix* and stamp it with its acceptance time."""
    valid = validate_fix(fix)
    assert valid.latitude is not None and valid.longitude is not None and valid.precision is not None  # noqa: S101
    return NewSample(
        latitude=valid.latitude,
        longitude=valid.longitude,
        precision=valid.precision,
        timestamp=timestamp_ms,
    )
