from __future__ import annotations

import pytest

from pygeotrack.exceptions import InvalidFixError
from pygeotrack.models import LocationFix
from pygeotrack.validation import accept_fix, validate_fix

_NAN = float("nan")
_INF = float("inf")


@pytest.mark.parametrize(
    ("lat", "lon", "precision"),
    [
        (0.0, 0.0, 0.0),
        (90.0, 180.0, 0.0),
        (-90.0, -180.0, 0.0),
        (52.3702, 4.8952, 12.5),
        (-33.8688, 151.2093, 2500.0),
    ],
)
def test_valid_fixes_pass_through_unchanged(lat: float, lon: float, precision: float) -> None:
    fix = LocationFix(latitude=lat, longitude=lon, precision=precision)

    assert validate_fix(fix) is fix


@pytest.mark.parametrize(
    ("lat", "lon", "precision", "field"),
    [
        (90.0001, 0.0, 1.0, "latitude"),
        (-91.0, 0.0, 1.0, "latitude"),
        (0.0, 180.5, 1.0, "longitude"),
        (0.0, -181.0, 1.0, "longitude"),
        (0.0, 0.0, -0.1, "precision"),
        (_NAN, 0.0, 1.0, "latitude"),
        (0.0, _INF, 1.0, "longitude"),
        (0.0, 0.0, _NAN, "precision"),
        (0.0, 0.0, _INF, "precision"),
        (None, 0.0, 1.0, "latitude"),
        (0.0, None, 1.0, "longitude"),
        (0.0, 0.0, None, "precision"),
    ],
)
def test_invalid_fixes_are_rejected(lat: float | None, lon: float | None, precision: float | None, field: str) -> None:
    fix = LocationFix(latitude=lat, longitude=lon, precision=precision)

    with pytest.raises(InvalidFixError) as excinfo:
        validate_fix(fix)
    assert excinfo.value.field == field


def test_accept_fix_stamps_timestamp() -> None:
    sample = accept_fix(LocationFix(latitude=1.0, longitude=2.0, precision=5.0), 123_456)

    assert sample.timestamp == 123_456
    assert (sample.latitude, sample.longitude, sample.precision) == (1.0, 2.0, 5.0)
