from __future__ import annotations

import math
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pygeotrack.exceptions import TrackerConfigError
from pygeotrack.models import (
    CollectionState,
    CommandAction,
    ControlCommand,
    LocationFix,
    LocationSample,
    NewSample,
    parse_control_command,
)


def test_location_fix_accepts_alias_keys_and_numeric_strings() -> None:
    fix = LocationFix.model_validate({"lat": "52.3702", "lng": 4.8952, "accuracy": "12.5"})

    assert fix.latitude == pytest.approx(52.3702)
    assert fix.longitude == pytest.approx(4.8952)
    assert fix.precision == pytest.approx(12.5)


def test_location_fix_unwraps_nested_location_document() -> None:
    # Shape used by the common geolocation web APIs.
    fix = LocationFix.model_validate({"location": {"lat": -33.86, "lng": 151.21}, "accuracy": 30})

    assert fix.latitude == pytest.approx(-33.86)
    assert fix.longitude == pytest.approx(151.21)
    assert fix.precision == 30.0


def test_location_fix_keeps_non_finite_values_for_validation() -> None:
    fix = LocationFix.model_validate({"latitude": "nan", "longitude": float("inf"), "precision": 3})

    assert fix.latitude is not None and math.isnan(fix.latitude)
    assert fix.longitude == float("inf")


def test_location_fix_placeholders_become_none() -> None:
    fix = LocationFix.model_validate({"lat": "--", "lon": "", "hAcc": True})

    assert fix.latitude is None
    assert fix.longitude is None
    assert fix.precision is None


def test_location_sample_is_immutable() -> None:
    sample = LocationSample(id=1, latitude=1.0, longitude=2.0, precision=5.0, timestamp=0)

    with pytest.raises(ValidationError):
        sample.latitude = 3.0  # type: ignore[misc]


def test_new_sample_with_id_copies_every_field() -> None:
    pending = NewSample(latitude=1.5, longitude=-2.5, precision=0.0, timestamp=1_700_000_000_000)

    stored = pending.with_id(42)

    assert stored.id == 42
    assert (stored.latitude, stored.longitude, stored.precision, stored.timestamp) == (
        1.5,
        -2.5,
        0.0,
        1_700_000_000_000,
    )


def test_location_sample_observed_at_is_utc() -> None:
    sample = LocationSample(id=1, latitude=0.0, longitude=0.0, precision=1.0, timestamp=1_767_225_600_000)

    assert sample.observed_at == datetime(2026, 1, 1, tzinfo=UTC)
    assert len(sample.format_timestamp()) == len("2026-01-01 00:00:00")


def test_collection_state_defaults() -> None:
    state = CollectionState()

    assert state.interval_ms == 10_000
    assert state.running is False


@pytest.mark.parametrize("interval", [0, -1, True, 1.5])
def test_collection_state_rejects_bad_intervals(interval: object) -> None:
    with pytest.raises(ValidationError):
        CollectionState(interval_ms=interval)  # type: ignore[arg-type]


def test_parse_start_command() -> None:
    command = parse_control_command(b'{"action": "START", "intervalMs": 60000}')

    assert command.action is CommandAction.START
    assert command.interval_ms == 60_000
    assert command == ControlCommand.start(60_000)


def test_parse_stop_command_needs_no_interval() -> None:
    assert parse_control_command('{"action": "stop"}') == ControlCommand.stop()


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        b"[1, 2]",
        b'{"action": "start"}',
        b'{"action": "start", "interval_ms": 0}',
        b'{"action": "pause"}',
    ],
)
def test_parse_rejects_malformed_commands(payload: bytes) -> None:
    with pytest.raises(TrackerConfigError):
        parse_control_command(payload)
