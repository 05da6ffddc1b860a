"""Location fix and stored sample models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from pygeotrack._constants import HISTORY_TIME_FORMAT
from pygeotrack.models._base import GeoBaseModel, coerce_float


class LocationFix(GeoBaseModel):
    """A single, not yet validated reading from a location provider.

    Numeric fields are ``None`` when the provider omitted them or sent
    something unparseable.

    Parameters
    ----------
    latitude : float or None
        Latitude in degrees.
    longitude : float or None
        Longitude in degrees.
    precision : float or None
        Horizontal accuracy estimate in meters, passed through unmodified.
    """

    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(
        default=None,
        validation_alias=AliasChoices("longitude", "lon", "lng"),
    )
    precision: float | None = Field(
        default=None,
        validation_alias=AliasChoices("precision", "accuracy", "hAcc", "horizontalAccuracy"),
    )

    @model_validator(mode="before")
    @classmethod
    def _unwrap_nested(cls, values: Any) -> Any:
        # Geolocation APIs commonly nest the reading under "location" or "coords".
        if not isinstance(values, dict):
            return values
        merged = dict(values)
        for key in ("location", "coords"):
            nested = values.get(key)
            if isinstance(nested, dict):
                merged.update(nested)
        return merged

    @field_validator("latitude", "longitude", "precision", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return coerce_float(value)


class NewSample(GeoBaseModel):
    """A validated fix stamped with its acceptance time, awaiting an id."""

    latitude: float
    longitude: float
    precision: float
    timestamp: int = Field(..., description="Epoch milliseconds at acceptance")

    def with_id(self, sample_id: int) -> LocationSample:
        return LocationSample(id=sample_id, **self.model_dump())


class LocationSample(NewSample):
    """One stored location sample.

    ``id`` is assigned by the store; ``timestamp`` by the collection loop.
    """

    id: int

    @property
    def observed_at(self) -> datetime:
        """``timestamp`` as a timezone-aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp / 1000, tz=UTC)

    def format_timestamp(self, fmt: str = HISTORY_TIME_FORMAT) -> str:
        """Render the timestamp in local time for history listings."""
        return self.observed_at.astimezone().strftime(fmt)

    def sort_key(self) -> tuple[int, int]:
        return (self.timestamp, self.id)
