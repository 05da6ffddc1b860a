"""Data models for pygeotrack."""

from pygeotrack.models._base import GeoBaseModel
from pygeotrack.models.command import CommandAction, ControlCommand, parse_control_command
from pygeotrack.models.sample import LocationFix, LocationSample, NewSample
from pygeotrack.models.state import CollectionState

__all__ = [
    "CollectionState",
    "CommandAction",
    "ControlCommand",
    "GeoBaseModel",
    "LocationFix",
    "LocationSample",
    "NewSample",
    "parse_control_command",
]
