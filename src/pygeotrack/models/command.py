"""Host control signals: *start collection* and *stop collection*."""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, ValidationError, model_validator

from pygeotrack.exceptions import TrackerConfigError
from pygeotrack.models._base import GeoBaseModel


class CommandAction(StrEnum):
    START = "start"
    STOP = "stop"


class ControlCommand(GeoBaseModel):
    """A control signal from the host's command surface.

    ``start`` carries the interval in milliseconds; ``stop`` carries nothing.
    """

    action: CommandAction
    interval_ms: int | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("interval_ms", "intervalMs", "interval"),
    )

    @model_validator(mode="after")
    def _start_needs_interval(self) -> ControlCommand:
        if self.action is CommandAction.START and self.interval_ms is None:
            raise ValueError("start command requires interval_ms")
        return self

    @classmethod
    def start(cls, interval_ms: int) -> ControlCommand:
        return cls(action=CommandAction.START, interval_ms=interval_ms)

    @classmethod
    def stop(cls) -> ControlCommand:
        return cls(action=CommandAction.STOP)


def parse_control_command(payload: bytes | str | dict[str, Any]) -> ControlCommand:
    """Decode a JSON control command.

    Raises :class:`TrackerConfigError` for malformed payloads.
    """
    data: Any = payload
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise TrackerConfigError(f"Control command is not JSON: {payload[:64]}") from exc
    if not isinstance(data, dict):
        raise TrackerConfigError("Control command must be a JSON object")
    if isinstance(data.get("action"), str):
        data = {**data, "action": data["action"].strip().lower()}
    try:
        return ControlCommand.model_validate(data)
    except ValidationError as exc:
        raise TrackerConfigError(f"Invalid control command: {exc.errors(include_url=False)}") from exc
