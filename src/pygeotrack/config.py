"""Tracker configuration for pygeotrack."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pygeotrack._constants import DEFAULT_FIX_TIMEOUT_MS, DEFAULT_INTERVAL_MS, require_interval_ms
from pygeotrack.exceptions import TrackerConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise TrackerConfigError(f"{key} must be an integer, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    """Tracker configuration.

    Parameters
    ----------
    interval_ms : int
        Default collection cadence used when ``start()`` is called
        without an explicit interval.
    fix_timeout_ms : int
        Upper bound on a single fix request.
    database_path : str or None
        SQLite file for durable storage. ``None`` keeps samples in memory
        for the lifetime of the process.
    provider_url : str or None
        JSON endpoint polled by :class:`~pygeotrack.acquisition.HttpFixProvider`.
        Ignored when a provider is passed to the tracker explicitly.
    mqtt_enabled : bool
        Expose the start/stop command surface over MQTT.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic_prefix : str
        Commands are read from ``<prefix>/command``; state is published
        (retained) to ``<prefix>/state``.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    """

    interval_ms: int = DEFAULT_INTERVAL_MS
    fix_timeout_ms: int = DEFAULT_FIX_TIMEOUT_MS
    database_path: str | None = None
    provider_url: str | None = None
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic_prefix: str = "geotrack"
    mqtt_keepalive: int = 60

    def validate(self) -> TrackerConfig:
        """Raise :class:`TrackerConfigError` if any field is out of range."""
        try:
            require_interval_ms(self.interval_ms)
        except ValueError as exc:
            raise TrackerConfigError(str(exc)) from exc
        if isinstance(self.fix_timeout_ms, bool) or not isinstance(self.fix_timeout_ms, int) or self.fix_timeout_ms <= 0:
            raise TrackerConfigError(f"fix_timeout_ms must be a positive integer, got {self.fix_timeout_ms!r}")
        if self.mqtt_enabled and not self.mqtt_topic_prefix.strip("/"):
            raise TrackerConfigError("mqtt_topic_prefix must be non-empty when MQTT is enabled")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackerConfig:
        """Create configuration from ``GEOTRACK_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "GEOTRACK_DATABASE_PATH": "database_path",
            "GEOTRACK_PROVIDER_URL": "provider_url",
            "GEOTRACK_MQTT_HOST": "mqtt_host",
            "GEOTRACK_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and val.strip():
                config_kwargs[field_name] = val.strip()

        _ENV_INT_MAP = {
            "GEOTRACK_INTERVAL_MS": "interval_ms",
            "GEOTRACK_FIX_TIMEOUT_MS": "fix_timeout_ms",
            "GEOTRACK_MQTT_PORT": "mqtt_port",
            "GEOTRACK_MQTT_KEEPALIVE": "mqtt_keepalive",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            if field_name in overrides:
                continue
            parsed = _env_int(env, env_key)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("GEOTRACK_MQTT_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs).validate()
