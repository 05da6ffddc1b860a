"""MQTT command surface: host control signals in, collection state out."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pygeotrack.exceptions import TrackerConfigError
from pygeotrack.models.command import ControlCommand, parse_control_command
from pygeotrack.models.state import CollectionState


@dataclass(frozen=True)
class MqttEndpoint:
    """Broker address and topic layout for the command surface."""

    host: str
    port: int
    topic_prefix: str
    client_id: str = ""

    @property
    def command_topic(self) -> str:
        return f"{self.topic_prefix.rstrip('/')}/command"

    @property
    def state_topic(self) -> str:
        return f"{self.topic_prefix.rstrip('/')}/state"


def encode_state(state: CollectionState) -> str:
    return state.model_dump_json()


class MqttCommandRuntime:
    """Threaded paho-mqtt runtime that hands control commands to an asyncio loop.

    Commands arrive as JSON on ``<prefix>/command``::

        {"action": "start", "interval_ms": 60000}
        {"action": "stop"}

    Collection state is published retained on ``<prefix>/state`` so a
    newly connected dashboard sees the current state immediately.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_command: Callable[[ControlCommand], None],
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_command = on_command
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._endpoint: MqttEndpoint | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def handle_payload(self, payload: bytes) -> None:
        """Decode one command payload and schedule it on the event loop."""
        try:
            command = parse_control_command(payload)
        except TrackerConfigError as exc:
            self._logger.warning("Ignoring malformed control command: %s", exc)
            return
        self._logger.debug("MQTT control command action=%s interval_ms=%s", command.action, command.interval_ms)
        self._loop.call_soon_threadsafe(self._on_command, command)

    def start(self, endpoint: MqttEndpoint) -> None:
        """Connect and subscribe to the command topic."""
        self.stop()
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s",
            endpoint.host,
            endpoint.port,
            endpoint.command_topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=endpoint.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        self._endpoint = endpoint

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected reason=%s, subscribing %s", reason_code, endpoint.command_topic)
            c.subscribe(endpoint.command_topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                self.handle_payload(msg.payload)
            except Exception:
                self._logger.debug("MQTT command dispatch failure", exc_info=True)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(endpoint.host, endpoint.port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def publish_state(self, state: CollectionState) -> None:
        """Publish *state* retained on the state topic (thread-safe)."""
        client = self._client
        endpoint = self._endpoint
        if client is None or endpoint is None or not self._running:
            return
        client.publish(endpoint.state_topic, encode_state(state), qos=1, retain=True)

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._endpoint = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
