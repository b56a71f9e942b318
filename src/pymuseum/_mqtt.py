"""MQTT-fed device positions.

Phones and trackers running OwnTracks (or anything speaking its JSON
format) publish fixes like::

    {"_type": "location", "lat": 40.761, "lon": -73.978, "acc": 8, "tst": 1767225600}

:class:`MqttPositionProvider` subscribes to such a topic on a threaded
paho-mqtt client and hands each fix to the asyncio loop.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from typing import Any, cast

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from pymuseum.exceptions import MuseumPositionUnavailableError
from pymuseum.models.coordinate import UserCoordinate

# Fixes coarser than this are ignored when high accuracy is requested.
COARSE_ACCURACY_METERS = 100.0


@dataclasses.dataclass(frozen=True)
class MqttPositionFeed:
    """Broker details for a device position topic."""

    broker_host: str
    topic: str
    broker_port: int = 8883
    client_id: str = "pymuseum-position"
    username: str | None = None
    password: str | None = None
    tls: bool = True
    keepalive: int = 60


def parse_position_payload(payload: bytes) -> UserCoordinate | None:
    """Parse one OwnTracks-style message; non-location messages yield ``None``."""
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(parsed, dict):
        return None
    msg_type = parsed.get("_type")
    if msg_type is not None and msg_type != "location":
        return None
    try:
        return UserCoordinate.model_validate(parsed)
    except ValidationError:
        return None


class MqttPositionProvider:
    """Threaded paho-mqtt runtime that resolves ``acquire`` calls with live fixes."""

    def __init__(
        self,
        feed: MqttPositionFeed,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._feed = feed
        self._logger = logger or logging.getLogger(__name__)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._client: mqtt.Client | None = None
        self._running = False
        self._waiters: list[tuple[asyncio.Future[UserCoordinate], bool]] = []

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    async def start(self) -> None:
        """Connect and subscribe; the blocking connect runs in an executor."""
        self._loop = asyncio.get_running_loop()
        await self._loop.run_in_executor(None, self._start_blocking)

    async def stop(self) -> None:
        loop = self._loop or asyncio.get_running_loop()
        await loop.run_in_executor(None, self._stop_blocking)
        self._fail_waiters(MuseumPositionUnavailableError("Position feed stopped"))

    def _start_blocking(self) -> None:
        self._stop_blocking()
        feed = self._feed
        self._logger.debug(
            "MQTT position feed start host=%s port=%s topic=%s",
            feed.broker_host,
            feed.broker_port,
            feed.topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=feed.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if feed.username:
            client.username_pw_set(feed.username, feed.password)
        if feed.tls:
            client.tls_set()

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
            self._logger.debug("MQTT connected, subscribing topic=%s", feed.topic)
            c.subscribe(feed.topic, qos=0)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            coordinate = parse_position_payload(msg.payload)
            if coordinate is None:
                self._logger.debug("Ignoring non-location payload on %s", msg.topic)
                return
            loop = self._loop
            if loop is not None and not loop.is_closed():
                loop.call_soon_threadsafe(self._deliver, coordinate)

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

        client.connect(feed.broker_host, feed.broker_port, keepalive=feed.keepalive)
        client.loop_start()

        self._client = client
        self._running = True

    def _stop_blocking(self) -> None:
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _deliver(self, coordinate: UserCoordinate) -> None:
        remaining: list[tuple[asyncio.Future[UserCoordinate], bool]] = []
        coarse = coordinate.accuracy is not None and coordinate.accuracy > COARSE_ACCURACY_METERS
        for future, high_accuracy in self._waiters:
            if future.done():
                continue
            if high_accuracy and coarse:
                remaining.append((future, high_accuracy))
                continue
            future.set_result(coordinate)
        self._waiters = remaining

    def _fail_waiters(self, error: MuseumPositionUnavailableError) -> None:
        waiters, self._waiters = self._waiters, []
        for future, _high_accuracy in waiters:
            if not future.done():
                future.set_exception(error)

    async def acquire(self, *, high_accuracy: bool, timeout: float) -> UserCoordinate:
        """Wait for the next fix published after this call."""
        if not self._running:
            raise MuseumPositionUnavailableError("Position feed is not running")
        loop = self._loop or asyncio.get_running_loop()
        future: asyncio.Future[UserCoordinate] = loop.create_future()
        entry = (future, high_accuracy)
        self._waiters.append(entry)
        try:
            return await asyncio.wait_for(future, timeout)
        except TimeoutError as exc:
            raise MuseumPositionUnavailableError(f"No position published within {timeout:.1f}s") from exc
        finally:
            if entry in self._waiters:
                self._waiters.remove(entry)
