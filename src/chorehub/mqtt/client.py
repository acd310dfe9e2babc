"""MQTT client core for ChoreHub.

Provides the aiomqtt-backed broker gateway: connection lifecycle with
reconnects, retained publishing and pattern subscriptions dispatched to
async handlers.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING

import aiomqtt

from chorehub.const import (
    AVAILABILITY_OFFLINE,
    MQTT_COMMAND_QOS,
    MQTT_PUBLISH_QOS,
)
from chorehub.exceptions import BrokerNotConnectedError
from chorehub.logging_abstraction import get_logger
from chorehub.mqtt import topics
from chorehub.structs import GlobalObject
from chorehub.utils import send_sigterm

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from chorehub.structs import MessageHandler

logger = get_logger(__name__)
g = GlobalObject()


def _payload_bytes(payload: object) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    return str(payload).encode()


class MQTTClient:
    """Broker gateway bound to a real MQTT server.

    ``publish`` hands the message to the client and returns without waiting
    for the broker's acknowledgement; delivery failures are logged by the
    gateway and mark the connection down. Subscriptions are remembered and
    re-applied on every reconnect.
    """

    lp: str = "mqtt:"

    def __init__(self, topic: str | None = None, ha_topic: str | None = None) -> None:
        lp = f"{self.lp}init:"
        self.topic: str = topic or g.env.mqtt_topic or topics.ROOT
        self.ha_topic: str = ha_topic or g.env.mqtt_hass_topic or topics.HA_DISCOVERY
        if not g.env.mqtt_topic and not topic:
            logger.warning("%s MQTT topic not set, using default: %s", lp, self.topic)
        self.broker_client_id: str = f"{g.env.mqtt_client_id_prefix}-{uuid.uuid4().hex[:8]}"
        self.client: aiomqtt.Client | None = None
        self.start_task: asyncio.Task[None] | None = None
        self._connected: bool = False
        self._subscriptions: dict[str, MessageHandler] = {}
        self._connect_callbacks: list[Callable[[], Awaitable[object]]] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._connected_event: asyncio.Event = asyncio.Event()

    @property
    def is_connected(self) -> bool:
        return self._connected

    def set_connected(self, connected: bool) -> None:
        self._connected = connected
        if connected:
            self._connected_event.set()
        else:
            self._connected_event.clear()

    async def wait_connected(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for a broker connection."""
        try:
            _ = await asyncio.wait_for(self._connected_event.wait(), timeout)
        except TimeoutError:
            return False
        return True

    def add_connect_callback(self, callback: Callable[[], Awaitable[object]]) -> None:
        """Run ``callback`` after every successful (re)connect."""
        self._connect_callbacks.append(callback)

    def _build_client(self) -> aiomqtt.Client:
        will = aiomqtt.Will(
            topic=topics.availability_topic(self.topic),
            payload=AVAILABILITY_OFFLINE.encode(),
            qos=MQTT_PUBLISH_QOS,
            retain=True,
        )
        return aiomqtt.Client(
            hostname=g.env.mqtt_host,
            port=g.env.mqtt_port,
            username=g.env.mqtt_user,
            password=g.env.mqtt_pass,
            identifier=self.broker_client_id,
            will=will,
        )

    def _get_connection_delay(self, lp: str) -> int:
        delay = g.env.mqtt_conn_delay
        if delay <= 0:
            logger.debug("%s MQTT connection delay is <= 0, which is probably a typo, setting to 5...", lp)
            return 5
        return delay

    async def connect(self) -> bool:
        lp = f"{self.lp}connect:"
        self.set_connected(False)
        g.reload_env()
        self.client = self._build_client()
        logger.debug("%s Connecting to MQTT broker %s:%s...", lp, g.env.mqtt_host, g.env.mqtt_port)
        try:
            _ = await self.client.__aenter__()
        except aiomqtt.MqttError as mqtt_err_exc:
            logger.warning("%s Connection failed [MqttError] -> %s", lp, mqtt_err_exc)
            if "code:134" in str(mqtt_err_exc):
                logger.error(
                    "%s Bad username or password, check your MQTT credentials (username: %s)",
                    lp,
                    g.env.mqtt_user,
                )
                send_sigterm()
            return False
        self.set_connected(True)
        logger.info("%s Connected to MQTT broker: %s port: %s", lp, g.env.mqtt_host, g.env.mqtt_port)
        return True

    async def _on_connected(self, lp: str) -> None:
        assert self.client is not None, "client must be initialized"
        for pattern in self._subscriptions:
            await self.client.subscribe(pattern, qos=MQTT_COMMAND_QOS)
        logger.debug("%s Subscribed to MQTT topics: %s", lp, list(self._subscriptions))
        for callback in self._connect_callbacks:
            try:
                _ = await callback()
            except Exception:
                logger.exception("%s on-connect callback %s failed", lp, callback)

    async def _receive(self) -> None:
        assert self.client is not None, "client must be initialized"
        async for message in self.client.messages:
            await self._dispatch(message.topic, _payload_bytes(message.payload))

    async def _dispatch(self, topic: aiomqtt.Topic, payload: bytes) -> None:
        lp = f"{self.lp}rcv:"
        for pattern, handler in self._subscriptions.items():
            if not topic.matches(pattern):
                continue
            try:
                await handler(topic.value, payload)
            except Exception:
                logger.exception("%s Handler for %s failed on topic %s", lp, pattern, topic.value)

    async def start(self) -> None:
        """Connect, receive, and reconnect until cancelled."""
        lp = f"{self.lp}start:"
        while True:
            if await self.connect():
                try:
                    await self._on_connected(lp)
                    await self._receive()
                except aiomqtt.MqttError as msg_err:
                    logger.warning("%s MQTT connection lost: %s", lp, msg_err)
                self.set_connected(False)
            delay = self._get_connection_delay(lp)
            logger.info("%s MQTT broker unavailable, sleeping for %s seconds before re-trying...", lp, delay)
            await asyncio.sleep(delay)

    async def publish(self, payload: str, topic: str) -> None:
        """Queue a retained publish; raises BrokerNotConnectedError when offline."""
        if not self._connected or self.client is None:
            raise BrokerNotConnectedError(topic)
        task = asyncio.create_task(self._publish_now(self.client, topic, payload.encode()))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish_now(self, client: aiomqtt.Client, topic: str, data: bytes) -> None:
        lp = f"{self.lp}publish:"
        try:
            await client.publish(topic, data, qos=MQTT_PUBLISH_QOS, retain=True)
        except aiomqtt.MqttError as mqtt_err:
            logger.warning("%s [MqttError] publishing to %s -> %s", lp, topic, mqtt_err)
            self.set_connected(False)
        except Exception:
            logger.exception("%s Unexpected error publishing to %s", lp, topic)

    async def subscribe(self, pattern: str, handler: MessageHandler) -> None:
        lp = f"{self.lp}subscribe:"
        self._subscriptions[pattern] = handler
        if self._connected and self.client is not None:
            try:
                await self.client.subscribe(pattern, qos=MQTT_COMMAND_QOS)
            except aiomqtt.MqttError as mqtt_err:
                logger.warning("%s Subscribe to %s failed, will retry on reconnect: %s", lp, pattern, mqtt_err)
                self.set_connected(False)

    async def flush(self) -> None:
        """Wait for publishes handed off so far."""
        if self._pending:
            _ = await asyncio.gather(*self._pending, return_exceptions=True)

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        try:
            await self.flush()
            if self._connected and self.client is not None:
                logger.debug("%s Disconnecting from broker...", lp)
                await self.client.__aexit__(None, None, None)
                logger.info("%s Disconnected from MQTT broker", lp)
        except aiomqtt.MqttError as ce:
            logger.warning("%s MQTT disconnect failed: %s", lp, ce)
        finally:
            self.set_connected(False)
            if self.start_task and not self.start_task.done():
                logger.debug("%s Cancelling start task", lp)
                _ = self.start_task.cancel()
