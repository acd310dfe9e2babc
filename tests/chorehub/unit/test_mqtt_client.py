"""Unit tests for the aiomqtt-backed MQTTClient gateway.

The aiomqtt client is mocked; these tests cover connection state, publish
hand-off, subscription dispatch and the Last Will configuration.
"""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import aiomqtt
import pytest

from chorehub.exceptions import BrokerNotConnectedError
from chorehub.mqtt import client as client_module
from chorehub.mqtt.client import MQTTClient


def _connected_client() -> tuple[MQTTClient, MagicMock]:
    client = MQTTClient(topic="chorehub", ha_topic="homeassistant")
    broker = MagicMock()
    broker.publish = AsyncMock()
    broker.subscribe = AsyncMock()
    client.client = broker
    client.set_connected(True)
    return client, broker


class TestConnectionState:
    @pytest.mark.asyncio
    async def test_starts_disconnected(self):
        client = MQTTClient()
        assert client.is_connected is False
        assert await client.wait_connected(0.01) is False

    @pytest.mark.asyncio
    async def test_wait_connected_after_connect(self):
        client = MQTTClient()
        client.set_connected(True)
        assert await client.wait_connected(0.01) is True

    def test_topics_default_from_environment(self):
        client = MQTTClient()
        assert client.topic == "chorehub"
        assert client.ha_topic == "homeassistant"

    def test_connection_delay_from_environment(self, monkeypatch):
        client = MQTTClient()
        monkeypatch.setattr(client_module.g.env, "mqtt_conn_delay", 9)
        assert client._get_connection_delay("test:") == 9
        monkeypatch.setattr(client_module.g.env, "mqtt_conn_delay", 0)
        assert client._get_connection_delay("test:") == 5


class TestLastWill:
    def test_will_is_retained_offline_on_availability_topic(self):
        with patch("chorehub.mqtt.client.aiomqtt.Client") as mock_client_cls:
            _ = MQTTClient(topic="chorehub")._build_client()

        will = mock_client_cls.call_args.kwargs["will"]
        assert will.topic == "chorehub/status"
        assert will.payload == b"offline"
        assert will.retain is True
        assert will.qos == 1


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_success(self):
        with patch("chorehub.mqtt.client.aiomqtt.Client") as mock_client_cls:
            mock_client_cls.return_value.__aenter__ = AsyncMock()
            client = MQTTClient()
            assert await client.connect() is True

        assert client.is_connected is True

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        with patch("chorehub.mqtt.client.aiomqtt.Client") as mock_client_cls:
            mock_client_cls.return_value.__aenter__ = AsyncMock(side_effect=aiomqtt.MqttError("refused"))
            client = MQTTClient()
            assert await client.connect() is False

        assert client.is_connected is False

    @pytest.mark.asyncio
    async def test_bad_credentials_request_shutdown(self):
        with (
            patch("chorehub.mqtt.client.aiomqtt.Client") as mock_client_cls,
            patch("chorehub.mqtt.client.send_sigterm") as mock_sigterm,
        ):
            mock_client_cls.return_value.__aenter__ = AsyncMock(
                side_effect=aiomqtt.MqttError("Connection refused [code:134] Bad user name or password"),
            )
            assert await MQTTClient().connect() is False

        mock_sigterm.assert_called_once()


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish_while_disconnected_raises(self):
        client = MQTTClient()

        with pytest.raises(BrokerNotConnectedError) as exc_info:
            await client.publish("due", "chorehub/chores/1/status")

        assert exc_info.value.topic == "chorehub/chores/1/status"

    @pytest.mark.asyncio
    async def test_publish_is_retained_qos1(self):
        client, broker = _connected_client()

        await client.publish("due", "chorehub/chores/1/status")
        await client.flush()

        broker.publish.assert_awaited_once_with("chorehub/chores/1/status", b"due", qos=1, retain=True)

    @pytest.mark.asyncio
    async def test_publish_order_is_preserved(self):
        client, broker = _connected_client()

        await client.publish("a", "t/1")
        await client.publish("b", "t/2")
        await client.flush()

        assert [c.args[0] for c in broker.publish.await_args_list] == ["t/1", "t/2"]

    @pytest.mark.asyncio
    async def test_empty_payload_for_retraction(self):
        client, broker = _connected_client()

        await client.publish("", "homeassistant/sensor/chorehub_chore_1_status/config")
        await client.flush()

        assert broker.publish.await_args.args[1] == b""

    @pytest.mark.asyncio
    async def test_transport_failure_marks_disconnected(self, caplog):
        client, broker = _connected_client()
        broker.publish.side_effect = aiomqtt.MqttError("lost")

        with caplog.at_level(logging.WARNING):
            await client.publish("due", "chorehub/chores/1/status")
            await client.flush()

        assert client.is_connected is False
        assert any("[MqttError]" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_unexpected_publish_error_is_logged(self, caplog):
        client, broker = _connected_client()
        broker.publish.side_effect = ValueError("Publish topic cannot contain wildcards.")

        with caplog.at_level(logging.ERROR):
            await client.publish("due", "chorehub/chores/+/status")
            await client.flush()

        assert client.is_connected is True
        assert any("Unexpected error publishing" in r.getMessage() for r in caplog.records)


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_subscribe_while_connected(self):
        client, broker = _connected_client()

        await client.subscribe("chorehub/chores/+/done/set", AsyncMock())

        broker.subscribe.assert_awaited_once_with("chorehub/chores/+/done/set", qos=1)

    @pytest.mark.asyncio
    async def test_subscribe_while_disconnected_is_deferred(self):
        client = MQTTClient()
        handler = AsyncMock()

        await client.subscribe("chorehub/chores/+/done/set", handler)
        client.client = MagicMock()
        client.client.subscribe = AsyncMock()
        await client._on_connected("test:")

        client.client.subscribe.assert_awaited_once_with("chorehub/chores/+/done/set", qos=1)

    @pytest.mark.asyncio
    async def test_dispatch_to_matching_handler(self):
        client = MQTTClient()
        handler = AsyncMock()
        other = AsyncMock()
        await client.subscribe("chorehub/chores/+/done/set", handler)
        await client.subscribe("chorehub/other/#", other)

        await client._dispatch(aiomqtt.Topic("chorehub/chores/42/done/set"), b"1")

        handler.assert_awaited_once_with("chorehub/chores/42/done/set", b"1")
        other.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_failure_is_logged(self, caplog):
        client = MQTTClient()
        await client.subscribe("chorehub/chores/+/done/set", AsyncMock(side_effect=RuntimeError("bad")))

        with caplog.at_level(logging.ERROR):
            await client._dispatch(aiomqtt.Topic("chorehub/chores/1/done/set"), b"1")

        assert any("Handler for" in r.getMessage() for r in caplog.records)


class TestConnectCallbacks:
    @pytest.mark.asyncio
    async def test_callbacks_run_on_connect(self):
        client, _ = _connected_client()
        first = AsyncMock()
        failing = AsyncMock(side_effect=RuntimeError("nope"))
        last = AsyncMock()
        for cb in (first, failing, last):
            client.add_connect_callback(cb)

        await client._on_connected("test:")

        first.assert_awaited_once()
        last.assert_awaited_once()


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_flushes_then_disconnects(self):
        client, broker = _connected_client()
        broker.__aexit__ = AsyncMock()

        await client.publish("offline", "chorehub/status")
        await client.stop()

        broker.publish.assert_awaited_once()
        broker.__aexit__.assert_awaited_once()
        assert client.is_connected is False
