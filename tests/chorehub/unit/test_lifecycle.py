"""Unit tests for AvailabilityLifecycle online/offline transitions."""

from __future__ import annotations

import asyncio
import logging

import pytest

from chorehub.lifecycle import AvailabilityLifecycle
from chorehub.mqtt.discovery import DiscoveryService

AVAILABILITY = "chorehub/status"
AVAILABILITY_DISCOVERY = "homeassistant/binary_sensor/chorehub_availability/config"


def _lifecycle(gw) -> AvailabilityLifecycle:
    return AvailabilityLifecycle(gw, DiscoveryService(gw))


class TestReadyAndShutdown:
    @pytest.mark.asyncio
    async def test_ready_announces_discovery_then_online(self, gateway):
        lifecycle = _lifecycle(gateway)

        await lifecycle.on_ready()

        assert gateway.topics == [AVAILABILITY_DISCOVERY, AVAILABILITY]
        assert gateway.published[-1] == ("online", AVAILABILITY)

    @pytest.mark.asyncio
    async def test_ready_fires_once(self, gateway):
        lifecycle = _lifecycle(gateway)

        await lifecycle.on_ready()
        await lifecycle.on_ready()

        assert gateway.payloads_for(AVAILABILITY) == ["online"]

    @pytest.mark.asyncio
    async def test_shutdown_fires_once(self, gateway):
        lifecycle = _lifecycle(gateway)

        await lifecycle.on_shutdown()
        await lifecycle.on_shutdown()

        assert gateway.payloads_for(AVAILABILITY) == ["offline"]

    @pytest.mark.asyncio
    async def test_announce_can_repeat_after_reconnect(self, gateway):
        lifecycle = _lifecycle(gateway)

        await lifecycle.on_ready()
        await lifecycle.announce()

        assert gateway.payloads_for(AVAILABILITY) == ["online", "online"]

    @pytest.mark.asyncio
    async def test_broker_down_is_logged(self, failing_gateway, caplog):
        lifecycle = _lifecycle(failing_gateway)

        with caplog.at_level(logging.ERROR):
            await lifecycle.on_ready()
            await lifecycle.on_shutdown()

        assert lifecycle.ready_fired is True
        assert lifecycle.shutdown_fired is True
        assert any("offline" in r.getMessage() for r in caplog.records)


class TestContextManager:
    @pytest.mark.asyncio
    async def test_online_on_enter_offline_on_exit(self, gateway):
        async with _lifecycle(gateway):
            assert gateway.payloads_for(AVAILABILITY) == ["online"]

        assert gateway.payloads_for(AVAILABILITY) == ["online", "offline"]

    @pytest.mark.asyncio
    async def test_offline_published_when_body_raises(self, gateway):
        with pytest.raises(RuntimeError, match="crash"):
            async with _lifecycle(gateway):
                raise RuntimeError("crash")

        assert gateway.payloads_for(AVAILABILITY)[-1] == "offline"

    @pytest.mark.asyncio
    async def test_offline_published_when_cancelled(self, gateway):
        entered = asyncio.Event()

        async def serve() -> None:
            async with _lifecycle(gateway):
                entered.set()
                await asyncio.Event().wait()

        task = asyncio.create_task(serve())
        await entered.wait()
        _ = task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert gateway.payloads_for(AVAILABILITY) == ["online", "offline"]

    @pytest.mark.asyncio
    async def test_explicit_shutdown_before_exit_is_not_repeated(self, gateway):
        async with _lifecycle(gateway) as lifecycle:
            await lifecycle.on_shutdown()

        assert gateway.payloads_for(AVAILABILITY) == ["online", "offline"]
