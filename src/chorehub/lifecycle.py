"""Service availability as seen by Home Assistant.

``online`` is published once the process is ready and ``offline`` when it
shuts down. Use the lifecycle as an async context manager so the offline
publish runs on every exit path, cancellation included::

    async with AvailabilityLifecycle(gateway, discovery):
        await serve_forever()

The broker's Last Will (set by the MQTT client) covers exits where not even
that is possible.
"""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING

from chorehub.const import AVAILABILITY_OFFLINE, AVAILABILITY_ONLINE
from chorehub.logging_abstraction import get_logger
from chorehub.mqtt import topics

if TYPE_CHECKING:
    from chorehub.mqtt.discovery import DiscoveryService
    from chorehub.structs import BrokerGatewayProtocol

logger = get_logger(__name__)


class AvailabilityLifecycle:
    lp: str = "lifecycle:"

    def __init__(
        self,
        gateway: BrokerGatewayProtocol,
        discovery: DiscoveryService,
        topic: str = topics.ROOT,
    ) -> None:
        self.gateway = gateway
        self.discovery = discovery
        self.topic = topic
        self.ready_fired: bool = False
        self.shutdown_fired: bool = False

    async def publish_availability(self, value: str) -> bool:
        lp = f"{self.lp}availability:"
        try:
            await self.gateway.publish(value, topics.availability_topic(self.topic))
        except Exception:
            logger.exception("%s Failed to publish availability status: %s", lp, value)
            return False
        return True

    async def announce(self) -> None:
        """Publish availability discovery followed by ``online``.

        Also used after broker reconnects, where the Last Will has flipped the
        service to offline.
        """
        _ = await self.discovery.publish_availability_discovery()
        if await self.publish_availability(AVAILABILITY_ONLINE):
            logger.info("%s ChoreHub MQTT availability published as ONLINE", self.lp)

    async def on_ready(self) -> None:
        if self.ready_fired:
            return
        self.ready_fired = True
        await self.announce()

    async def on_shutdown(self) -> None:
        if self.shutdown_fired:
            return
        self.shutdown_fired = True
        if await self.publish_availability(AVAILABILITY_OFFLINE):
            logger.info("%s ChoreHub MQTT availability published as OFFLINE", self.lp)

    async def __aenter__(self) -> AvailabilityLifecycle:
        await self.on_ready()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.on_shutdown()
