"""Publishing of chore status and attributes to MQTT.

Status is recomputed on every publish; nothing is cached between calls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chorehub.logging_abstraction import get_logger
from chorehub.mqtt import topics
from chorehub.status import chore_status
from chorehub.structs import ChoreAttributes

if TYPE_CHECKING:
    import datetime
    from collections.abc import Callable

    from chorehub.structs import BrokerGatewayProtocol, Chore

logger = get_logger(__name__)


class StatePublisher:
    """Sends a chore's status and attributes through the broker gateway.

    Publishing is best-effort. Any failure, serialization or transport, is
    logged and reported as ``False``; it never reaches the caller, so a chore
    operation succeeds regardless of broker reachability.
    """

    lp: str = "state:"

    def __init__(
        self,
        gateway: BrokerGatewayProtocol,
        topic: str = topics.ROOT,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        """Initialize the publisher.

        Args:
            gateway: Broker gateway used for every publish
            topic: Operational topic root
            clock: Source of "now" for status evaluation (defaults to local time)

        """
        self.gateway = gateway
        self.topic = topic
        self.clock = clock

    async def publish_status(self, chore: Chore) -> bool:
        lp = f"{self.lp}status:"
        try:
            status = chore_status(chore, self.clock() if self.clock else None)
            await self.gateway.publish(status.value, topics.status_topic(chore.id, self.topic))
        except Exception:
            logger.exception("%s Failed to publish status for chore %s", lp, chore.id)
            return False
        logger.debug("%s Published status '%s' for chore %s (%s)", lp, status.value, chore.id, chore.name)
        return True

    async def publish_attributes(self, chore: Chore) -> bool:
        lp = f"{self.lp}attributes:"
        try:
            payload = ChoreAttributes.from_chore(chore).to_json()
            await self.gateway.publish(payload, topics.attributes_topic(chore.id, self.topic))
        except Exception:
            logger.exception("%s Failed to publish attributes for chore %s", lp, chore.id)
            return False
        logger.debug("%s Published attributes for chore %s (%s)", lp, chore.id, chore.name)
        return True

    async def publish_status_and_attributes(self, chore: Chore) -> bool:
        """Publish status, then attributes, as two independent messages."""
        status_ok = await self.publish_status(chore)
        attributes_ok = await self.publish_attributes(chore)
        return status_ok and attributes_ok
