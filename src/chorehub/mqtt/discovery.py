"""Home Assistant MQTT discovery for chores.

Builds the discovery documents (status sensor, "mark done" button, service
availability) and publishes or retracts them through the broker gateway.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from chorehub.const import (
    AVAILABILITY_OFFLINE,
    AVAILABILITY_ONLINE,
    CHOREHUB_DEVICE_NAME,
    CHOREHUB_MANUFACTURER,
    DONE_PAYLOAD_PRESS,
)
from chorehub.logging_abstraction import get_logger
from chorehub.mqtt import topics

if TYPE_CHECKING:
    from chorehub.structs import BrokerGatewayProtocol, Chore

logger = get_logger(__name__)


def device_block(root: str = topics.ROOT) -> dict[str, Any]:
    """Groups every ChoreHub entity under one logical device in HA."""
    return {
        "identifiers": [root],
        "name": CHOREHUB_DEVICE_NAME,
        "manufacturer": CHOREHUB_MANUFACTURER,
    }


def _availability_link(root: str) -> dict[str, Any]:
    return {
        "availability_topic": topics.availability_topic(root),
        "payload_available": AVAILABILITY_ONLINE,
        "payload_not_available": AVAILABILITY_OFFLINE,
    }


def sensor_config(chore: Chore, root: str = topics.ROOT) -> dict[str, Any]:
    """Discovery document for a chore's status sensor."""
    return {
        "name": f"Chore: {chore.name}",
        "unique_id": topics.discovery_object_id(chore.id, "status", root),
        "state_topic": topics.status_topic(chore.id, root),
        "json_attributes_topic": topics.attributes_topic(chore.id, root),
        **_availability_link(root),
        "device": device_block(root),
    }


def done_button_config(chore: Chore, root: str = topics.ROOT) -> dict[str, Any]:
    """Discovery document for the button that marks a chore done."""
    return {
        "name": f"Mark done: {chore.name}",
        "unique_id": topics.discovery_object_id(chore.id, "done_button", root),
        "command_topic": topics.done_command_topic(chore.id, root),
        **_availability_link(root),
        "payload_press": DONE_PAYLOAD_PRESS,
        "device": device_block(root),
    }


def availability_config(root: str = topics.ROOT) -> dict[str, Any]:
    """Discovery document for the service-wide availability binary sensor."""
    return {
        "name": f"{CHOREHUB_DEVICE_NAME} Availability",
        "unique_id": f"{root}_availability",
        "state_topic": topics.availability_topic(root),
        "payload_on": AVAILABILITY_ONLINE,
        "payload_off": AVAILABILITY_OFFLINE,
        "device": device_block(root),
    }


class DiscoveryService:
    """Publishes and retracts discovery documents as chores come and go.

    Every operation is best-effort: failures are logged and never raised.
    """

    lp: str = "discovery:"

    def __init__(
        self,
        gateway: BrokerGatewayProtocol,
        topic: str = topics.ROOT,
        ha_topic: str = topics.HA_DISCOVERY,
    ) -> None:
        self.gateway = gateway
        self.topic = topic
        self.ha_topic = ha_topic

    async def publish_discovery_for_chore(self, chore: Chore) -> bool:
        lp = f"{self.lp}publish:"
        try:
            await self.gateway.publish(
                json.dumps(sensor_config(chore, self.topic)),
                topics.discovery_status_topic(chore.id, self.topic, self.ha_topic),
            )
            await self.gateway.publish(
                json.dumps(done_button_config(chore, self.topic)),
                topics.discovery_done_button_topic(chore.id, self.topic, self.ha_topic),
            )
        except Exception:
            logger.exception("%s Failed to publish discovery for chore %s", lp, chore.id)
            return False
        logger.info("%s Published discovery for chore %s (%s)", lp, chore.id, chore.name)
        return True

    async def remove_discovery_for_chore(self, chore_id: int) -> bool:
        """Retract a chore's entities by publishing empty retained configs."""
        lp = f"{self.lp}remove:"
        try:
            await self.gateway.publish("", topics.discovery_status_topic(chore_id, self.topic, self.ha_topic))
            await self.gateway.publish("", topics.discovery_done_button_topic(chore_id, self.topic, self.ha_topic))
        except Exception:
            logger.exception("%s Failed to remove discovery for chore %s", lp, chore_id)
            return False
        logger.info("%s Removed discovery for chore %s", lp, chore_id)
        return True

    async def publish_availability_discovery(self) -> bool:
        lp = f"{self.lp}availability:"
        try:
            await self.gateway.publish(
                json.dumps(availability_config(self.topic)),
                topics.discovery_availability_topic(self.topic, self.ha_topic),
            )
        except Exception:
            logger.exception("%s Failed to publish availability discovery", lp)
            return False
        logger.info("%s Published availability discovery", lp)
        return True
