"""MQTT synchronization package for ChoreHub.

- client.py: aiomqtt broker gateway with reconnects and subscriptions
- topics.py: topic names for state, commands, availability and discovery
- discovery.py: Home Assistant discovery documents and their publication
- state_updates.py: chore status and attribute publishing
- command_routing.py: inbound command parsing and dispatch
- refresher.py: periodic re-publication of every chore
"""

from .client import MQTTClient
from .command_routing import ChoreCommand, CommandRouter, parse_command_topic
from .discovery import DiscoveryService, availability_config, done_button_config, sensor_config
from .refresher import PeriodicRefresher
from .state_updates import StatePublisher

__all__ = [
    "ChoreCommand",
    "CommandRouter",
    "DiscoveryService",
    "MQTTClient",
    "PeriodicRefresher",
    "StatePublisher",
    "availability_config",
    "done_button_config",
    "parse_command_topic",
    "sensor_config",
]
