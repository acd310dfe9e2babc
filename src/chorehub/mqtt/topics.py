"""Topic names for chore state, commands, availability and HA discovery.

Operational topics live under the service root::

    chorehub/chores/{id}/status
    chorehub/chores/{id}/attributes
    chorehub/chores/{id}/done/set
    chorehub/status

Discovery topics live under the Home Assistant root::

    homeassistant/sensor/chorehub_chore_{id}_status/config
    homeassistant/button/chorehub_chore_{id}_done/config
    homeassistant/binary_sensor/chorehub_availability/config
"""

from __future__ import annotations

ROOT = "chorehub"
CHORES = "chores"
HA_DISCOVERY = "homeassistant"
DONE_ACTION = "done"


def _chore_topic(chore_id: int | str, aspect: str, root: str) -> str:
    return f"{root}/{CHORES}/{chore_id}/{aspect}"


def status_topic(chore_id: int | str, root: str = ROOT) -> str:
    return _chore_topic(chore_id, "status", root)


def attributes_topic(chore_id: int | str, root: str = ROOT) -> str:
    return _chore_topic(chore_id, "attributes", root)


def done_command_topic(chore_id: int | str, root: str = ROOT) -> str:
    return _chore_topic(chore_id, f"{DONE_ACTION}/set", root)


def done_command_subscription(root: str = ROOT) -> str:
    """Wildcard matching the done command of every chore."""
    return done_command_topic("+", root)


def availability_topic(root: str = ROOT) -> str:
    return f"{root}/status"


def discovery_object_id(chore_id: int | str, suffix: str, root: str = ROOT) -> str:
    return f"{root}_chore_{chore_id}_{suffix}"


def discovery_status_topic(chore_id: int | str, root: str = ROOT, ha_root: str = HA_DISCOVERY) -> str:
    return f"{ha_root}/sensor/{discovery_object_id(chore_id, 'status', root)}/config"


def discovery_done_button_topic(chore_id: int | str, root: str = ROOT, ha_root: str = HA_DISCOVERY) -> str:
    return f"{ha_root}/button/{discovery_object_id(chore_id, 'done', root)}/config"


def discovery_availability_topic(root: str = ROOT, ha_root: str = HA_DISCOVERY) -> str:
    return f"{ha_root}/binary_sensor/{root}_availability/config"
