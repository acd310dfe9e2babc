"""ChoreHub: household chore tracking with Home Assistant MQTT synchronization."""

__version__ = "0.3.0"
