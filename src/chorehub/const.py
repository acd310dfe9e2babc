import os
import zoneinfo

import tzlocal

from chorehub import __version__

__all__ = [
    "API_SRV_START_TASK_NAME",
    "AVAILABILITY_OFFLINE",
    "AVAILABILITY_ONLINE",
    "CHOREHUB_API_ENABLED",
    "CHOREHUB_API_HOST",
    "CHOREHUB_API_PORT",
    "CHOREHUB_DATA_FILE",
    "CHOREHUB_DEBUG",
    "CHOREHUB_DEVICE_NAME",
    "CHOREHUB_HASS_TOPIC",
    "CHOREHUB_LOG_FORMAT",
    "CHOREHUB_LOG_HUMAN_OUTPUT",
    "CHOREHUB_LOG_JSON_FILE",
    "CHOREHUB_MANUFACTURER",
    "CHOREHUB_MQTT_CLIENT_ID_PREFIX",
    "CHOREHUB_MQTT_CONN_DELAY",
    "CHOREHUB_MQTT_HOST",
    "CHOREHUB_MQTT_PASS",
    "CHOREHUB_MQTT_PORT",
    "CHOREHUB_MQTT_USER",
    "CHOREHUB_REFRESH_INTERVAL",
    "CHOREHUB_TOPIC",
    "CHOREHUB_VERSION",
    "DONE_PAYLOAD_PRESS",
    "LOCAL_TZ",
    "MQTT_CLIENT_START_TASK_NAME",
    "MQTT_COMMAND_QOS",
    "MQTT_PUBLISH_QOS",
    "REFRESHER_START_TASK_NAME",
    "YES_ANSWER",
    "bool_env",
    "int_env",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
LOCAL_TZ = zoneinfo.ZoneInfo(str(tzlocal.get_localzone()))
CHOREHUB_VERSION: str = __version__


def int_env(name: str, default: int) -> int:
    """Integer environment variable; unset, "null" or unparsable values yield ``default``."""
    raw = os.environ.get(name, "")
    if not raw or raw.lower() == "null":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().casefold() in YES_ANSWER


CHOREHUB_MQTT_HOST: str = os.environ.get("CHOREHUB_MQTT_HOST", "localhost")
CHOREHUB_MQTT_PORT: int = int_env("CHOREHUB_MQTT_PORT", 1883)
CHOREHUB_MQTT_USER: str | None = os.environ.get("CHOREHUB_MQTT_USER") or None
CHOREHUB_MQTT_PASS: str | None = os.environ.get("CHOREHUB_MQTT_PASS") or None
CHOREHUB_MQTT_CLIENT_ID_PREFIX: str = os.environ.get("CHOREHUB_MQTT_CLIENT_ID_PREFIX", "chorehub")
CHOREHUB_TOPIC: str = os.environ.get("CHOREHUB_TOPIC", "chorehub")
CHOREHUB_HASS_TOPIC: str = os.environ.get("CHOREHUB_HASS_TOPIC", "homeassistant")
CHOREHUB_MQTT_CONN_DELAY: int = int_env("CHOREHUB_MQTT_CONN_DELAY", 10)
# seconds between full status/attribute sweeps
CHOREHUB_REFRESH_INTERVAL: int = int_env("CHOREHUB_REFRESH_INTERVAL", 300)

CHOREHUB_API_ENABLED: bool = bool_env("CHOREHUB_API_ENABLED", True)
CHOREHUB_API_HOST: str = os.environ.get("CHOREHUB_API_HOST", "0.0.0.0")
CHOREHUB_API_PORT: int = int_env("CHOREHUB_API_PORT", 8080)
CHOREHUB_DATA_FILE: str = os.environ.get("CHOREHUB_DATA_FILE", "")

CHOREHUB_DEBUG: bool = bool_env("CHOREHUB_DEBUG", False)

# Logging Configuration (read once at import; loggers are built before --env is parsed)
CHOREHUB_LOG_FORMAT: str = os.environ.get("CHOREHUB_LOG_FORMAT", "human")  # "json", "human", or "both"
CHOREHUB_LOG_JSON_FILE: str = os.environ.get("CHOREHUB_LOG_JSON_FILE", "")
CHOREHUB_LOG_HUMAN_OUTPUT: str = os.environ.get("CHOREHUB_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or path

# Home Assistant discovery contract
AVAILABILITY_ONLINE: str = "online"
AVAILABILITY_OFFLINE: str = "offline"
DONE_PAYLOAD_PRESS: str = "1"
CHOREHUB_DEVICE_NAME: str = "ChoreHub"
CHOREHUB_MANUFACTURER: str = "ChoreHub"

MQTT_PUBLISH_QOS: int = 1
MQTT_COMMAND_QOS: int = 1

MQTT_CLIENT_START_TASK_NAME = "MQTTClient_START"
REFRESHER_START_TASK_NAME = "PeriodicRefresher_START"
API_SRV_START_TASK_NAME = "ApiServer_START"
