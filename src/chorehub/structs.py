"""Core data structures and typing protocols for ChoreHub."""

from __future__ import annotations

import asyncio
import datetime
import os
from argparse import Namespace
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chorehub.const import (
    CHOREHUB_API_ENABLED,
    CHOREHUB_API_HOST,
    CHOREHUB_API_PORT,
    CHOREHUB_DATA_FILE,
    CHOREHUB_DEBUG,
    CHOREHUB_HASS_TOPIC,
    CHOREHUB_MQTT_CLIENT_ID_PREFIX,
    CHOREHUB_MQTT_CONN_DELAY,
    CHOREHUB_MQTT_HOST,
    CHOREHUB_MQTT_PASS,
    CHOREHUB_MQTT_PORT,
    CHOREHUB_MQTT_USER,
    CHOREHUB_REFRESH_INTERVAL,
    CHOREHUB_TOPIC,
    bool_env,
    int_env,
)
from chorehub.time_utils import ensure_aware, now_local, to_utc

if TYPE_CHECKING:
    import uvloop

    from chorehub.services import ChoreService

MessageHandler = Callable[[str, bytes], Awaitable[None]]


class RecurrenceType(StrEnum):
    """How a chore repeats."""

    ONETIME = "onetime"
    FIXED_SCHEDULE = "fixed_schedule"  # e.g. every 1st of the month (cron)
    AFTER_COMPLETION = "after_completion"  # e.g. 4 months after last completion (ISO-8601 duration)


class ChoreStatus(StrEnum):
    """Display status of a chore, using the values Home Assistant renders."""

    DONE = "done"
    DUE = "due"
    OVERDUE = "overdue"

    @classmethod
    def from_ha_value(cls, value: str) -> ChoreStatus:
        """Parse a Home Assistant state string (case-insensitive)."""
        for status in cls:
            if status.value == value.casefold():
                return status
        msg = f"Unknown ChoreStatus: {value}"
        raise ValueError(msg)


class User(BaseModel):
    id: int
    name: str
    shortname: str | None = None


def _as_aware(value: datetime.datetime | None) -> datetime.datetime | None:
    return ensure_aware(value) if value is not None else None


class Chore(BaseModel):
    """A recurring (or one-time) household chore.

    Timestamps are stored timezone-aware; naive input is taken as local time.
    """

    id: int
    name: str
    description: str | None = None
    recurrence_type: RecurrenceType = RecurrenceType.ONETIME
    recurrence_pattern: str | None = None
    assigned_user: User | None = None
    created_date: datetime.datetime = Field(default_factory=now_local)
    last_completed_date: datetime.datetime | None = None
    next_due_date: datetime.datetime | None = None

    @field_validator("created_date", "last_completed_date", "next_due_date")
    @classmethod
    def localize_timestamps(cls, value: datetime.datetime | None) -> datetime.datetime | None:
        return _as_aware(value)

    def record_completion(self, when: datetime.datetime | None = None) -> ChoreHistory:
        """Mark the chore completed at ``when`` (default: now).

        The next due date is left untouched: deriving it from the recurrence
        pattern is not handled here.
        """
        completed = ensure_aware(when) if when else now_local()
        self.last_completed_date = completed
        return ChoreHistory(chore_id=self.id, completed_date=completed)


class ChoreHistory(BaseModel):
    chore_id: int
    completed_date: datetime.datetime
    notes: str | None = None


class ChoreAttributes(BaseModel):
    """JSON attributes published next to a chore's status.

    Field aliases are the attribute names Home Assistant shows on the entity.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str
    due: datetime.datetime | None = None
    assignee: str | None = None
    interval_days: int | None = Field(default=None, alias="intervalDays")
    notes: str | None = None
    last_done: datetime.datetime | None = Field(default=None, alias="lastDone")

    @classmethod
    def from_chore(cls, chore: Chore) -> ChoreAttributes:
        return cls(
            title=chore.name,
            due=to_utc(chore.next_due_date),
            assignee=chore.assigned_user.name if chore.assigned_user else None,
            interval_days=None,  # not tracked yet
            notes=chore.description,
            last_done=to_utc(chore.last_completed_date),
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class CreateChoreRequest(BaseModel):
    """Body of a create-chore call."""

    name: str | None = None
    description: str | None = None
    recurrence_type: RecurrenceType | None = None
    recurrence_pattern: str | None = None
    assigned_username: str | None = None
    next_due_date: datetime.datetime | None = None


class BrokerGatewayProtocol(Protocol):
    """Narrow capability over a concrete broker client."""

    async def publish(self, payload: str, topic: str) -> None:
        """Publish ``payload`` retained to ``topic``; raise on transport failure."""
        ...

    async def subscribe(self, pattern: str, handler: MessageHandler) -> None:
        """Deliver messages matching ``pattern`` to ``handler(topic, payload)``."""
        ...


class ChoreStoreProtocol(Protocol):
    """What the MQTT layer needs from chore persistence."""

    async def find_all(self) -> list[Chore]: ...

    async def find_by_id(self, chore_id: int) -> Chore | None: ...

    async def mark_done(self, chore_id: int) -> Chore | None:
        """Record a completion; None when the chore does not exist."""
        ...

    async def delete(self, chore_id: int) -> bool: ...


class StoppableProtocol(Protocol):
    async def stop(self) -> None: ...


@dataclass
class GlobalObjEnv:
    """Environment-derived settings that can be re-read at runtime.

    Defaults are the values seen at import time (see ``chorehub.const``);
    ``GlobalObject.reload_env`` refreshes them, e.g. after a .env file is loaded.
    """

    mqtt_host: str = CHOREHUB_MQTT_HOST
    mqtt_port: int = CHOREHUB_MQTT_PORT
    mqtt_user: str | None = CHOREHUB_MQTT_USER
    mqtt_pass: str | None = CHOREHUB_MQTT_PASS
    mqtt_client_id_prefix: str = CHOREHUB_MQTT_CLIENT_ID_PREFIX
    mqtt_topic: str = CHOREHUB_TOPIC
    mqtt_hass_topic: str = CHOREHUB_HASS_TOPIC
    mqtt_conn_delay: int = CHOREHUB_MQTT_CONN_DELAY
    refresh_interval: int = CHOREHUB_REFRESH_INTERVAL
    api_enabled: bool = CHOREHUB_API_ENABLED
    api_host: str = CHOREHUB_API_HOST
    api_port: int = CHOREHUB_API_PORT
    data_file: str = CHOREHUB_DATA_FILE
    debug: bool = CHOREHUB_DEBUG


class GlobalObject:
    """Singleton container for cross-module state and services."""

    controller: StoppableProtocol | None = None
    mqtt_client: StoppableProtocol | None = None
    api_server: StoppableProtocol | None = None
    chore_service: ChoreService | None = None
    loop: uvloop.Loop | asyncio.AbstractEventLoop | None = None
    tasks: ClassVar[list[asyncio.Task[Any]]] = []
    env: GlobalObjEnv = GlobalObjEnv()
    cli_args: Namespace | None = None

    _instance: GlobalObject | None = None

    def __new__(cls, *_args: Any, **_kwargs: Any) -> GlobalObject:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.reload_env()
        return cls._instance

    def reload_env(self) -> None:
        """Re-read environment variables (after a .env file was loaded, for example)."""
        env = self.env
        env.mqtt_host = os.environ.get("CHOREHUB_MQTT_HOST", CHOREHUB_MQTT_HOST)
        env.mqtt_port = int_env("CHOREHUB_MQTT_PORT", CHOREHUB_MQTT_PORT)
        env.mqtt_user = os.environ.get("CHOREHUB_MQTT_USER") or CHOREHUB_MQTT_USER
        env.mqtt_pass = os.environ.get("CHOREHUB_MQTT_PASS") or CHOREHUB_MQTT_PASS
        env.mqtt_client_id_prefix = os.environ.get("CHOREHUB_MQTT_CLIENT_ID_PREFIX", CHOREHUB_MQTT_CLIENT_ID_PREFIX)
        env.mqtt_topic = os.environ.get("CHOREHUB_TOPIC", CHOREHUB_TOPIC)
        env.mqtt_hass_topic = os.environ.get("CHOREHUB_HASS_TOPIC", CHOREHUB_HASS_TOPIC)
        env.mqtt_conn_delay = int_env("CHOREHUB_MQTT_CONN_DELAY", CHOREHUB_MQTT_CONN_DELAY)
        env.refresh_interval = int_env("CHOREHUB_REFRESH_INTERVAL", CHOREHUB_REFRESH_INTERVAL)
        env.api_enabled = bool_env("CHOREHUB_API_ENABLED", CHOREHUB_API_ENABLED)
        env.api_host = os.environ.get("CHOREHUB_API_HOST", CHOREHUB_API_HOST)
        env.api_port = int_env("CHOREHUB_API_PORT", CHOREHUB_API_PORT)
        env.data_file = os.environ.get("CHOREHUB_DATA_FILE", CHOREHUB_DATA_FILE)
        env.debug = bool_env("CHOREHUB_DEBUG", CHOREHUB_DEBUG)
