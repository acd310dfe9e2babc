from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from functools import partial
from pathlib import Path
from typing import Any

import dotenv
import uvloop

from chorehub.api import ApiServer
from chorehub.const import (
    API_SRV_START_TASK_NAME,
    CHOREHUB_VERSION,
    MQTT_CLIENT_START_TASK_NAME,
    REFRESHER_START_TASK_NAME,
)
from chorehub.correlation import correlation_context, ensure_correlation_id
from chorehub.lifecycle import AvailabilityLifecycle
from chorehub.logging_abstraction import get_logger
from chorehub.mqtt import CommandRouter, DiscoveryService, MQTTClient, PeriodicRefresher, StatePublisher
from chorehub.mqtt.topics import done_command_subscription
from chorehub.services import ChoreService
from chorehub.store import ChoreStore
from chorehub.structs import GlobalObject
from chorehub.utils import check_python_version, signal_handler

logger = get_logger(__name__)

# Keep uvicorn and the MQTT library quiet unless something is wrong
uv_handler = logging.StreamHandler(sys.stdout)
uv_handler.setLevel(logging.INFO)
uv_handler.setFormatter(
    logging.Formatter(
        "%(asctime)s.%(msecs)d %(levelname)s (%(name)s) > %(message)s",
        "%m/%d/%y %H:%M:%S",
    ),
)
for _ul in (logging.getLogger("uvicorn"), logging.getLogger("uvicorn.error"), logging.getLogger("uvicorn.access")):
    _ul.setLevel(logging.INFO)
    _ul.propagate = False
    _ul.addHandler(uv_handler)
logging.getLogger("mqtt").setLevel(logging.ERROR)

g = GlobalObject()

# seconds to wait for the first broker connection before announcing availability anyway
FIRST_CONNECT_TIMEOUT = 5.0


class ChoreHubController:
    """Wires the chore store, MQTT synchronization and HTTP API together."""

    lp: str = "ChoreHubController:"
    _instance: ChoreHubController | None = None

    def __new__(cls, *args: object, **kwargs: object) -> ChoreHubController:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
        g.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(g.loop)

        logger.info(" Initializing ChoreHub", extra={"version": CHOREHUB_VERSION})

        g.loop.add_signal_handler(signal.SIGINT, partial(signal_handler, signal.SIGINT))
        g.loop.add_signal_handler(signal.SIGTERM, partial(signal_handler, signal.SIGTERM))
        logger.debug("Signal handlers configured for SIGINT & SIGTERM")

        self.store: ChoreStore | None = None
        self.mqtt_client: MQTTClient | None = None
        self.refresher: PeriodicRefresher | None = None
        self.api_server: ApiServer | None = None
        self.lifecycle: AvailabilityLifecycle | None = None
        self.service: ChoreService | None = None
        self.router: CommandRouter | None = None

    def build(self) -> list[asyncio.Task[Any]]:
        """Create every component and start the long-running tasks."""
        self.store = store = ChoreStore(g.env.data_file or None)
        store.load()

        g.mqtt_client = self.mqtt_client = mqtt = MQTTClient()
        publisher = StatePublisher(mqtt, mqtt.topic)
        discovery = DiscoveryService(mqtt, mqtt.topic, mqtt.ha_topic)
        self.router = CommandRouter(store, publisher, mqtt.topic)
        g.chore_service = self.service = ChoreService(store, publisher, discovery)
        self.lifecycle = AvailabilityLifecycle(mqtt, discovery, mqtt.topic)
        self.refresher = PeriodicRefresher(store, publisher, g.env.refresh_interval)
        mqtt.add_connect_callback(self.on_broker_connected)

        mqtt.start_task = m_start = asyncio.Task(mqtt.start(), name=MQTT_CLIENT_START_TASK_NAME)
        self.refresher.start_task = r_start = asyncio.Task(self.refresher.run(), name=REFRESHER_START_TASK_NAME)
        tasks: list[asyncio.Task[Any]] = [m_start, r_start]

        enabled = g.env.api_enabled and not (g.cli_args and g.cli_args.no_api)
        if enabled:
            g.api_server = self.api_server = ApiServer()
            self.api_server.start_task = a_start = asyncio.Task(self.api_server.start(), name=API_SRV_START_TASK_NAME)
            tasks.append(a_start)
        g.tasks.extend(tasks)
        return tasks

    async def on_broker_connected(self) -> None:
        """Bring Home Assistant up to date after every (re)connect."""
        assert self.lifecycle is not None
        assert self.service is not None
        if self.lifecycle.ready_fired and not self.lifecycle.shutdown_fired:
            await self.lifecycle.announce()
        await self.service.publish_all()

    async def start(self) -> None:
        _ = ensure_correlation_id()
        tasks = self.build()
        assert self.mqtt_client is not None
        assert self.lifecycle is not None
        assert self.router is not None

        await self.mqtt_client.subscribe(done_command_subscription(self.mqtt_client.topic), self.router.handle_message)
        if not await self.mqtt_client.wait_connected(FIRST_CONNECT_TIMEOUT):
            logger.warning(" MQTT broker not reachable yet, continuing without it")

        try:
            async with self.lifecycle:
                _ = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            await self.mqtt_client.stop()

    async def stop(self) -> None:
        """Stop the services; availability goes offline before the broker disconnects."""
        logger.info(" Shutting down ChoreHub...")
        if self.refresher is not None:
            await self.refresher.stop()
        if self.api_server is not None:
            await self.api_server.stop()
        if self.lifecycle is not None:
            await self.lifecycle.on_shutdown()
        if self.mqtt_client is not None and self.mqtt_client.start_task and not self.mqtt_client.start_task.done():
            _ = self.mqtt_client.start_task.cancel()


def parse_cli() -> None:
    parser = argparse.ArgumentParser(description="ChoreHub chore tracker with Home Assistant MQTT sync")
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug mode")
    _ = parser.add_argument("--no-api", action="store_true", dest="no_api", help="Do not start the HTTP API")
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    g.cli_args = args = parser.parse_args()

    if args.debug:
        logger.set_level(logging.DEBUG)
        logger.info("Debug mode enabled via CLI argument")

    if args.env:
        env_path = args.env.expanduser().resolve()
        if not env_path.exists():
            logger.error("Environment file not found", extra={"path": str(env_path)})
        elif dotenv.load_dotenv(env_path, override=True):
            logger.info(" Environment variables loaded", extra={"source": str(env_path)})
            g.reload_env()
        else:
            logger.warning("No environment variables loaded from file", extra={"path": str(env_path)})


def main() -> None:
    """Main entry point for ChoreHub."""
    with correlation_context():
        logger.info("Starting ChoreHub", extra={"version": CHOREHUB_VERSION})
        parse_cli()
        if g.env.debug:
            logger.info("Debug logging enabled via configuration")
            logger.set_level(logging.DEBUG)

        check_python_version()
        g.controller = controller = ChoreHubController()
        assert g.loop is not None
        try:
            g.loop.run_until_complete(controller.start())
        except asyncio.CancelledError:
            logger.info("ChoreHub cancelled, shutting down...")
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        except Exception as e:
            logger.exception(" Fatal error in main loop", extra={"error": str(e)})
        else:
            logger.info(" ChoreHub stopped gracefully")
        finally:
            if not g.loop.is_closed():
                g.loop.close()
            logger.info("ChoreHub shutdown complete")


if __name__ == "__main__":
    main()
