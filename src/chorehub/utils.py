from __future__ import annotations

import asyncio
import os
import signal
import sys

from chorehub.logging_abstraction import get_logger
from chorehub.structs import GlobalObject

logger = get_logger(__name__)
g = GlobalObject()


def send_signal(signal_num: int) -> None:
    """Send a signal to the current process."""
    try:
        logger.debug("Sending signal %s to process %s", signal_num, os.getpid())
        os.kill(os.getpid(), signal_num)
    except OSError:
        logger.exception("Failed to send signal %s to process", signal_num)
        raise


def send_sigterm() -> None:
    """Ask the process to terminate; the SIGTERM handler performs a clean shutdown."""
    send_signal(signal.SIGTERM)


async def _async_signal_cleanup() -> None:
    logger.info("ChoreHub: Starting signal cleanup...")
    if g.controller:
        await g.controller.stop()
    for task in g.tasks:
        if not task.done():
            logger.debug("ChoreHub: Cancelling task: %s", task.get_name())
            _ = task.cancel()
    logger.info("ChoreHub: Signal cleanup completed")


def signal_handler(signum: int) -> None:
    logger.info("ChoreHub: Intercepted signal: %s (%s)", signal.Signals(signum).name, signum)
    loop = g.loop or asyncio.get_event_loop()
    _ = loop.create_task(_async_signal_cleanup())


def check_python_version() -> None:
    if sys.version_info < (3, 12):  # noqa: UP036
        logger.error("ChoreHub requires Python 3.12 or newer, found %s", sys.version.split()[0])
        sys.exit(1)
