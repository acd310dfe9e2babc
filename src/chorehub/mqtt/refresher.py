"""Periodic re-publication of every chore's status and attributes.

Chore status is time dependent (a chore turns overdue without any event), and
publishes can be lost while the broker is unreachable, so the full set is
swept on a fixed interval.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from chorehub.const import CHOREHUB_REFRESH_INTERVAL
from chorehub.correlation import correlation_context
from chorehub.logging_abstraction import get_logger

if TYPE_CHECKING:
    from chorehub.mqtt.state_updates import StatePublisher
    from chorehub.structs import ChoreStoreProtocol

logger = get_logger(__name__)


class PeriodicRefresher:
    lp: str = "refresher:"

    def __init__(
        self,
        store: ChoreStoreProtocol,
        publisher: StatePublisher,
        interval: float = CHOREHUB_REFRESH_INTERVAL,
    ) -> None:
        self.store = store
        self.publisher = publisher
        self.interval = interval
        self.running: bool = False
        self.start_task: asyncio.Task[None] | None = None
        self._refresh_in_progress: bool = False

    async def refresh_all(self) -> int:
        """Run one sweep; returns how many chores published cleanly.

        A sweep already in progress makes this call a no-op.
        """
        lp = f"{self.lp}refresh_all:"
        if self._refresh_in_progress:
            logger.debug("%s Refresh already in progress, skipping this cycle", lp)
            return 0

        self._refresh_in_progress = True
        published = 0
        try:
            with correlation_context():
                chores = await self.store.find_all()
                if not chores:
                    logger.debug("%s No chores to refresh", lp)
                    return 0

                logger.debug("%s Refreshing MQTT status for %s chores", lp, len(chores))
                for chore in chores:
                    try:
                        ok = await self.publisher.publish_status_and_attributes(chore)
                    except Exception as e:
                        logger.warning("%s Failed to refresh state for chore %s: %s", lp, chore.id, e)
                        continue
                    if ok:
                        published += 1
                    else:
                        logger.warning("%s Failed to refresh state for chore %s", lp, chore.id)
                logger.debug("%s MQTT status refresh completed (%s/%s)", lp, published, len(chores))
        finally:
            self._refresh_in_progress = False
        return published

    async def run(self) -> None:
        """Sweep immediately, then every ``interval`` seconds until stopped.

        The next sleep starts only after the current sweep finishes, so sweeps
        never overlap.
        """
        lp = f"{self.lp}run:"
        logger.info("%s Starting periodic refresh task (%ss interval)...", lp, self.interval)
        self.running = True
        while self.running:
            try:
                _ = await self.refresh_all()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s Error in scheduled chore status refresh", lp)
            await asyncio.sleep(self.interval)

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        self.running = False
        if self.start_task and not self.start_task.done():
            logger.debug("%s Cancelling refresh task", lp)
            _ = self.start_task.cancel()
