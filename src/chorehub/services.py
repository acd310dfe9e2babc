"""Chore business operations and their MQTT side effects.

Each mutation succeeds or fails on its own; the discovery and state publishes
that follow are best-effort and cannot fail the operation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chorehub.exceptions import ChoreNotFoundError, ChoreValidationError
from chorehub.logging_abstraction import get_logger
from chorehub.structs import RecurrenceType
from chorehub.time_utils import start_of_tomorrow

if TYPE_CHECKING:
    from chorehub.mqtt.discovery import DiscoveryService
    from chorehub.mqtt.state_updates import StatePublisher
    from chorehub.store import ChoreStore
    from chorehub.structs import Chore, CreateChoreRequest, User

logger = get_logger(__name__)

MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000


def validate_chore_request(request: CreateChoreRequest) -> None:
    """Reject requests that break chore invariants.

    Only the presence of a recurrence pattern is checked against the
    recurrence type; its cron or ISO-8601 syntax is not.

    Raises:
        ChoreValidationError: with a message suitable for API clients

    """
    name = (request.name or "").strip()
    if not name:
        raise ChoreValidationError("Chore name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise ChoreValidationError(f"Chore name cannot exceed {MAX_NAME_LENGTH} characters")
    if request.recurrence_type is None:
        raise ChoreValidationError("Recurrence type is required")

    has_pattern = bool(request.recurrence_pattern and request.recurrence_pattern.strip())
    if request.recurrence_type is RecurrenceType.ONETIME and has_pattern:
        raise ChoreValidationError("Recurrence pattern should not be set for ONETIME chores")
    if request.recurrence_type is not RecurrenceType.ONETIME and not has_pattern:
        raise ChoreValidationError(f"Recurrence pattern is required for {request.recurrence_type.name} chores")

    if request.description is not None and len(request.description) > MAX_DESCRIPTION_LENGTH:
        raise ChoreValidationError(f"Chore description cannot exceed {MAX_DESCRIPTION_LENGTH} characters")


class ChoreService:
    lp: str = "ChoreService:"

    def __init__(self, store: ChoreStore, publisher: StatePublisher, discovery: DiscoveryService) -> None:
        self.store = store
        self.publisher = publisher
        self.discovery = discovery

    async def create_chore(self, request: CreateChoreRequest) -> Chore:
        """Validate, store, then register the chore with Home Assistant."""
        lp = f"{self.lp}create:"
        validate_chore_request(request)

        assigned_user: User | None = None
        if request.assigned_username and request.assigned_username.strip():
            assigned_user = await self.store.find_user_by_name(request.assigned_username)
            if assigned_user is None:
                raise ChoreValidationError(f"User with name '{request.assigned_username}' not found")

        pattern = request.recurrence_pattern if request.recurrence_type is not RecurrenceType.ONETIME else None
        chore = await self.store.create(
            {
                "name": (request.name or "").strip(),
                "description": request.description,
                "recurrence_type": request.recurrence_type,
                "recurrence_pattern": pattern,
                "assigned_user": assigned_user,
                "next_due_date": request.next_due_date,
            }
        )
        logger.info("%s Created chore %s (%s)", lp, chore.id, chore.name)

        _ = await self.discovery.publish_discovery_for_chore(chore)
        _ = await self.publisher.publish_status_and_attributes(chore)
        return chore

    async def mark_chore_as_done(self, chore_id: int) -> Chore:
        """Record a completion and publish the new state.

        Raises:
            ChoreNotFoundError: no chore with ``chore_id``

        """
        chore = await self.store.mark_done(chore_id)
        if chore is None:
            raise ChoreNotFoundError("Chore", chore_id)
        logger.info("%s Marked chore %s as done", self.lp, chore_id)
        _ = await self.publisher.publish_status_and_attributes(chore)
        return chore

    async def delete_chore(self, chore_id: int) -> None:
        """Retract the chore's HA entities, then delete it.

        Raises:
            ChoreNotFoundError: no chore with ``chore_id``

        """
        if await self.store.find_by_id(chore_id) is None:
            raise ChoreNotFoundError("Chore", chore_id)
        _ = await self.discovery.remove_discovery_for_chore(chore_id)
        _ = await self.store.delete(chore_id)
        logger.info("%s Deleted chore %s", self.lp, chore_id)

    async def get_due_chores(self, user_name: str | None = None) -> list[Chore]:
        """Chores due or overdue today: next due date before tomorrow 00:00."""
        return await self.store.find_due_before(start_of_tomorrow(), user_name)

    async def publish_all(self) -> None:
        """(Re-)register every chore and push its state, e.g. after a broker reconnect."""
        for chore in await self.store.find_all():
            _ = await self.discovery.publish_discovery_for_chore(chore)
            _ = await self.publisher.publish_status_and_attributes(chore)
