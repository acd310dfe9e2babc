"""MQTT command routing for inbound chore commands.

Only one command exists today: ``{root}/chores/{id}/done/set`` marks the chore
done. Anything else arriving on a subscribed topic is logged and dropped;
the broker has no reply channel, so nothing is ever raised back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from chorehub.correlation import correlation_context
from chorehub.exceptions import InvalidCommandTopicError
from chorehub.logging_abstraction import get_logger
from chorehub.mqtt import topics

if TYPE_CHECKING:
    from chorehub.mqtt.state_updates import StatePublisher
    from chorehub.structs import ChoreStoreProtocol

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChoreCommand:
    chore_id: int
    action: str


def parse_command_topic(topic: str, root: str = topics.ROOT) -> ChoreCommand:
    """Split ``{root}/chores/{id}/{action}[/...]`` into a ChoreCommand.

    Raises:
        InvalidCommandTopicError: wrong root, wrong collection, or non-integer id

    """
    parts = topic.split("/")
    if len(parts) < 4 or parts[0] != root or parts[1] != topics.CHORES:
        raise InvalidCommandTopicError(topic, "unexpected topic format")
    # plain ASCII digits only; int() would also take "4_2", " 42", "+42"
    if not (parts[2].isascii() and parts[2].isdigit()):
        raise InvalidCommandTopicError(topic, f"chore id '{parts[2]}' is not an integer")
    return ChoreCommand(chore_id=int(parts[2]), action=parts[3])


class CommandRouter:
    """Routes inbound MQTT messages to chore mutations."""

    lp: str = "commands:"

    def __init__(
        self,
        store: ChoreStoreProtocol,
        publisher: StatePublisher,
        topic: str = topics.ROOT,
    ) -> None:
        """Initialize the command router.

        Args:
            store: Chore store whose ``mark_done`` performs the mutation
            publisher: Re-publishes state after a successful mutation
            topic: Operational topic root commands are expected under

        """
        self.store = store
        self.publisher = publisher
        self.topic = topic

    async def handle_message(self, topic: str, payload: bytes) -> None:
        """Entry point registered with the broker gateway."""
        lp = f"{self.lp}handle:"
        with correlation_context():
            logger.debug("%s Received MQTT command on topic: %s with payload: %r", lp, topic, payload)
            try:
                command = parse_command_topic(topic, self.topic)
            except InvalidCommandTopicError as e:
                logger.warning("%s Dropping message: %s", lp, e)
                return

            if command.action != topics.DONE_ACTION:
                logger.warning("%s Unknown command '%s' in topic: %s", lp, command.action, topic)
                return

            try:
                await self.mark_chore_done(command.chore_id)
            except Exception:
                logger.exception("%s Error handling MQTT command on %s", lp, topic)

    async def mark_chore_done(self, chore_id: int) -> bool:
        """Mark a chore done and push its new state; False if it does not exist."""
        lp = f"{self.lp}done:"
        chore = await self.store.mark_done(chore_id)
        if chore is None:
            logger.warning("%s Chore %s not found", lp, chore_id)
            return False
        logger.info("%s Marked chore %s as done via MQTT", lp, chore_id)
        _ = await self.publisher.publish_status_and_attributes(chore)
        return True
