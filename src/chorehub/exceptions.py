"""Exception hierarchy for ChoreHub.

None of these ever escape the MQTT synchronization layer into a chore
operation; they exist so each failure can be logged with a precise reason.
"""

from __future__ import annotations


class ChoreHubError(Exception):
    """Base class for all ChoreHub errors."""


class BrokerNotConnectedError(ChoreHubError):
    """Publish or subscribe attempted while the broker connection is down.

    Attributes:
        topic: Topic of the rejected operation

    """

    def __init__(self, topic: str) -> None:
        self.topic: str = topic
        super().__init__(f"MQTT broker not connected, cannot publish to {topic}")


class InvalidCommandTopicError(ChoreHubError):
    """Inbound topic does not address a chore command.

    Attributes:
        topic: The offending topic
        reason: Which part of the topic failed to parse

    """

    def __init__(self, topic: str, reason: str) -> None:
        self.topic: str = topic
        self.reason: str = reason
        super().__init__(f"Invalid command topic '{topic}': {reason}")


class ChoreValidationError(ChoreHubError, ValueError):
    """Chore create request rejected by business rules."""


class ChoreNotFoundError(ChoreHubError, LookupError):
    """No chore (or user) exists with the requested identity."""

    def __init__(self, kind: str, key: object) -> None:
        self.kind: str = kind
        self.key: object = key
        super().__init__(f"{kind} {key!r} not found")
