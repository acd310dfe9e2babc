"""
Correlation IDs for tracing one unit of work through async call chains.

A unit of work is an inbound MQTT command, a refresh sweep or an API request.
The ID lives in a ContextVar so concurrently running tasks never see each
other's value.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "get_correlation_id",
    "new_correlation_id",
]

_current_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("chorehub_correlation_id", default=None)


def new_correlation_id() -> str:
    """Return a fresh 32 character hex ID."""
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    return _current_id.get()


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str]:
    """
    Scope a correlation ID to a block, restoring the outer one afterwards.

    Example:
        with correlation_context() as corr_id:
            logger.info("Handling command")  # record carries corr_id
    """
    token = _current_id.set(correlation_id or new_correlation_id())
    try:
        yield _current_id.get() or ""
    finally:
        _current_id.reset(token)


def ensure_correlation_id() -> str:
    """Return the current ID, creating one for this context if none is set."""
    current = _current_id.get()
    if current is None:
        current = new_correlation_id()
        _current_id.set(current)
    return current
