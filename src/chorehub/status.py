"""Chore display status derived from due and completion timestamps."""

from __future__ import annotations

from typing import TYPE_CHECKING

from chorehub.structs import ChoreStatus
from chorehub.time_utils import ensure_aware, now_local

if TYPE_CHECKING:
    import datetime

    from chorehub.structs import Chore


def evaluate_status(
    due_at: datetime.datetime | None,
    last_completed_at: datetime.datetime | None,
    now: datetime.datetime,
) -> ChoreStatus:
    """Compute the status Home Assistant should display.

    Never completed: OVERDUE once the due date has passed, DUE otherwise
    (including when there is no due date at all).

    Completed before: DONE without a due date (finished one-time chore) or
    with a future one, OVERDUE with a past one, and DUE only when the due
    date equals ``now`` exactly.
    """
    now = ensure_aware(now)
    due = ensure_aware(due_at) if due_at is not None else None

    if last_completed_at is None:
        if due is not None and due < now:
            return ChoreStatus.OVERDUE
        return ChoreStatus.DUE

    if due is None:
        return ChoreStatus.DONE
    if due < now:
        return ChoreStatus.OVERDUE
    if due > now:
        return ChoreStatus.DONE
    # TODO: decide whether a completion landing exactly on the due instant should read DONE
    return ChoreStatus.DUE


def chore_status(chore: Chore, now: datetime.datetime | None = None) -> ChoreStatus:
    return evaluate_status(chore.next_due_date, chore.last_completed_date, now or now_local())
