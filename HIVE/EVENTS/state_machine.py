"""
HIVE.EVENTS.state_machine
=========================

Pure transition rules for the event lifecycle::

    draft -> published -> live -> completed -> archived

Nothing here touches Firestore.  :pymod:`HIVE.EVENTS.lifecycle` turns these
decisions into document writes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from HIVE.core.config import ADMIN_ROLE
from .models import (
    EventLifecycleState,
    StateHistoryEntry,
    TransitionType,
)

ARCHIVE_AFTER = timedelta(hours=12)


# ---------------------------------------------------------------------
# Automatic transitions: source state + temporal field → target state
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class AutomaticRule:
    name: str
    source: EventLifecycleState
    target: EventLifecycleState
    field: str              # Firestore field compared against the threshold
    delay: timedelta = timedelta(0)

    def threshold(self, now: datetime) -> datetime:
        """Latest value of :pyattr:`field` that makes an event due at ``now``."""
        return now - self.delay


AUTOMATIC_RULES = (
    AutomaticRule("publishedToLive", EventLifecycleState.PUBLISHED, EventLifecycleState.LIVE, "startDate"),
    AutomaticRule("liveToCompleted", EventLifecycleState.LIVE, EventLifecycleState.COMPLETED, "endDate"),
    AutomaticRule(
        "completedToArchived",
        EventLifecycleState.COMPLETED,
        EventLifecycleState.ARCHIVED,
        "endDate",
        delay=ARCHIVE_AFTER,
    ),
)


def initial_state(published: bool) -> EventLifecycleState:
    return EventLifecycleState.PUBLISHED if published is True else EventLifecycleState.DRAFT


def parse_state(value) -> Optional[EventLifecycleState]:
    """Map a raw value onto a lifecycle state, or ``None`` if it is not one."""
    try:
        return EventLifecycleState(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------
# Manual transitions: permission matrix
# ---------------------------------------------------------------------
def creator_may_transition(
    current: Optional[EventLifecycleState],
    target: EventLifecycleState,
    start_date: Optional[datetime],
    now: datetime,
) -> bool:
    if current is EventLifecycleState.DRAFT and target is EventLifecycleState.PUBLISHED:
        return True
    # Reverting is only possible while the event has not started
    return (
        current is EventLifecycleState.PUBLISHED
        and target is EventLifecycleState.DRAFT
        and start_date is not None
        and now < start_date
    )


def can_transition(
    *,
    role: str,
    is_creator: bool,
    current: Optional[EventLifecycleState],
    target: EventLifecycleState,
    start_date: Optional[datetime],
    now: datetime,
) -> bool:
    """
    Decide whether a caller may move an event from ``current`` to ``target``.

    Checked in order:

    1. archiving is reserved to admins;
    2. the creator may publish a draft, or unpublish before the start;
    3. admins may make any other transition;
    4. everyone else is denied.

    An admin who created the event still gets rule 3 for transitions rule 2
    does not cover.  An unrecognised ``current`` state (``None``) only passes
    rules 1 and 3.
    """
    if target is EventLifecycleState.ARCHIVED:
        return role == ADMIN_ROLE
    if is_creator and creator_may_transition(current, target, start_date, now):
        return True
    return role == ADMIN_ROLE


# ---------------------------------------------------------------------
# History entries
# ---------------------------------------------------------------------
def history_entry(
    target: EventLifecycleState,
    now: datetime,
    transition_type: TransitionType,
    updated_by: Optional[str] = None,
) -> StateHistoryEntry:
    return StateHistoryEntry(
        state=target,
        timestamp=now,
        transition_type=transition_type,
        updated_by=updated_by,
    )
