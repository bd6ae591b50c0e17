# file: HIVE/EVENTS/lifecycle.py
"""
Event lifecycle controller.

- ``update_event_states``: the Advancer, run on a fixed schedule.
- ``validate_event_creation``: assigns the initial state to new events.
- ``transition_event_state``: permission-checked manual transition.

Every operation reads Firestore fresh and keeps no state between calls.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.cloud import firestore

from HIVE.core import config
from HIVE.core.errors import (
    Internal,
    InvalidArgument,
    LifecycleError,
    NotFound,
    PermissionDenied,
    Unauthenticated,
)
from HIVE.core.firebase import get_db
from HIVE.core.logger import log_to_cloud
from HIVE.core.security import get_user_role
from .models import (
    EventLifecycleState,
    EventRecord,
    StateHistory,
    StateHistoryEntry,
    TransitionResponse,
    TransitionType,
)
from .state_machine import (
    AUTOMATIC_RULES,
    can_transition,
    history_entry,
    initial_state,
    parse_state,
)

logger = logging.getLogger("events.lifecycle")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _state_fields(state: EventLifecycleState, entry: StateHistoryEntry) -> dict:
    return {
        "state": state.value,
        "stateUpdatedAt": entry.timestamp,
        "stateHistory": firestore.ArrayUnion([entry.to_firestore()]),
    }


# ------------------------------
# Advancer
# ------------------------------
def update_event_states(db=None, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Move every due event one step forward in a single atomic batch.

    Returns the number of events advanced per rule.  Errors are logged and
    re-raised; nothing is committed unless the whole batch commits.
    """
    if db is None:
        db = get_db()
    now = now or utc_now()
    events_ref = db.collection(config.EVENTS_COLLECTION)

    counts = {rule.name: 0 for rule in AUTOMATIC_RULES}
    update_count = 0
    deferred = 0

    try:
        matches = []
        for rule in AUTOMATIC_RULES:
            docs = (
                events_ref
                .where("state", "==", rule.source.value)
                .where(rule.field, "<=", rule.threshold(now))
                .stream()
            )
            matches.append((rule, list(docs)))

        batch = db.batch()
        for rule, docs in matches:
            entry = history_entry(rule.target, now, TransitionType.AUTOMATIC)
            for doc in docs:
                if update_count >= config.MAX_BATCH_WRITES:
                    deferred += 1
                    continue
                batch.update(doc.reference, _state_fields(rule.target, entry))
                counts[rule.name] += 1
                update_count += 1

        if update_count > 0:
            batch.commit()
            log_to_cloud(
                "lifecycle",
                "INFO",
                f"Successfully updated {update_count} events: {counts}",
                metadata={**counts, "deferred": deferred},
            )
        else:
            logger.info("No event states needed updating")

        if deferred:
            logger.warning(
                "Batch limit of %d reached; %d due events left for the next run",
                config.MAX_BATCH_WRITES, deferred,
            )

        return counts
    except Exception as e:
        logger.exception("Error updating event states: %s", e)
        raise


# ------------------------------
# Creation validator
# ------------------------------
def validate_event_creation(event_id: str, db=None, now: Optional[datetime] = None) -> Optional[EventLifecycleState]:
    """
    Give a freshly created event its initial state.

    Documents that already carry a state are left alone, so calling this
    more than once for the same event is harmless.  Returns the assigned
    state, or ``None`` when nothing was written.
    """
    if db is None:
        db = get_db()
    now = now or utc_now()
    event_ref = db.collection(config.EVENTS_COLLECTION).document(event_id)

    try:
        snapshot = event_ref.get()
        if not snapshot.exists:
            logger.warning("Event %s no longer exists; skipping initial state", event_id)
            return None

        data = snapshot.to_dict() or {}
        if data.get("state"):
            return None

        state = initial_state(data.get("published"))
        history = StateHistory().append(history_entry(state, now, TransitionType.CREATION))

        event_ref.update({
            "state": state.value,
            "stateUpdatedAt": now,
            "stateHistory": history.to_firestore(),
        })
        logger.info("Set initial state for event %s to %s", event_id, state.value)
        return state
    except Exception as e:
        logger.exception("Error in validateEventCreation for %s: %s", event_id, e)
        raise


# ------------------------------
# Manual transition
# ------------------------------
def transition_event_state(
    caller: Optional[dict],
    event_id: Any,
    target_state: Any,
    db=None,
    now: Optional[datetime] = None,
) -> TransitionResponse:
    """
    Move one event to ``target_state`` on behalf of ``caller``.

    Raises a :class:`~HIVE.core.errors.LifecycleError` subclass on any
    failure; all checks run before the single document write.
    """
    if not caller or not caller.get("user_id"):
        raise Unauthenticated("You must be logged in to transition event states")

    if not event_id or not target_state:
        raise InvalidArgument("Event ID and target state are required")

    if not isinstance(event_id, str) or not isinstance(target_state, str):
        raise InvalidArgument("Event ID and target state must be strings")

    target = parse_state(target_state)
    if target is None:
        raise InvalidArgument(
            f"Target state must be one of: {', '.join(EventLifecycleState.values())}"
        )

    user_id = caller["user_id"]

    try:
        if db is None:
            db = get_db()
        now = now or utc_now()

        role = get_user_role(db, user_id)

        event_ref = db.collection(config.EVENTS_COLLECTION).document(event_id)
        snapshot = event_ref.get()
        if not snapshot.exists:
            raise NotFound("Event not found")

        event = EventRecord.from_snapshot(snapshot)
        current = parse_state(event.state) if event.state else EventLifecycleState.DRAFT
        current_label = current.value if current else repr(event.state)

        allowed = can_transition(
            role=role,
            is_creator=event.created_by == user_id,
            current=current,
            target=target,
            start_date=event.start_date,
            now=now,
        )
        if not allowed:
            logger.warning(
                "Denied transition %s → %s on event %s for user=%s role=%s",
                current_label, target.value, event_id, user_id, role,
            )
            raise PermissionDenied("You do not have permission to make this state transition")

        entry = history_entry(target, now, TransitionType.MANUAL, updated_by=user_id)
        event_ref.update(_state_fields(target, entry))

        logger.info(
            "✅ Event %s transitioned %s → %s by user=%s",
            event_id, current_label, target.value, user_id,
        )
        return TransitionResponse(message=f"Event transitioned to {target.value}")

    except LifecycleError:
        raise
    except Exception as e:
        logger.exception("Error in transitionEventState: %s", e)
        raise Internal("An error occurred while transitioning the event state")
