# file: HIVE/EVENTS/listener.py
import logging

from HIVE.core import config
from HIVE.core.firebase import get_db
from .lifecycle import validate_event_creation

logger = logging.getLogger("events.listener")


def handle_event_changes(db, changes) -> int:
    """
    Run the creation validator for every ADDED change in a snapshot.

    A failing document is recorded and does not stop the rest of the
    snapshot.  Returns the number of events that received an initial state.
    """
    initialized = 0
    for change in changes:
        if change.type.name != "ADDED":
            continue
        event_id = change.document.id
        try:
            if validate_event_creation(event_id, db=db) is not None:
                initialized += 1
        except Exception:
            # validate_event_creation already logged the traceback
            logger.error("❌ Creation validator failed for event %s", event_id)
    return initialized


def start_creation_listener(db=None):
    """
    Watch the events collection and return the Firestore watch handle.

    The first snapshot lists every existing event as ADDED; events without a
    state from before the listener existed are initialized then.
    """
    if db is None:
        db = get_db()

    def on_snapshot(col_snapshot, changes, read_time):
        initialized = handle_event_changes(db, changes)
        if initialized:
            logger.info("Initialized state on %d new events (read_time=%s)", initialized, read_time)

    watch = db.collection(config.EVENTS_COLLECTION).on_snapshot(on_snapshot)
    logger.info("👂 Listening for new documents in %s", config.EVENTS_COLLECTION)
    return watch
