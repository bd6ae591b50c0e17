# file: HIVE/scripts/fix_event_dates.py
"""
Convert event date fields stored as strings, epoch millis or raw
``{seconds, nanoseconds}`` maps into real Firestore timestamps.

The state advancer compares ``startDate`` / ``endDate`` against timestamps;
events holding any other type never match its queries and stay stuck.

Usage:
    python -m HIVE.scripts.fix_event_dates [--dry-run]
"""

import argparse
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dateutil import parser as date_parser

from HIVE.core import config
from HIVE.core.firebase import get_db
from HIVE.core.logger import setup_logging

logger = logging.getLogger("scripts.fix_event_dates")

DATE_FIELDS = ("startDate", "endDate", "lastModified", "stateUpdatedAt")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_date(value: Any) -> Optional[datetime]:
    """Best-effort conversion of a stored date value; ``None`` if unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    try:
        if isinstance(value, (int, float)):
            # milliseconds since the epoch
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        if isinstance(value, dict) and "seconds" in value and "nanoseconds" in value:
            return datetime.fromtimestamp(
                value["seconds"] + value["nanoseconds"] / 1_000_000_000, tz=timezone.utc
            )
    except (ValueError, OverflowError, OSError, TypeError):
        return None
    if isinstance(value, str):
        try:
            # month-first for slash dates: 04/15/2024
            return _as_utc(date_parser.parse(value, dayfirst=False))
        except (ValueError, OverflowError):
            return None
    return None


def normalize_event(event_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Return the field updates needed to fix ``data``; empty if none."""
    updates = {}

    for field in DATE_FIELDS:
        value = data.get(field)
        if value is None or isinstance(value, datetime):
            continue
        parsed = parse_date(value)
        if parsed is None:
            logger.warning("❌ Could not parse %s for event %s: %r", field, event_id, value)
            continue
        updates[field] = parsed

    history = data.get("stateHistory")
    if isinstance(history, list):
        changed = False
        fixed_history = []
        for entry in history:
            if isinstance(entry, dict):
                entry = dict(entry)
                ts = entry.get("timestamp")
                if ts is not None and not isinstance(ts, datetime):
                    parsed = parse_date(ts)
                    if parsed is None:
                        logger.warning("❌ Could not parse history timestamp for event %s: %r", event_id, ts)
                    else:
                        entry["timestamp"] = parsed
                        changed = True
            fixed_history.append(entry)
        if changed:
            updates["stateHistory"] = fixed_history

    return updates


def fix_event_dates(db=None, dry_run: bool = False) -> Dict[str, int]:
    if db is None:
        db = get_db()

    stats = {"processed": 0, "fixed": 0, "failed": 0}
    logger.info("📋 Fetching all events from %s...", config.EVENTS_COLLECTION)

    for doc in db.collection(config.EVENTS_COLLECTION).stream():
        stats["processed"] += 1
        try:
            updates = normalize_event(doc.id, doc.to_dict() or {})
            if not updates:
                continue

            if dry_run:
                logger.info("Would fix %s on event %s", sorted(updates), doc.id)
                stats["fixed"] += 1
                continue

            doc.reference.update(updates)
            stats["fixed"] += 1
            logger.info("✅ Fixed dates for event %s", doc.id)
        except Exception as e:
            stats["failed"] += 1
            logger.error("❌ Error fixing event %s: %s", doc.id, e)

    logger.info(
        "📊 Summary: fixed %d/%d events (%d failed)",
        stats["fixed"], stats["processed"], stats["failed"],
    )
    return stats


def main(argv=None):
    parser = argparse.ArgumentParser(description="Normalize event date fields to Firestore timestamps")
    parser.add_argument("--dry-run", action="store_true", help="report changes without writing them")
    args = parser.parse_args(argv)

    setup_logging()
    stats = fix_event_dates(dry_run=args.dry_run)
    print(stats)
    return 0 if stats["failed"] == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
