"""Personal record detection and history.

Records are kept per (user, record type, activity type) as an append-only
chain: beating a record flags the old row as no longer current and inserts a
new current row that remembers the value and date it replaced. The chain is
order dependent, so any rebuild replays activities chronologically.
"""

import logging
import threading
import weakref
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from db.models import Activity, PersonalRecord
from metrics.config import RECENT_RECORDS_DAYS
from metrics.profile import get_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordDefinition:
    """How to read a record metric from an activity and compare two values."""

    record_type: str
    unit: str
    name: str
    get_value: Callable[[Activity], float | None]
    is_better: Callable[[float, float], bool]


@dataclass
class NewRecord:
    """A record set by an activity."""

    record_type: str
    activity_type: str
    value: float
    unit: str
    previous_value: float | None
    previous_achieved_at: datetime | None
    improvement: float | None  # % over the previous value


def _greater(new_value: float, old_value: float) -> bool:
    return new_value > old_value


def _per_thousand(value: float | None) -> float | None:
    return value / 1000 if value else None


def _per_sixty(value: float | None) -> float | None:
    return value / 60 if value else None


RECORD_DEFINITIONS: tuple[RecordDefinition, ...] = (
    RecordDefinition("max_distance", "km", "Longest distance", lambda a: _per_thousand(a.distance), _greater),
    RecordDefinition("max_avg_speed", "km/h", "Best average speed", lambda a: a.avg_speed, _greater),
    RecordDefinition("max_speed", "km/h", "Top speed", lambda a: a.max_speed, _greater),
    RecordDefinition("max_trimp", "points", "Highest TRIMP", lambda a: a.trimp, _greater),
    RecordDefinition("max_elevation", "m", "Most elevation gain", lambda a: a.elevation_gain, _greater),
    RecordDefinition("longest_duration", "min", "Longest duration", lambda a: _per_sixty(a.duration), _greater),
    RecordDefinition("max_avg_heart_rate", "bpm", "Highest average heart rate", lambda a: a.avg_heart_rate, _greater),
    RecordDefinition("max_calories", "kcal", "Most calories", lambda a: a.calories, _greater),
)

_RECORD_NAMES = {definition.record_type: definition.name for definition in RECORD_DEFINITIONS}

# One lock per user while anyone holds it; entries vanish once released
_user_locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
_user_locks_guard = threading.Lock()


def user_records_lock(user_id: int) -> threading.Lock:
    """Return the lock serializing record writes for a user."""
    with _user_locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = threading.Lock()
            _user_locks[user_id] = lock
        return lock


def get_current_record(
    session: Session,
    user_id: int,
    record_type: str,
    activity_type: str,
) -> PersonalRecord | None:
    """Return the current record row for a combination, if any."""
    return (
        session.query(PersonalRecord)
        .filter_by(
            user_id=user_id,
            record_type=record_type,
            activity_type=activity_type,
            is_current=True,
        )
        .first()
    )


def check_for_new_records(session: Session, activity: Activity) -> list[NewRecord]:
    """Check whether an activity sets new personal records.

    For each record definition with a positive value on the activity, the
    activity becomes the current record when no record exists yet or when it
    strictly beats the current one. Changes are flushed, not committed.
    Each definition is written in its own savepoint; if another writer
    already stored a current record for the same combination, that
    definition is skipped.

    Args:
        session: Database session
        activity: Persisted activity (needs id, user_id, activity_type, date)

    Returns:
        List of records the activity established
    """
    new_records = []

    for definition in RECORD_DEFINITIONS:
        value = definition.get_value(activity)
        if value is None or value <= 0:
            continue
        value = float(value)

        current = get_current_record(session, activity.user_id, definition.record_type, activity.activity_type)

        previous_value = None
        previous_achieved_at = None

        if current is not None:
            if not definition.is_better(value, current.value):
                continue

            previous_value = current.value
            previous_achieved_at = current.achieved_at

        try:
            with session.begin_nested():
                if current is not None:
                    # Retire the old record before inserting its successor
                    current.is_current = False
                    session.flush()

                session.add(
                    PersonalRecord(
                        user_id=activity.user_id,
                        activity_id=activity.id,
                        record_type=definition.record_type,
                        activity_type=activity.activity_type,
                        value=value,
                        unit=definition.unit,
                        achieved_at=activity.date,
                        previous_value=previous_value,
                        previous_achieved_at=previous_achieved_at,
                        is_current=True,
                    )
                )
                session.flush()
        except IntegrityError:
            logger.info(
                "Skipping %s record for activity %s: a current %s record was written concurrently",
                definition.record_type,
                activity.id,
                activity.activity_type,
            )
            continue

        improvement = None
        if previous_value:
            improvement = (value - previous_value) / previous_value * 100

        new_records.append(
            NewRecord(
                record_type=definition.record_type,
                activity_type=activity.activity_type,
                value=value,
                unit=definition.unit,
                previous_value=previous_value,
                previous_achieved_at=previous_achieved_at,
                improvement=improvement,
            )
        )

    if new_records:
        logger.info(
            "Activity %s set %d personal record(s): %s",
            activity.id,
            len(new_records),
            ", ".join(r.record_type for r in new_records),
        )

    return new_records


def _chronological_key(activity: Activity) -> tuple:
    return (activity.date, activity.id)


def replay_records(session: Session, activities: Sequence[Activity]) -> int:
    """Feed activities through check_for_new_records in the given order.

    The record chain only matches real-time processing when activities are
    replayed oldest first, so unsorted input is rejected.

    Returns:
        Number of records created

    Raises:
        ValueError: if activities are not in ascending (date, id) order
    """
    for earlier, later in zip(activities, activities[1:]):
        if _chronological_key(later) < _chronological_key(earlier):
            raise ValueError(
                f"Activities must be replayed chronologically: activity {later.id} ({later.date}) "
                f"comes after activity {earlier.id} ({earlier.date})"
            )

    total = 0
    for activity in activities:
        total += len(check_for_new_records(session, activity))
    return total


def recalculate_all_records(session: Session, user_id: int) -> int:
    """Rebuild a user's record chains from scratch.

    Deletes every record of the user and replays all activities oldest
    first, inside one transaction. Calls for the same user are serialized.

    Returns:
        Number of records created
    """
    get_user(session, user_id)

    with user_records_lock(user_id):
        try:
            session.query(PersonalRecord).filter(PersonalRecord.user_id == user_id).delete()

            activities = session.query(Activity).filter(Activity.user_id == user_id).all()
            activities.sort(key=_chronological_key)

            total = replay_records(session, activities)
            session.commit()
        except Exception:
            session.rollback()
            raise

    logger.info("Recalculated personal records for user %s: %d records from %d activities", user_id, total, len(activities))
    return total


def get_current_records(session: Session, user_id: int) -> list[PersonalRecord]:
    """All current records of a user, ordered by activity type then record type."""
    return (
        session.query(PersonalRecord)
        .options(joinedload(PersonalRecord.activity))
        .filter(PersonalRecord.user_id == user_id)
        .filter(PersonalRecord.is_current.is_(True))
        .order_by(PersonalRecord.activity_type, PersonalRecord.record_type)
        .all()
    )


def get_records_by_activity_type(session: Session, user_id: int, activity_type: str) -> list[PersonalRecord]:
    """Current records of a user for one activity type."""
    return (
        session.query(PersonalRecord)
        .options(joinedload(PersonalRecord.activity))
        .filter(PersonalRecord.user_id == user_id)
        .filter(PersonalRecord.activity_type == activity_type)
        .filter(PersonalRecord.is_current.is_(True))
        .order_by(PersonalRecord.record_type)
        .all()
    )


def get_record_history(
    session: Session,
    user_id: int,
    record_type: str,
    activity_type: str,
) -> list[PersonalRecord]:
    """Full chain of a record, newest first."""
    return (
        session.query(PersonalRecord)
        .options(joinedload(PersonalRecord.activity))
        .filter(PersonalRecord.user_id == user_id)
        .filter(PersonalRecord.record_type == record_type)
        .filter(PersonalRecord.activity_type == activity_type)
        .order_by(PersonalRecord.achieved_at.desc(), PersonalRecord.id.desc())
        .all()
    )


def get_recent_records(
    session: Session,
    user_id: int,
    days: int = RECENT_RECORDS_DAYS,
    now: datetime | None = None,
) -> list[PersonalRecord]:
    """Current records achieved within the last `days` days, newest first."""
    cutoff = (now or datetime.now()) - timedelta(days=days)
    return (
        session.query(PersonalRecord)
        .options(joinedload(PersonalRecord.activity))
        .filter(PersonalRecord.user_id == user_id)
        .filter(PersonalRecord.is_current.is_(True))
        .filter(PersonalRecord.achieved_at >= cutoff)
        .order_by(PersonalRecord.achieved_at.desc())
        .all()
    )


def format_record_type_name(record_type: str) -> str:
    """Human readable name of a record type (falls back to the raw type)."""
    return _RECORD_NAMES.get(record_type, record_type)


def group_by_activity_type(records: Iterable[PersonalRecord]) -> dict[str, list[PersonalRecord]]:
    grouped: dict[str, list[PersonalRecord]] = defaultdict(list)
    for record in records:
        grouped[record.activity_type].append(record)
    return dict(grouped)
