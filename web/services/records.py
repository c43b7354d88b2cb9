"""Personal records service."""

from typing import Any

from sqlalchemy.orm import Session

from db.models import PersonalRecord
from metrics.profile import get_user
from metrics.records import (
    NewRecord,
    format_record_type_name,
    get_current_records,
    get_recent_records,
    get_record_history,
    group_by_activity_type,
)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def record_to_dict(record: PersonalRecord) -> dict[str, Any]:
    """Serialize a record row for the API."""
    activity = record.activity
    return {
        "id": record.id,
        "record_type": record.record_type,
        "name": format_record_type_name(record.record_type),
        "activity_type": record.activity_type,
        "value": record.value,
        "unit": record.unit,
        "achieved_at": _iso(record.achieved_at),
        "previous_value": record.previous_value,
        "previous_achieved_at": _iso(record.previous_achieved_at),
        "is_current": record.is_current,
        "activity": {
            "id": activity.id,
            "date": _iso(activity.date),
            "distance": activity.distance,
            "duration": activity.duration,
        } if activity else None,
    }


def new_record_to_dict(record: NewRecord) -> dict[str, Any]:
    return {
        "record_type": record.record_type,
        "name": format_record_type_name(record.record_type),
        "activity_type": record.activity_type,
        "value": record.value,
        "unit": record.unit,
        "previous_value": record.previous_value,
        "previous_achieved_at": _iso(record.previous_achieved_at),
        "improvement": record.improvement,
    }


def get_records_overview(session: Session, user_id: int) -> dict[str, Any]:
    """Current records grouped by activity type, plus the recent ones."""
    get_user(session, user_id)

    grouped = group_by_activity_type(get_current_records(session, user_id))
    return {
        "by_activity_type": {
            activity_type: [record_to_dict(r) for r in records]
            for activity_type, records in grouped.items()
        },
        "recent": [record_to_dict(r) for r in get_recent_records(session, user_id)],
    }


def get_record_history_payload(
    session: Session,
    user_id: int,
    record_type: str,
    activity_type: str,
) -> list[dict[str, Any]]:
    get_user(session, user_id)
    return [record_to_dict(r) for r in get_record_history(session, user_id, record_type, activity_type)]
