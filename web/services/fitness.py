"""Fitness and training load query services."""

import logging
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Sequence

from sqlalchemy.orm import Session

from db.models import Activity
from metrics.profile import get_user, has_heart_rate_profile
from metrics.training_load import get_training_load
from metrics.utils import round_half_up
from metrics.zones import (
    SOURCE_AVERAGE,
    SOURCE_NONE,
    SOURCE_SAMPLES,
    build_polarization_summary,
    build_zones,
    calculate_zone_durations,
)

logger = logging.getLogger(__name__)


def get_training_load_payload(session: Session, user_id: int, days: int = 90) -> dict:
    """Training load history and current form, as plain dicts for JSON."""
    load = get_training_load(session, user_id, days=days)
    return {
        "history": [asdict(point) for point in load.history],
        "current": asdict(load.current) if load.current else None,
    }


def _zone_buckets(zones, durations: Sequence[float], total: float) -> list[dict]:
    return [
        {
            "zone": zone.zone,
            "name": zone.name,
            "color": zone.color,
            "min_hr": zone.min_hr,
            "max_hr": zone.max_hr,
            "seconds": seconds,
            "percentage": round_half_up(seconds / total * 100, 1) if total > 0 else 0.0,
        }
        for zone, seconds in zip(zones, durations)
    ]


def get_zone_distribution(
    session: Session,
    user_id: int,
    days: int = 30,
    activity_types: Sequence[str] | None = None,
    now: datetime | None = None,
) -> dict:
    """Time in heart rate zones over the last `days` days.

    Returns a dict with:
        - zones: the user's zone table
        - activities: per-activity seconds and percentage per zone, dominant zone, source
        - aggregated: zone totals across all activities
        - polarization: low/moderate/high split against 80/10/10
        - sampling: activity counts by source
        - total_seconds

    An athlete without fc_max/fc_repos gets an empty distribution.
    """
    user = get_user(session, user_id)

    empty = {
        "zones": [],
        "activities": [],
        "aggregated": [],
        "polarization": build_polarization_summary([]),
        "sampling": {SOURCE_SAMPLES: 0, SOURCE_AVERAGE: 0, SOURCE_NONE: 0},
        "total_seconds": 0.0,
    }
    if not has_heart_rate_profile(user):
        return empty

    zones = build_zones(user.fc_max, user.fc_repos)
    empty["zones"] = [asdict(zone) for zone in zones]

    cutoff = (now or datetime.now()) - timedelta(days=days)
    query = (
        session.query(Activity)
        .filter(Activity.user_id == user_id)
        .filter(Activity.date >= cutoff)
    )
    if activity_types:
        query = query.filter(Activity.activity_type.in_(list(activity_types)))
    activities = query.order_by(Activity.date.desc()).all()

    totals = [0.0] * len(zones)
    sampling = dict(empty["sampling"])
    per_activity = []

    for activity in activities:
        result = calculate_zone_durations(activity, zones)
        sampling[result.source] += 1
        if result.source == SOURCE_NONE:
            continue

        for index, seconds in enumerate(result.durations):
            totals[index] += seconds

        dominant = max(range(len(zones)), key=lambda i: result.durations[i])
        per_activity.append(
            {
                "activity_id": activity.id,
                "date": activity.date.isoformat(),
                "activity_type": activity.activity_type,
                "source": result.source,
                "total_seconds": result.total_seconds,
                "dominant_zone": zones[dominant].zone,
                "zones": _zone_buckets(zones, result.durations, result.total_seconds),
            }
        )

    total_seconds = sum(totals)
    aggregated = _zone_buckets(zones, totals, total_seconds)

    logger.debug(
        "Zone distribution for user %s: %d activities, sampling %s",
        user_id,
        len(activities),
        sampling,
    )

    return {
        "zones": empty["zones"],
        "activities": per_activity,
        "aggregated": aggregated,
        "polarization": build_polarization_summary(aggregated),
        "sampling": sampling,
        "total_seconds": total_seconds,
    }
