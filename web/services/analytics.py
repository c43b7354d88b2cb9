"""Analytics service: serializers for comparison, prediction and fatigue."""

from dataclasses import asdict
from typing import Any

from sqlalchemy.orm import Session

from metrics.analytics import (
    analyze_fatigue,
    find_similar_activities,
    predict_performance,
)
from metrics.profile import get_user
from metrics.utils import round_half_up


def get_similar_activities_payload(
    session: Session,
    user_id: int,
    activity_id: int,
    limit: int = 5,
) -> list[dict[str, Any]]:
    get_user(session, user_id)

    results = []
    for similar in find_similar_activities(session, activity_id, user_id, limit=limit):
        activity = similar.activity
        results.append(
            {
                "activity": {
                    "id": activity.id,
                    "date": activity.date.isoformat(),
                    "activity_type": activity.activity_type,
                    "sub_sport": activity.sub_sport,
                    "distance": activity.distance,
                    "duration": activity.duration,
                    "avg_speed": activity.avg_speed,
                    "avg_heart_rate": activity.avg_heart_rate,
                    "elevation_gain": activity.elevation_gain,
                    "trimp": activity.trimp,
                },
                "similarity_score": round_half_up(similar.similarity_score, 1),
                "comparison": similar.comparison,
            }
        )
    return results


def get_prediction_payload(
    session: Session,
    user_id: int,
    activity_type: str,
    target_distance: float,
) -> dict[str, Any]:
    get_user(session, user_id)
    return asdict(predict_performance(session, user_id, activity_type, target_distance))


def get_fatigue_payload(session: Session, user_id: int) -> dict[str, Any]:
    get_user(session, user_id)
    return asdict(analyze_fatigue(session, user_id))
