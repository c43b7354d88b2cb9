"""Activity comparison, performance prediction and fatigue analysis."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Sequence

from sqlalchemy.orm import Session

from db.models import Activity
from metrics.config import (
    MIN_ACTIVITIES_FOR_PREDICTION,
    PREDICTION_DISTANCE_TOLERANCE,
    PREDICTION_HISTORY_LIMIT,
)
from metrics.exceptions import ActivityNotFoundError, InsufficientDataError
from metrics.utils import round_half_up

logger = logging.getLogger(__name__)


@dataclass
class SimilarActivity:
    activity: Activity
    similarity_score: float
    comparison: dict


@dataclass
class PerformancePrediction:
    predicted_time: int  # seconds
    predicted_avg_speed: float  # km/h
    predicted_avg_hr: int
    predicted_trimp: int
    confidence: int  # %
    based_on: int


@dataclass
class FatigueAnalysis:
    status: str  # fresh, normal, tired, overreached, critical
    risk_level: int  # 0-100
    indicators: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    ctl_trend: float = 0.0
    atl_trend: float = 0.0
    tsb_trend: float = 0.0


def calculate_trend(values: Sequence[float]) -> float:
    """Least-squares slope of values over their index, normalized by the mean.

    Returns 0 for fewer than 2 values or a zero mean.
    """
    n = len(values)
    if n < 2:
        return 0.0

    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_x2 = sum(i * i for i in range(n))

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    mean = sum_y / n
    return slope / mean if mean != 0 else 0.0


def _relative_diff(target: float | None, candidate: float | None) -> float | None:
    if not target or not candidate:
        return None
    return abs(target - candidate) / target


def calculate_similarity_score(target: Activity, candidate: Activity) -> float:
    """Score 0-100, weighted 40% distance, 30% duration, 20% elevation, 10% sub-sport."""
    score = 100.0

    for target_value, candidate_value, weight in (
        (target.distance, candidate.distance, 40),
        (target.duration, candidate.duration, 30),
        (target.elevation_gain, candidate.elevation_gain, 20),
    ):
        diff = _relative_diff(target_value, candidate_value)
        if diff is not None:
            score -= diff * weight

    if target.sub_sport != candidate.sub_sport:
        score -= 10

    return max(0.0, score)


def _diff(target: float | None, candidate: float | None) -> float:
    if target and candidate:
        return candidate - target
    return 0.0


def calculate_comparison(target: Activity, candidate: Activity) -> dict:
    """Signed differences candidate - target (0 when either side is missing)."""
    return {
        "distance_diff": _diff(target.distance, candidate.distance),
        "duration_diff": _diff(target.duration, candidate.duration),
        "speed_diff": _diff(target.avg_speed, candidate.avg_speed),
        "hr_diff": _diff(target.avg_heart_rate, candidate.avg_heart_rate),
        "elevation_diff": _diff(target.elevation_gain, candidate.elevation_gain),
        "trimp_diff": _diff(target.trimp, candidate.trimp),
    }


def find_similar_activities(
    session: Session,
    activity_id: int,
    user_id: int,
    limit: int = 5,
) -> list[SimilarActivity]:
    """Find the user's activities of the same type that most resemble one activity.

    Raises:
        ActivityNotFoundError: if the activity does not exist for this user
    """
    target = session.query(Activity).filter_by(id=activity_id, user_id=user_id).first()
    if target is None:
        raise ActivityNotFoundError(f"Activity {activity_id} not found")

    candidates = (
        session.query(Activity)
        .filter(Activity.user_id == user_id)
        .filter(Activity.activity_type == target.activity_type)
        .filter(Activity.id != activity_id)
        .order_by(Activity.date.desc())
        .all()
    )

    similarities = [
        SimilarActivity(
            activity=candidate,
            similarity_score=calculate_similarity_score(target, candidate),
            comparison=calculate_comparison(target, candidate),
        )
        for candidate in candidates
    ]

    similarities.sort(key=lambda s: s.similarity_score, reverse=True)
    return similarities[:limit]


def _extrapolate_performance(activities: Sequence[Activity], target_distance: float) -> PerformancePrediction:
    """Linear regression of duration over distance across all activities."""
    points = [(a.distance, a.duration) for a in activities if a.distance and a.duration]
    if len(points) < MIN_ACTIVITIES_FOR_PREDICTION:
        raise InsufficientDataError(
            "Not enough activities with distance and duration",
            MIN_ACTIVITIES_FOR_PREDICTION,
            len(points),
        )

    n = len(points)
    sum_x = sum(x for x, _ in points)
    sum_y = sum(y for _, y in points)
    sum_xy = sum(x * y for x, y in points)
    sum_x2 = sum(x * x for x, _ in points)

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        raise InsufficientDataError(
            "All activities share the same distance, cannot extrapolate",
            MIN_ACTIVITIES_FOR_PREDICTION,
            n,
        )

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    predicted_time = int(round_half_up(slope * target_distance + intercept))
    predicted_speed = (target_distance / 1000) / (predicted_time / 3600) if predicted_time > 0 else 0.0

    heart_rates = [a.avg_heart_rate for a in activities if a.avg_heart_rate]
    avg_hr = sum(heart_rates) / len(heart_rates) if heart_rates else 0.0

    total_hours = sum((a.duration or 0) / 3600 for a in activities)
    trimp_per_hour = sum(a.trimp or 0 for a in activities) / total_hours if total_hours else 0.0

    return PerformancePrediction(
        predicted_time=predicted_time,
        predicted_avg_speed=round_half_up(predicted_speed, 1),
        predicted_avg_hr=int(round_half_up(avg_hr)),
        predicted_trimp=int(round_half_up(trimp_per_hour * predicted_time / 3600)),
        confidence=60,
        based_on=len(activities),
    )


def predict_performance(
    session: Session,
    user_id: int,
    activity_type: str,
    target_distance: float,
) -> PerformancePrediction:
    """Predict time, speed, heart rate and TRIMP for a target distance (meters).

    Uses a recency-weighted average over recent activities within ±30% of the
    target distance, scaled to the target. With fewer than 2 such activities
    it extrapolates with a linear regression over all recent activities.

    Raises:
        InsufficientDataError: with fewer than 3 usable activities
    """
    if target_distance <= 0:
        raise ValueError(f"target_distance must be positive, got {target_distance}")

    activities = (
        session.query(Activity)
        .filter(Activity.user_id == user_id)
        .filter(Activity.activity_type == activity_type)
        .filter(Activity.distance.isnot(None))
        .filter(Activity.duration.isnot(None))
        .order_by(Activity.date.desc())
        .limit(PREDICTION_HISTORY_LIMIT)
        .all()
    )

    if len(activities) < MIN_ACTIVITIES_FOR_PREDICTION:
        raise InsufficientDataError(
            f"Not enough {activity_type} activities for a reliable prediction",
            MIN_ACTIVITIES_FOR_PREDICTION,
            len(activities),
        )

    low = 1 - PREDICTION_DISTANCE_TOLERANCE
    high = 1 + PREDICTION_DISTANCE_TOLERANCE
    relevant = [a for a in activities if a.distance and low <= a.distance / target_distance <= high]

    if len(relevant) < 2:
        logger.debug("Only %d activities near %.0f m, extrapolating", len(relevant), target_distance)
        return _extrapolate_performance(activities, target_distance)

    total_weight = weighted_time = weighted_speed = weighted_hr = weighted_trimp = 0.0
    for index, activity in enumerate(relevant):
        weight = 1 / (index + 1)  # most recent first
        scale = target_distance / activity.distance

        total_weight += weight
        weighted_time += (activity.duration or 0) * scale * weight
        weighted_speed += (activity.avg_speed or 0) * weight
        weighted_hr += (activity.avg_heart_rate or 0) * weight
        weighted_trimp += (activity.trimp or 0) * scale * weight

    return PerformancePrediction(
        predicted_time=int(round_half_up(weighted_time / total_weight)),
        predicted_avg_speed=round_half_up(weighted_speed / total_weight, 1),
        predicted_avg_hr=int(round_half_up(weighted_hr / total_weight)),
        predicted_trimp=int(round_half_up(weighted_trimp / total_weight)),
        confidence=min(95, 50 + len(relevant) * 5),
        based_on=len(relevant),
    )


def analyze_fatigue(session: Session, user_id: int, now: datetime | None = None) -> FatigueAnalysis:
    """Score overtraining risk from the last 30 days of activities."""
    now = now or datetime.now()
    thirty_days_ago = now - timedelta(days=30)
    seven_days_ago = now - timedelta(days=7)

    recent = (
        session.query(Activity)
        .filter(Activity.user_id == user_id)
        .filter(Activity.date >= thirty_days_ago)
        .order_by(Activity.date.desc())
        .all()
    )

    indicators = []
    risk = 0

    last_7_days = [a for a in recent if a.date >= seven_days_ago]
    avg_per_week = len(recent) / 30 * 7

    # Volume
    if len(last_7_days) > avg_per_week * 1.5:
        indicators.append("Significant increase in volume")
        risk += 20

    # Intensity
    avg_trimp_7 = sum(a.trimp or 0 for a in last_7_days) / max(len(last_7_days), 1)
    avg_trimp_30 = sum(a.trimp or 0 for a in recent) / max(len(recent), 1)
    if avg_trimp_7 > avg_trimp_30 * 1.3:
        indicators.append("Average intensity rising")
        risk += 15

    # Recovery
    if recent:
        days_since_last = (now - recent[0].date).total_seconds() / 86400
        if days_since_last < 1 and len(last_7_days) > 5:
            indicators.append("No recent rest day")
            risk += 25

    trimp_trend = calculate_trend([a.trimp or 0 for a in recent])
    if trimp_trend > 0.2:
        indicators.append("Load increasing quickly")
        risk += 15

    speed_trend = calculate_trend([a.avg_speed or 0 for a in recent])
    hr_trend = calculate_trend([a.avg_heart_rate or 0 for a in recent])
    if speed_trend < -0.1 and hr_trend > 0.1:
        indicators.append("Performance dropping despite higher effort")
        risk += 30

    if risk >= 80:
        status = "critical"
        recommendations = [
            "Complete rest recommended for 3-5 days",
            "See a health professional if fatigue persists",
        ]
    elif risk >= 60:
        status = "overreached"
        recommendations = ["Reduce intensity by 30-40%", "Add more rest days"]
    elif risk >= 40:
        status = "tired"
        recommendations = ["Plan a recovery week", "Favor low intensity sessions"]
    elif risk >= 20:
        status = "normal"
        recommendations = ["Keep your current rhythm", "Watch for signs of fatigue"]
    else:
        status = "fresh"
        recommendations = ["You can increase intensity gradually", "Good time for quality sessions"]

    return FatigueAnalysis(
        status=status,
        risk_level=min(100, risk),
        indicators=indicators,
        recommendations=recommendations,
        ctl_trend=trimp_trend,
        atl_trend=calculate_trend([a.trimp or 0 for a in last_7_days]),
        tsb_trend=speed_trend - hr_trend,
    )
