"""Badge unlocking and progress."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models import Activity, Badge, UserBadge
from metrics.badge_catalog import DEFAULT_BADGES
from metrics.profile import get_user
from metrics.utils import round_half_up

logger = logging.getLogger(__name__)


class BadgeCondition(str, Enum):
    """Kinds of badge unlock conditions."""
    TOTAL_DISTANCE = "total_distance"
    TOTAL_ACTIVITIES = "total_activities"
    TOTAL_ELEVATION = "total_elevation"
    TOTAL_TIME = "total_time"
    CONSECUTIVE_DAYS = "consecutive_days"
    SPECIAL = "special"


@dataclass
class ActivityStats:
    """Aggregates of a user's activities, computed once per evaluation."""

    total_distance: float = 0.0  # meters
    total_activities: int = 0
    total_elevation: float = 0.0  # meters
    total_time: float = 0.0  # seconds
    activity_days: set[date] = field(default_factory=set)
    today: date = field(default_factory=date.today)


@dataclass
class BadgeEvaluation:
    unlocked: bool
    current_value: float | None


@dataclass
class BadgeProgress:
    """Badge status for one user."""

    badge: Badge
    unlocked: bool
    unlocked_at: datetime | None
    progress: int  # 0-100
    current_value: float | None
    target_value: float | None


@dataclass(frozen=True)
class SpecialPredicate:
    """One-off badge rule keyed by badge code."""

    current_value: Callable[[ActivityStats], float]
    is_unlocked: Callable[[float], bool]


SPECIAL_PREDICATES: dict[str, SpecialPredicate] = {
    "special_first_activity": SpecialPredicate(
        current_value=lambda stats: stats.total_activities,
        is_unlocked=lambda count: count >= 1,
    ),
}


def count_consecutive_days(activity_days: Iterable[date], today: date) -> int:
    """Length of the activity streak ending today.

    Walks backward one day at a time from today, or from yesterday when
    today has no activity yet, while each day has at least one activity.
    """
    days = set(activity_days)
    cursor = today if today in days else today - timedelta(days=1)

    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def load_activity_stats(session: Session, user_id: int, today: date | None = None) -> ActivityStats:
    """Aggregate a user's activities for badge evaluation."""
    count, distance, elevation, duration = (
        session.query(
            func.count(Activity.id),
            func.coalesce(func.sum(Activity.distance), 0),
            func.coalesce(func.sum(Activity.elevation_gain), 0),
            func.coalesce(func.sum(Activity.duration), 0),
        )
        .filter(Activity.user_id == user_id)
        .one()
    )

    dates = session.query(Activity.date).filter(Activity.user_id == user_id).all()

    return ActivityStats(
        total_distance=float(distance),
        total_activities=int(count),
        total_elevation=float(elevation),
        total_time=float(duration),
        activity_days={value.date() for (value,) in dates if value is not None},
        today=today or date.today(),
    )


def _meets_threshold(badge: Badge, value: float) -> BadgeEvaluation:
    threshold = badge.condition_value
    return BadgeEvaluation(unlocked=bool(threshold) and value >= threshold, current_value=value)


def _evaluate_special(badge: Badge, stats: ActivityStats) -> BadgeEvaluation:
    predicate = SPECIAL_PREDICATES.get(badge.code)
    if predicate is None:
        return BadgeEvaluation(unlocked=False, current_value=None)

    value = predicate.current_value(stats)
    return BadgeEvaluation(unlocked=predicate.is_unlocked(value), current_value=value)


_EVALUATORS: dict[BadgeCondition, Callable[[Badge, ActivityStats], BadgeEvaluation]] = {
    BadgeCondition.TOTAL_DISTANCE: lambda b, s: _meets_threshold(b, s.total_distance),
    BadgeCondition.TOTAL_ACTIVITIES: lambda b, s: _meets_threshold(b, s.total_activities),
    BadgeCondition.TOTAL_ELEVATION: lambda b, s: _meets_threshold(b, s.total_elevation),
    BadgeCondition.TOTAL_TIME: lambda b, s: _meets_threshold(b, s.total_time),
    BadgeCondition.CONSECUTIVE_DAYS: lambda b, s: _meets_threshold(
        b, count_consecutive_days(s.activity_days, s.today)
    ),
    BadgeCondition.SPECIAL: _evaluate_special,
}

_missing = set(BadgeCondition) - set(_EVALUATORS)
if _missing:
    raise RuntimeError(f"No evaluator for badge conditions: {sorted(c.value for c in _missing)}")


def evaluate_badge(badge: Badge, stats: ActivityStats) -> BadgeEvaluation:
    """Evaluate a badge's unlock condition against activity aggregates."""
    try:
        condition = BadgeCondition(badge.condition_type)
    except ValueError:
        logger.warning("Badge %s has unknown condition type %r", badge.code, badge.condition_type)
        return BadgeEvaluation(unlocked=False, current_value=None)

    return _EVALUATORS[condition](badge, stats)


def compute_progress(current_value: float | None, target_value: float | None) -> int:
    """Progress towards a target as a percentage capped at 100."""
    if not target_value or current_value is None:
        return 0
    return int(min(100, round_half_up(current_value / target_value * 100)))


def check_and_award_badges(
    session: Session,
    user_id: int,
    today: date | None = None,
    now: datetime | None = None,
) -> list[Badge]:
    """Unlock every badge whose condition the user now meets.

    Badges already unlocked are never re-evaluated. Each unlock is committed
    on its own; a duplicate unlock rejected by the (user_id, badge_id)
    constraint is skipped silently.

    Returns:
        Badges unlocked by this call
    """
    get_user(session, user_id)

    badges = session.query(Badge).order_by(Badge.sort_order, Badge.id).all()
    unlocked_ids = {
        badge_id
        for (badge_id,) in session.query(UserBadge.badge_id).filter(UserBadge.user_id == user_id).all()
    }

    pending = [badge for badge in badges if badge.id not in unlocked_ids]
    if not pending:
        return []

    stats = load_activity_stats(session, user_id, today)
    unlocked_at = now or datetime.now()

    newly_unlocked = []
    for badge in pending:
        evaluation = evaluate_badge(badge, stats)
        if not evaluation.unlocked:
            continue

        session.add(
            UserBadge(
                user_id=user_id,
                badge_id=badge.id,
                unlocked_at=unlocked_at,
                value_at_unlock=evaluation.current_value,
            )
        )
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.info("Badge %s already unlocked for user %s", badge.code, user_id)
            continue

        newly_unlocked.append(badge)

    if newly_unlocked:
        logger.info(
            "User %s unlocked %d badge(s): %s",
            user_id,
            len(newly_unlocked),
            ", ".join(b.code for b in newly_unlocked),
        )

    return newly_unlocked


def get_user_badges_with_progress(
    session: Session,
    user_id: int,
    today: date | None = None,
) -> list[BadgeProgress]:
    """Every catalog badge with the user's unlock state and progress.

    Unlocked badges report 100% and the value recorded at unlock time;
    locked badges are evaluated against the current activity aggregates.
    """
    get_user(session, user_id)

    badges = session.query(Badge).order_by(Badge.category, Badge.level, Badge.sort_order).all()
    user_badges = {
        ub.badge_id: ub
        for ub in session.query(UserBadge).filter(UserBadge.user_id == user_id).all()
    }

    stats = None
    result = []
    for badge in badges:
        user_badge = user_badges.get(badge.id)

        if user_badge is not None:
            result.append(
                BadgeProgress(
                    badge=badge,
                    unlocked=True,
                    unlocked_at=user_badge.unlocked_at,
                    progress=100,
                    current_value=user_badge.value_at_unlock,
                    target_value=badge.condition_value,
                )
            )
            continue

        if stats is None:
            stats = load_activity_stats(session, user_id, today)

        evaluation = evaluate_badge(badge, stats)
        result.append(
            BadgeProgress(
                badge=badge,
                unlocked=False,
                unlocked_at=None,
                progress=compute_progress(evaluation.current_value, badge.condition_value),
                current_value=evaluation.current_value,
                target_value=badge.condition_value,
            )
        )

    return result


def ensure_badge_catalog(session: Session, catalog: list[dict] | None = None) -> int:
    """Insert catalog badges that are not in the database yet.

    Returns:
        Number of badges added
    """
    if catalog is None:
        catalog = DEFAULT_BADGES

    existing = {code for (code,) in session.query(Badge.code).all()}

    added = 0
    for sort_order, entry in enumerate(catalog):
        if entry["code"] in existing:
            continue
        session.add(Badge(sort_order=sort_order, **entry))
        added += 1

    if added:
        session.commit()
        logger.info("Added %d badge(s) to the catalog", added)

    return added
