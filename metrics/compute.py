"""Main metrics computation orchestration."""

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from db.models import Activity, Badge, User
from metrics.badges import check_and_award_badges, ensure_badge_catalog
from metrics.exceptions import InvalidPhysiologyError
from metrics.profile import get_user
from metrics.records import NewRecord, check_for_new_records, recalculate_all_records, user_records_lock
from metrics.trimp import calculate_trimp_if_possible

logger = logging.getLogger(__name__)


@dataclass
class ActivityProcessingResult:
    """What a freshly stored activity changed."""

    activity: Activity
    trimp: int | None
    new_records: list[NewRecord] = field(default_factory=list)
    new_badges: list[Badge] = field(default_factory=list)


def compute_activity_trimp(activity: Activity, user: User, force: bool = False) -> int | None:
    """Fill in the activity's TRIMP from its average HR and the user's profile.

    An existing TRIMP is kept unless force is set, so stored values stay
    frozen when the profile changes.

    Returns:
        The activity's TRIMP after the call (may be None)
    """
    if activity.trimp is not None and not force:
        return activity.trimp

    activity.trimp = calculate_trimp_if_possible(activity.avg_heart_rate, activity.duration, user)
    return activity.trimp


def process_new_activity(session: Session, activity: Activity) -> ActivityProcessingResult:
    """Run the engines for an activity that was just stored.

    Steps:
    1. Compute TRIMP when the user has a heart rate profile
    2. Check personal records
    3. Check badges

    Args:
        session: Database session
        activity: Activity already added to the session

    Returns:
        ActivityProcessingResult with the new records and badges
    """
    user = get_user(session, activity.user_id)

    compute_activity_trimp(activity, user)
    session.flush()

    with user_records_lock(activity.user_id):
        new_records = check_for_new_records(session, activity)
        session.commit()

    new_badges = check_and_award_badges(session, activity.user_id)

    return ActivityProcessingResult(
        activity=activity,
        trimp=activity.trimp,
        new_records=new_records,
        new_badges=new_badges,
    )


def backfill_trimp(session: Session, user_id: int, force: bool = False) -> dict:
    """Compute TRIMP for a user's activities.

    Args:
        session: Database session
        user_id: User to process
        force: If True, recompute activities that already have a TRIMP

    Returns:
        Dict with updated, skipped and errors counts
    """
    user = get_user(session, user_id)
    stats = {"updated": 0, "skipped": 0, "errors": []}

    activities = session.query(Activity).filter(Activity.user_id == user_id).all()
    for activity in activities:
        before = activity.trimp
        try:
            after = compute_activity_trimp(activity, user, force=force)
        except InvalidPhysiologyError as e:
            # Same profile for every activity, no point going on
            stats["errors"].append(f"User {user_id}: {e}")
            logger.warning("Skipping TRIMP backfill for user %s: %s", user_id, e)
            break

        if after != before:
            stats["updated"] += 1
        else:
            stats["skipped"] += 1

    session.commit()
    return stats


def run_full_computation(
    session: Session,
    user_id: int | None = None,
    force: bool = False,
) -> dict:
    """Run the complete metrics pipeline for one user or for everyone.

    Steps:
    1. Make sure the badge catalog exists
    2. Compute missing TRIMP values (all of them with force)
    3. Rebuild personal records
    4. Check badges

    Args:
        session: Database session
        user_id: Restrict to one user (default: all users)
        force: If True, recompute TRIMP that is already stored

    Returns:
        Dict with computation statistics
    """
    stats = {
        "users_processed": 0,
        "trimp_updated": 0,
        "records_created": 0,
        "badges_unlocked": 0,
        "errors": [],
    }

    ensure_badge_catalog(session)

    if user_id is None:
        user_ids = [uid for (uid,) in session.query(User.id).order_by(User.id).all()]
    else:
        user_ids = [get_user(session, user_id).id]

    for uid in user_ids:
        logger.info("Processing user %s", uid)

        trimp_stats = backfill_trimp(session, uid, force=force)
        stats["trimp_updated"] += trimp_stats["updated"]
        stats["errors"].extend(trimp_stats["errors"])

        stats["records_created"] += recalculate_all_records(session, uid)
        stats["badges_unlocked"] += len(check_and_award_badges(session, uid))
        stats["users_processed"] += 1

    logger.info(
        "Computation done: %d user(s), %d TRIMP updated, %d records, %d badges",
        stats["users_processed"],
        stats["trimp_updated"],
        stats["records_created"],
        stats["badges_unlocked"],
    )
    if stats["errors"]:
        logger.warning("%d error(s) occurred", len(stats["errors"]))

    return stats
