"""Badge service."""

from typing import Any

from sqlalchemy.orm import Session

from db.models import Badge
from metrics.badges import BadgeProgress, get_user_badges_with_progress
from metrics.utils import round_half_up


def badge_to_dict(badge: Badge) -> dict[str, Any]:
    return {
        "id": badge.id,
        "code": badge.code,
        "name": badge.name,
        "description": badge.description,
        "icon": badge.icon,
        "category": badge.category,
        "level": badge.level,
    }


def progress_to_dict(progress: BadgeProgress) -> dict[str, Any]:
    return {
        **badge_to_dict(progress.badge),
        "unlocked": progress.unlocked,
        "unlocked_at": progress.unlocked_at.isoformat() if progress.unlocked_at else None,
        "progress": progress.progress,
        "current_value": progress.current_value,
        "target_value": progress.target_value,
    }


def get_badges_overview(session: Session, user_id: int) -> dict[str, Any]:
    """Badges split into unlocked and locked, with completion stats.

    Locked badges are listed closest to unlocking first.
    """
    badges = get_user_badges_with_progress(session, user_id)

    unlocked = [progress_to_dict(b) for b in badges if b.unlocked]
    unlocked.sort(key=lambda b: b["unlocked_at"] or "", reverse=True)

    locked = [progress_to_dict(b) for b in badges if not b.unlocked]
    locked.sort(key=lambda b: b["progress"], reverse=True)

    total = len(badges)
    return {
        "unlocked": unlocked,
        "locked": locked,
        "stats": {
            "total": total,
            "unlocked": len(unlocked),
            "percentage": int(round_half_up(len(unlocked) / total * 100)) if total else 0,
        },
    }
