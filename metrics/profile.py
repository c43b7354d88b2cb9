"""Athlete physiological profile access."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from db.models import Activity, User
from metrics.exceptions import InvalidPhysiologyError, UserNotFoundError


def get_user(session: Session, user_id: int) -> User:
    """Return the user or raise UserNotFoundError."""
    user = session.get(User, user_id)
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found")
    return user


def validate_physiology(fc_max: float, fc_repos: float) -> None:
    """Reject heart rate constants the formulas cannot use.

    Raises:
        InvalidPhysiologyError: if fc_max <= fc_repos or either is not positive
    """
    if fc_max is None or fc_repos is None or fc_repos <= 0 or fc_max <= fc_repos:
        raise InvalidPhysiologyError(fc_max, fc_repos)


def has_heart_rate_profile(user: User) -> bool:
    """Whether both fc_max and fc_repos are set on the user."""
    return bool(user.fc_max) and bool(user.fc_repos)


def estimate_fc_max(session: Session, user_id: int) -> int | None:
    """Estimate max HR from activity data.

    Returns the highest max heart rate recorded across the user's activities.
    """
    result = (
        session.query(func.max(Activity.max_heart_rate))
        .filter(Activity.user_id == user_id)
        .scalar()
    )
    return int(result) if result else None


def get_physiology(session: Session, user_id: int) -> dict:
    """Get the physiological values used by TRIMP and zone computation.

    Returns a dict with:
        - fc_max: Max heart rate (may be None)
        - fc_repos: Resting heart rate (may be None)
        - ftp: Functional threshold power (may be None)
        - weight_current: Body weight in kg (may be None)
        - estimated_fc_max: Highest recorded max HR, for display only
        - has_heart_rate_profile: Whether fc_max and fc_repos are both set
    """
    user = get_user(session, user_id)

    return {
        "fc_max": user.fc_max,
        "fc_repos": user.fc_repos,
        "ftp": user.ftp,
        "weight_current": user.weight_current,
        "estimated_fc_max": estimate_fc_max(session, user_id),
        "has_heart_rate_profile": has_heart_rate_profile(user),
    }
