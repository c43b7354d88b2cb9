"""Database package for the training tracker."""
from .models import (
    Activity,
    Badge,
    PersonalRecord,
    User,
    UserBadge,
    get_engine,
    get_session,
    init_db,
)

__all__ = [
    "Activity",
    "Badge",
    "PersonalRecord",
    "User",
    "UserBadge",
    "get_engine",
    "get_session",
    "init_db",
]
