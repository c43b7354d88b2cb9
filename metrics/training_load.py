"""Training load computation (CTL, ATL, TSB)."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable

from sqlalchemy.orm import Session

from db.models import Activity
from metrics.config import (
    ATL_ALPHA,
    CTL_ALPHA,
    DEFAULT_TRAINING_LOAD_DAYS,
    TSB_FALLBACK_STATUS,
    TSB_STATUS_BANDS,
)
from metrics.profile import get_user
from metrics.utils import round_half_up

logger = logging.getLogger(__name__)


@dataclass
class TrainingLoadData:
    """PMC values for one calendar day."""

    date: str  # YYYY-MM-DD
    trimp: float
    ctl: float
    atl: float
    tsb: float


@dataclass
class TrainingLoadStatus:
    """Form on the last day of the window."""

    ctl: float
    atl: float
    tsb: float
    status: str
    recommendation: str


@dataclass
class TrainingLoad:
    history: list[TrainingLoadData] = field(default_factory=list)
    current: TrainingLoadStatus | None = None


def compute_ema(previous_value: float, new_value: float, alpha: float) -> float:
    """Compute exponential moving average.

    Formula: EMA = new × alpha + previous × (1 - alpha)

    Args:
        previous_value: Previous EMA value
        new_value: New data point
        alpha: Smoothing factor (e.g. 2/8 for 7-day ATL)

    Returns:
        New EMA value
    """
    return new_value * alpha + previous_value * (1 - alpha)


def classify_form(tsb: float) -> tuple[str, str]:
    """Return (status, recommendation) for a TSB value."""
    for lower_bound, status, recommendation in TSB_STATUS_BANDS:
        if tsb > lower_bound:
            return status, recommendation
    return TSB_FALLBACK_STATUS


def _activity_day(activity) -> date:
    value = activity.date
    return value.date() if isinstance(value, datetime) else value


def build_daily_trimp(activities: Iterable, days: int, today: date) -> dict[date, float]:
    """Sum activity TRIMP into a calendar of the last `days` days.

    Every day of [today - days + 1, today] is present, rest days at 0.
    Activities outside the window are ignored.
    """
    start = today - timedelta(days=days - 1)
    calendar = {start + timedelta(days=i): 0.0 for i in range(days)}

    for activity in activities:
        day = _activity_day(activity)
        if day in calendar:
            calendar[day] += activity.trimp or 0

    return calendar


def calculate_training_load(
    activities: Iterable,
    days: int = DEFAULT_TRAINING_LOAD_DAYS,
    today: date | None = None,
) -> TrainingLoad:
    """Compute the CTL/ATL/TSB history of the last `days` days.

    The first day of the window bootstraps ctl = atl = that day's TRIMP;
    every later day applies the 42-day (CTL) and 7-day (ATL) EMAs.
    Values are rounded to one decimal and tsb is the difference of the
    rounded ctl and atl. The whole window is recomputed on every call.

    Args:
        activities: Objects with date and trimp attributes
        days: Window length in days (>= 1)
        today: Last day of the window (default: today)

    Returns:
        TrainingLoad with the daily history and the current status
    """
    if days < 1:
        raise ValueError(f"days must be at least 1, got {days}")

    if today is None:
        today = date.today()

    calendar = build_daily_trimp(activities, days, today)

    history = []
    ctl = atl = 0.0
    for index, (day, trimp) in enumerate(sorted(calendar.items())):
        if index == 0:
            ctl = atl = trimp
        else:
            ctl = compute_ema(ctl, trimp, CTL_ALPHA)
            atl = compute_ema(atl, trimp, ATL_ALPHA)

        rounded_ctl = round_half_up(ctl, 1)
        rounded_atl = round_half_up(atl, 1)
        history.append(
            TrainingLoadData(
                date=day.isoformat(),
                trimp=trimp,
                ctl=rounded_ctl,
                atl=rounded_atl,
                tsb=round_half_up(rounded_ctl - rounded_atl, 1),
            )
        )

    last = history[-1]
    status, recommendation = classify_form(last.tsb)

    return TrainingLoad(
        history=history,
        current=TrainingLoadStatus(
            ctl=last.ctl,
            atl=last.atl,
            tsb=last.tsb,
            status=status,
            recommendation=recommendation,
        ),
    )


def get_training_load(
    session: Session,
    user_id: int,
    days: int = DEFAULT_TRAINING_LOAD_DAYS,
    today: date | None = None,
) -> TrainingLoad:
    """Load a user's activities for the window and compute their training load."""
    get_user(session, user_id)

    if today is None:
        today = date.today()
    if days < 1:
        raise ValueError(f"days must be at least 1, got {days}")

    start = datetime.combine(today - timedelta(days=days - 1), datetime.min.time())
    end = datetime.combine(today + timedelta(days=1), datetime.min.time())

    activities = (
        session.query(Activity)
        .filter(Activity.user_id == user_id)
        .filter(Activity.date >= start)
        .filter(Activity.date < end)
        .order_by(Activity.date)
        .all()
    )

    logger.debug("Training load for user %s: %d activities over %d days", user_id, len(activities), days)
    return calculate_training_load(activities, days, today)
