"""TRIMP (Training Impulse) calculation."""

from metrics.config import TRIMP_DEFAULT_COEFFICIENT, TRIMP_HRR_BANDS
from metrics.profile import has_heart_rate_profile, validate_physiology
from metrics.utils import round_half_up


def heart_rate_reserve_pct(avg_heart_rate: float, fc_max: float, fc_repos: float) -> float:
    """Percentage of heart rate reserve used at avg_heart_rate.

    HRR% = (avg - resting) / (max - resting) × 100
    """
    validate_physiology(fc_max, fc_repos)
    return (avg_heart_rate - fc_repos) / (fc_max - fc_repos) * 100


def zone_coefficient(hrr_pct: float) -> int:
    """Map an HRR percentage to its banded intensity coefficient (1-5)."""
    for threshold, coefficient in TRIMP_HRR_BANDS:
        if hrr_pct >= threshold:
            return coefficient
    return TRIMP_DEFAULT_COEFFICIENT


def calculate_trimp(
    duration: float,
    avg_heart_rate: float,
    fc_max: float,
    fc_repos: float,
) -> int:
    """Compute the banded TRIMP of a session.

    TRIMP = duration (min) × zone coefficient, where the coefficient comes
    from the session's average heart rate reserve:
    ≥90% → 5, ≥80% → 4, ≥70% → 3, ≥60% → 2, else 1.

    This is not Banister's exponential TRIMP. Stored values and the PMC
    history depend on this exact banding.

    Args:
        duration: Duration in seconds
        avg_heart_rate: Average heart rate (bpm)
        fc_max: Maximum heart rate (bpm)
        fc_repos: Resting heart rate (bpm)

    Returns:
        TRIMP as an integer

    Raises:
        InvalidPhysiologyError: if fc_max <= fc_repos
    """
    hrr = heart_rate_reserve_pct(avg_heart_rate, fc_max, fc_repos)
    coefficient = zone_coefficient(hrr)
    return int(round_half_up((duration / 60) * coefficient))


def calculate_trimp_if_possible(avg_heart_rate: float | None, duration: float | None, user) -> int | None:
    """Compute TRIMP when the activity and the profile allow it.

    Returns None when the average heart rate or the user's fc_max/fc_repos
    is missing. An inconsistent profile still raises InvalidPhysiologyError.
    """
    if not avg_heart_rate or not has_heart_rate_profile(user):
        return None
    return calculate_trimp(duration or 0, float(avg_heart_rate), user.fc_max, user.fc_repos)
