"""Errors raised by the metrics engines."""


class MetricsError(Exception):
    """Base class for metrics errors."""


class InvalidPhysiologyError(MetricsError, ValueError):
    """Physiological constants cannot feed the heart rate formulas.

    Raised when fc_max <= fc_repos, which would divide by zero (or produce a
    negative reserve) in the Karvonen and TRIMP computations.
    """

    def __init__(self, fc_max, fc_repos):
        self.fc_max = fc_max
        self.fc_repos = fc_repos
        super().__init__(
            f"Invalid heart rate profile: fc_max ({fc_max}) must be greater than fc_repos ({fc_repos})"
        )


class InsufficientDataError(MetricsError):
    """Not enough comparable activities to produce a result."""

    def __init__(self, message: str, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"{message} (need {required}, have {available})")


class ActivityNotFoundError(MetricsError, LookupError):
    """Activity does not exist or belongs to another user."""


class UserNotFoundError(MetricsError, LookupError):
    """User does not exist."""
