"""Configuration constants for metrics computation."""

# HR zones as fractions of heart rate reserve (Karvonen method)
# Zone bounds: fc_repos + fraction × (fc_max - fc_repos)
# Z5 upper bound is fc_max itself
KARVONEN_ZONE_FRACTIONS = (0.5, 0.6, 0.7, 0.8, 0.9)

HR_ZONE_LABELS = (
    ("Z1 - Recovery", "Warm-up and very easy endurance"),
    ("Z2 - Endurance", "Base endurance, long rides"),
    ("Z3 - Tempo", "Tempo and moderate intensity"),
    ("Z4 - Threshold", "Lactate threshold work"),
    ("Z5 - VO2 max", "Very hard efforts"),
)

HR_ZONE_COLORS = ("#0EA5E9", "#22C55E", "#FACC15", "#F97316", "#EF4444")

# Sample-based zone durations
# Delta between two consecutive samples is clamped to this range (seconds)
ZONE_SAMPLE_MIN_DELTA = 1
ZONE_SAMPLE_MAX_DELTA = 30

# Accepted recorded/sampled duration ratio (exclusive bounds)
# Outside this range the samples are considered unreliable
ZONE_SCALE_MIN = 0.3
ZONE_SCALE_MAX = 3.0

# Average-HR fallback distribution (heuristic, not a physiological model)
ZONE_SHARE_DOMINANT = 0.60
ZONE_SHARE_BELOW = 0.20
ZONE_SHARE_ABOVE = 0.15
ZONE_SHARE_REST = 0.05

# TRIMP zone coefficients by % of heart rate reserve (banded TRIMP)
# Checked top-down, first match wins; anything lower gets coefficient 1
TRIMP_HRR_BANDS = (
    (90, 5),
    (80, 4),
    (70, 3),
    (60, 2),
)
TRIMP_DEFAULT_COEFFICIENT = 1

# Performance Management Chart time constants (days)
CTL_DAYS = 42  # Chronic Training Load (fitness)
ATL_DAYS = 7  # Acute Training Load (fatigue)

# EMA smoothing factors: alpha = 2 / (N + 1)
# Formula: new = trimp × alpha + previous × (1 - alpha)
CTL_ALPHA = 2 / (CTL_DAYS + 1)
ATL_ALPHA = 2 / (ATL_DAYS + 1)

DEFAULT_TRAINING_LOAD_DAYS = 90

# TSB form bands, checked top-down: (lower bound, status, recommendation)
TSB_STATUS_BANDS = (
    (25, "fresh", "You are very fresh! Good time for a race or a hard session."),
    (5, "rested", "You are well rested. Good balance between fitness and fatigue."),
    (-10, "optimal", "Optimal zone for progress. Keep it up!"),
    (-30, "tired", "Fatigue is building up. Consider adding more recovery."),
)
TSB_FALLBACK_STATUS = ("overreached", "Watch out for overtraining! Take some rest.")

# Polarized training target (percentage of time low / moderate / high)
POLARIZATION_TARGET = {"low": 80, "moderate": 10, "high": 10}

# Personal records
RECENT_RECORDS_DAYS = 30

# Performance prediction
MIN_ACTIVITIES_FOR_PREDICTION = 3
PREDICTION_DISTANCE_TOLERANCE = 0.3  # ±30% of target distance
PREDICTION_HISTORY_LIMIT = 50

# Rate limits: (max requests, window in seconds)
RATE_LIMITS = {
    "upload": (10, 60 * 60),
    "general": (100, 60),
}
RATE_LIMIT_SWEEP_INTERVAL_SECONDS = 5 * 60
