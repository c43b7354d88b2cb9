"""Heart rate zones and time-in-zone estimation."""

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from dateutil import parser as dateparser

from metrics.config import (
    HR_ZONE_COLORS,
    HR_ZONE_LABELS,
    KARVONEN_ZONE_FRACTIONS,
    POLARIZATION_TARGET,
    ZONE_SAMPLE_MAX_DELTA,
    ZONE_SAMPLE_MIN_DELTA,
    ZONE_SCALE_MAX,
    ZONE_SCALE_MIN,
    ZONE_SHARE_ABOVE,
    ZONE_SHARE_BELOW,
    ZONE_SHARE_DOMINANT,
    ZONE_SHARE_REST,
)
from metrics.profile import validate_physiology
from metrics.utils import round_half_up

logger = logging.getLogger(__name__)

SOURCE_SAMPLES = "samples"
SOURCE_AVERAGE = "average"
SOURCE_NONE = "none"


@dataclass
class HeartRateZone:
    """One heart rate zone, bounds inclusive (bpm)."""

    zone: int
    name: str
    description: str
    min_hr: int
    max_hr: int
    color: str


@dataclass
class ZoneDurationResult:
    """Seconds spent in each zone and where the numbers came from."""

    durations: list[float] = field(default_factory=list)
    total_seconds: float = 0.0
    source: str = SOURCE_NONE


def build_zones(fc_max: int, fc_repos: int) -> list[HeartRateZone]:
    """Build the 5 Karvonen heart rate zones.

    Zone n spans fc_repos + f(n) × reserve to fc_repos + f(n+1) × reserve,
    where reserve = fc_max - fc_repos. Zone 5 runs up to fc_max.

    Raises:
        InvalidPhysiologyError: if fc_max <= fc_repos
    """
    validate_physiology(fc_max, fc_repos)
    reserve = fc_max - fc_repos

    zones = []
    for i, fraction in enumerate(KARVONEN_ZONE_FRACTIONS):
        lower = int(round_half_up(fc_repos + fraction * reserve))
        if i + 1 < len(KARVONEN_ZONE_FRACTIONS):
            upper = int(round_half_up(fc_repos + KARVONEN_ZONE_FRACTIONS[i + 1] * reserve))
        else:
            upper = int(fc_max)

        name, description = HR_ZONE_LABELS[i]
        zones.append(
            HeartRateZone(
                zone=i + 1,
                name=name,
                description=description,
                min_hr=lower,
                max_hr=upper,
                color=HR_ZONE_COLORS[i],
            )
        )

    return zones


def resolve_zone_index(value: float, zones: Sequence[HeartRateZone]) -> int:
    """Return the index of the zone containing value.

    Values outside every zone are clamped to the nearest boundary zone:
    index 0 below the first zone, the last index otherwise. An empty zone
    list yields 0.
    """
    if not zones:
        return 0

    for index, zone in enumerate(zones):
        if zone.min_hr <= value <= zone.max_hr:
            return index

    return 0 if value < zones[0].min_hr else len(zones) - 1


def parse_sample_time(value: Any) -> datetime | None:
    """Parse a GPS sample timestamp into a naive UTC datetime.

    Accepts datetime objects, epoch milliseconds, and ISO-8601 strings.
    Returns None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        if not value.strip():
            return None
        try:
            parsed = dateparser.isoparse(value)
        except (ValueError, OverflowError):
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _sample_heart_rate(sample: dict) -> float | None:
    hr = sample.get("heart_rate", sample.get("hr"))
    if isinstance(hr, bool) or not isinstance(hr, (int, float)):
        return None
    if not math.isfinite(hr) or hr <= 0:
        return None
    return float(hr)


def load_samples(activity) -> list[dict]:
    """Return the activity's GPS samples as a list of dicts.

    gps_data may be stored as a decoded JSON list or as a raw JSON string.
    Undecodable data is logged and treated as absent.
    """
    raw = getattr(activity, "gps_data", None)
    if not raw:
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning(
                "Could not decode GPS data for HR zones (activity %s)",
                getattr(activity, "id", None),
            )
            return []

    if not isinstance(raw, list):
        return []

    return [sample for sample in raw if isinstance(sample, dict)]


def _durations_from_samples(samples: list[dict], zones: Sequence[HeartRateZone]) -> tuple[list[float], float] | None:
    """Accumulate clamped sample deltas per zone.

    Returns None when fewer than 2 samples carry both a heart rate and a
    timestamp.
    """
    points = []
    for sample in samples:
        hr = _sample_heart_rate(sample)
        timestamp = parse_sample_time(sample.get("time"))
        if hr is None or timestamp is None:
            continue
        points.append((timestamp, hr))

    if len(points) < 2:
        return None

    points.sort(key=lambda point: point[0])

    durations = [0.0] * len(zones)
    total = 0.0
    for (current_time, current_hr), (next_time, _) in zip(points, points[1:]):
        delta = (next_time - current_time).total_seconds()
        if delta <= 0:
            continue

        delta = min(max(delta, ZONE_SAMPLE_MIN_DELTA), ZONE_SAMPLE_MAX_DELTA)
        durations[resolve_zone_index(current_hr, zones)] += delta
        total += delta

    return durations, total


def _durations_from_average(avg_heart_rate: float, duration: float, zones: Sequence[HeartRateZone]) -> list[float]:
    """Synthesize a zone distribution around the average heart rate.

    Heuristic split: 60% dominant zone, 20% zone below, 15% zone above, 5%
    spread over the remaining zones. Weights are normalized so the result
    always sums to the recorded duration, including at the edge zones where
    a neighbour is missing.
    """
    count = len(zones)
    dominant = resolve_zone_index(avg_heart_rate, zones)

    weights = [0.0] * count
    weights[dominant] = ZONE_SHARE_DOMINANT
    if dominant > 0:
        weights[dominant - 1] = ZONE_SHARE_BELOW
    if dominant < count - 1:
        weights[dominant + 1] = ZONE_SHARE_ABOVE

    others = [i for i in range(count) if abs(i - dominant) > 1]
    for i in others:
        weights[i] = ZONE_SHARE_REST / len(others)

    total_weight = sum(weights)
    return [duration * weight / total_weight for weight in weights]


def calculate_zone_durations(activity, zones: Sequence[HeartRateZone]) -> ZoneDurationResult:
    """Estimate time spent in each heart rate zone for an activity.

    Strategy, in order of preference:
        1. samples: consecutive GPS samples with heart rate, deltas clamped
           to [1, 30] s, rescaled to the recorded duration when the scale
           factor lies within (0.3, 3); discarded otherwise
        2. average: synthetic split around the average heart rate
        3. none: all zeros

    Args:
        activity: Object with duration, avg_heart_rate and gps_data
        zones: Zones from build_zones(), sorted ascending

    Returns:
        ZoneDurationResult whose durations sum to total_seconds
    """
    if not zones:
        return ZoneDurationResult()

    duration = float(getattr(activity, "duration", None) or 0)
    avg_heart_rate = getattr(activity, "avg_heart_rate", None)

    sampled = _durations_from_samples(load_samples(activity), zones)
    if sampled is not None:
        durations, total = sampled

        if total > 0 and duration > 0:
            scale = duration / total
            if ZONE_SCALE_MIN < scale < ZONE_SCALE_MAX:
                durations = [value * scale for value in durations]
                return ZoneDurationResult(durations, duration, SOURCE_SAMPLES)

            logger.debug(
                "Discarding HR samples for activity %s: scale factor %.2f out of range",
                getattr(activity, "id", None),
                scale,
            )
        elif total > 0:
            # No recorded duration to rescale against
            return ZoneDurationResult(durations, total, SOURCE_SAMPLES)

    if avg_heart_rate and avg_heart_rate > 0 and duration > 0:
        durations = _durations_from_average(avg_heart_rate, duration, zones)
        return ZoneDurationResult(durations, duration, SOURCE_AVERAGE)

    return ZoneDurationResult([0.0] * len(zones), 0.0, SOURCE_NONE)


def build_polarization_summary(zone_buckets: Sequence[dict]) -> dict:
    """Compare a zone distribution with the 80/10/10 polarized model.

    Args:
        zone_buckets: Dicts with "zone" (1-5) and "seconds"

    Returns:
        Dict with totals, percentages, target, score (0-100), focus, message
    """
    totals = {
        "low": sum(b["seconds"] for b in zone_buckets if b["zone"] in (1, 2)),
        "moderate": sum(b["seconds"] for b in zone_buckets if b["zone"] == 3),
        "high": sum(b["seconds"] for b in zone_buckets if b["zone"] in (4, 5)),
    }

    total_seconds = sum(totals.values())
    percentages = {
        key: (value / total_seconds * 100 if total_seconds > 0 else 0.0)
        for key, value in totals.items()
    }

    target = dict(POLARIZATION_TARGET)
    deviation = sum(abs(percentages[key] - target[key]) for key in target)
    score = max(0.0, 100 - deviation * 0.8)

    if percentages["low"] < 70:
        focus = "insufficient base"
        message = "Add more Z1/Z2 volume to consolidate your aerobic base."
    elif percentages["high"] < 8:
        focus = "missing high intensity"
        message = "Add Z4/Z5 blocks to stimulate your VO2 max."
    elif percentages["high"] > 20:
        focus = "too much intensity"
        message = "Watch your fatigue: the high-intensity share is large."
    else:
        focus = "balanced"
        message = "Distribution very close to 80/10/10, keep it up."

    return {
        "totals": totals,
        "percentages": percentages,
        "target": target,
        "score": round_half_up(score, 1),
        "focus": focus,
        "message": message,
    }
