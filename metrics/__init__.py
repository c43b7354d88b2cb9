"""Training load and physiological metrics."""

from metrics.config import ATL_ALPHA, CTL_ALPHA
from metrics.exceptions import InsufficientDataError, InvalidPhysiologyError
from metrics.profile import get_physiology
from metrics.zones import build_zones, calculate_zone_durations, resolve_zone_index
from metrics.trimp import calculate_trimp
from metrics.training_load import calculate_training_load
from metrics.records import check_for_new_records, recalculate_all_records
from metrics.badges import check_and_award_badges, get_user_badges_with_progress
from metrics.compute import process_new_activity, run_full_computation

__all__ = [
    "ATL_ALPHA",
    "CTL_ALPHA",
    "InsufficientDataError",
    "InvalidPhysiologyError",
    "get_physiology",
    "build_zones",
    "calculate_zone_durations",
    "resolve_zone_index",
    "calculate_trimp",
    "calculate_training_load",
    "check_for_new_records",
    "recalculate_all_records",
    "check_and_award_badges",
    "get_user_badges_with_progress",
    "process_new_activity",
    "run_full_computation",
]
