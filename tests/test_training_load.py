"""Tests for the CTL/ATL/TSB training load model."""
from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from metrics.config import ATL_ALPHA, CTL_ALPHA
from metrics.exceptions import UserNotFoundError
from metrics.training_load import (
    build_daily_trimp,
    calculate_training_load,
    classify_form,
    compute_ema,
    get_training_load,
)

TODAY = date(2024, 3, 10)


def _load(day: date, trimp, hour=8):
    return SimpleNamespace(date=datetime.combine(day, datetime.min.time()) + timedelta(hours=hour), trimp=trimp)


class TestHelpers:
    def test_alphas(self):
        assert CTL_ALPHA == pytest.approx(2 / 43)
        assert ATL_ALPHA == pytest.approx(0.25)

    def test_compute_ema(self):
        assert compute_ema(40, 80, 0.25) == pytest.approx(50)

    @pytest.mark.parametrize(
        "tsb,status",
        [(30, "fresh"), (25, "rested"), (10, "rested"), (5, "optimal"), (0, "optimal"), (-10, "tired"), (-29.9, "tired"), (-30, "overreached")],
    )
    def test_classify_form(self, tsb, status):
        assert classify_form(tsb)[0] == status

    def test_daily_trimp_sums_same_day_and_ignores_outside_window(self):
        calendar = build_daily_trimp(
            [
                _load(TODAY, 50),
                _load(TODAY, 30, hour=18),
                _load(TODAY - timedelta(days=1), None),
                _load(TODAY - timedelta(days=10), 500),
                _load(TODAY + timedelta(days=1), 500),
            ],
            days=3,
            today=TODAY,
        )

        assert calendar == {
            TODAY - timedelta(days=2): 0.0,
            TODAY - timedelta(days=1): 0.0,
            TODAY: 80.0,
        }


class TestCalculateTrainingLoad:
    def test_single_day_bootstrap(self):
        load = calculate_training_load([_load(TODAY, 100)], days=1, today=TODAY)

        assert len(load.history) == 1
        point = load.history[0]
        assert point.date == "2024-03-10"
        assert point.ctl == 100
        assert point.atl == 100
        assert point.tsb == 0
        assert load.current.status == "optimal"

    def test_decay_after_a_load(self):
        start = TODAY - timedelta(days=6)
        load = calculate_training_load([_load(start, 100)], days=7, today=TODAY)

        ctl = [p.ctl for p in load.history]
        atl = [p.atl for p in load.history]
        tsb = [p.tsb for p in load.history]

        assert ctl[0] == atl[0] == 100
        assert all(later < earlier for earlier, later in zip(ctl, ctl[1:]))
        assert all(later < earlier for earlier, later in zip(atl, atl[1:]))
        assert all(a < c for c, a in zip(ctl[1:], atl[1:]))
        assert all(later > earlier for earlier, later in zip(tsb, tsb[1:]))

    def test_second_day_values(self):
        start = TODAY - timedelta(days=1)
        load = calculate_training_load([_load(start, 100), _load(TODAY, 50)], days=2, today=TODAY)

        second = load.history[1]
        # ctl: 50 * 2/43 + 100 * 41/43 = 97.67, atl: 50 * 0.25 + 100 * 0.75 = 87.5
        assert second.ctl == 97.7
        assert second.atl == 87.5
        assert second.tsb == 10.2

    def test_tsb_is_difference_of_rounded_values(self):
        activities = [_load(TODAY - timedelta(days=i), 37 + i * 11) for i in range(20)]
        load = calculate_training_load(activities, days=30, today=TODAY)

        for point in load.history:
            assert point.tsb == pytest.approx(point.ctl - point.atl, abs=1e-9)

    def test_window_covers_every_day(self):
        load = calculate_training_load([], days=90, today=TODAY)

        assert len(load.history) == 90
        assert load.history[0].date == (TODAY - timedelta(days=89)).isoformat()
        assert load.history[-1].date == TODAY.isoformat()
        assert all(p.ctl == 0 and p.atl == 0 for p in load.history)

    def test_current_status_matches_last_day(self):
        load = calculate_training_load([_load(TODAY - timedelta(days=3), 200)], days=4, today=TODAY)

        last = load.history[-1]
        assert (load.current.ctl, load.current.atl, load.current.tsb) == (last.ctl, last.atl, last.tsb)
        assert load.current.recommendation

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            calculate_training_load([], days=0, today=TODAY)


class TestGetTrainingLoad:
    def test_reads_activities_from_database(self, db_session, test_user, make_activity):
        make_activity(test_user, date=datetime(2024, 3, 10, 7, 0), trimp=100)
        make_activity(test_user, date=datetime(2024, 1, 1, 7, 0), trimp=999)

        load = get_training_load(db_session, test_user.id, days=1, today=TODAY)

        assert load.history[0].trimp == 100
        assert load.current.ctl == 100

    def test_other_users_are_ignored(self, db_session, make_user, make_activity):
        athlete, other = make_user(), make_user()
        make_activity(other, date=datetime(2024, 3, 10, 7, 0), trimp=100)

        load = get_training_load(db_session, athlete.id, days=1, today=TODAY)

        assert load.current.ctl == 0

    def test_unknown_user(self, db_session):
        with pytest.raises(UserNotFoundError):
            get_training_load(db_session, 404, days=7, today=TODAY)
