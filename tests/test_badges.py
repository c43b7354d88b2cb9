"""Tests for badge unlocking, streaks and progress."""
from datetime import date, datetime

import pytest

from db.models import Activity, Badge, UserBadge, get_session
from metrics.badge_catalog import DEFAULT_BADGES
from metrics.badges import (
    _EVALUATORS,
    ActivityStats,
    BadgeCondition,
    check_and_award_badges,
    compute_progress,
    count_consecutive_days,
    ensure_badge_catalog,
    evaluate_badge,
    get_user_badges_with_progress,
    load_activity_stats,
)

TODAY = date(2024, 1, 3)


def _codes(badges):
    return {b.code for b in badges}


class TestConsecutiveDays:
    def test_three_day_streak(self):
        days = [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
        assert count_consecutive_days(days, TODAY) == 3

    def test_gap_breaks_the_streak(self):
        days = [date(2024, 1, 1), date(2024, 1, 3)]
        assert count_consecutive_days(days, TODAY) == 1

    def test_streak_may_end_yesterday(self):
        days = [date(2024, 1, 1), date(2024, 1, 2)]
        assert count_consecutive_days(days, TODAY) == 2

    def test_no_recent_activity(self):
        assert count_consecutive_days([date(2023, 12, 1)], TODAY) == 0
        assert count_consecutive_days([], TODAY) == 0

    def test_streak_from_database(self, db_session, test_user, make_activity):
        for day in (1, 2, 3):
            make_activity(test_user, date=datetime(2024, 1, day, 7))
            make_activity(test_user, date=datetime(2024, 1, day, 18))

        stats = load_activity_stats(db_session, test_user.id, today=TODAY)

        assert count_consecutive_days(stats.activity_days, stats.today) == 3


class TestEvaluateBadge:
    def test_every_condition_has_an_evaluator(self):
        assert set(_EVALUATORS) == set(BadgeCondition)

    def test_threshold_reached(self):
        badge = Badge(code="distance_100km", condition_type="total_distance", condition_value=100_000)
        evaluation = evaluate_badge(badge, ActivityStats(total_distance=100_000))

        assert evaluation.unlocked
        assert evaluation.current_value == 100_000

    def test_missing_threshold_never_unlocks(self):
        badge = Badge(code="broken", condition_type="total_activities", condition_value=None)
        assert not evaluate_badge(badge, ActivityStats(total_activities=500)).unlocked

    def test_unknown_condition_is_locked(self, caplog):
        badge = Badge(code="mystery", condition_type="full_moon_rides", condition_value=1)

        evaluation = evaluate_badge(badge, ActivityStats(total_activities=10))

        assert not evaluation.unlocked
        assert evaluation.current_value is None
        assert "unknown condition type" in caplog.text

    def test_unknown_special_code_is_locked(self):
        badge = Badge(code="special_mystery", condition_type="special", condition_value=1)
        assert not evaluate_badge(badge, ActivityStats(total_activities=10)).unlocked

    def test_first_activity_special(self):
        badge = Badge(code="special_first_activity", condition_type="special", condition_value=1)
        assert not evaluate_badge(badge, ActivityStats()).unlocked
        assert evaluate_badge(badge, ActivityStats(total_activities=1)).unlocked


class TestComputeProgress:
    @pytest.mark.parametrize(
        "current,target,expected",
        [(250_000, 1_000_000, 25), (1, 3, 33), (1, 200, 1), (3, 2, 100), (None, 10, 0), (5, None, 0), (5, 0, 0)],
    )
    def test_progress(self, current, target, expected):
        assert compute_progress(current, target) == expected


class TestCheckAndAwardBadges:
    def test_first_activity_unlocks_special_badge(self, db_session, test_user, make_activity, badge_catalog):
        make_activity(test_user, date=datetime(2024, 1, 3, 8), distance=30_000, duration=3600)

        unlocked = check_and_award_badges(db_session, test_user.id, today=TODAY)

        assert _codes(unlocked) == {"special_first_activity"}

    def test_streak_and_totals(self, db_session, test_user, make_activity, badge_catalog):
        for day in (1, 2, 3):
            make_activity(test_user, date=datetime(2024, 1, day, 8), distance=40_000, elevation_gain=400, duration=4 * 3600)

        unlocked = check_and_award_badges(db_session, test_user.id, today=TODAY)

        assert _codes(unlocked) == {
            "special_first_activity",
            "distance_100km",
            "elevation_1000m",
            "streak_3_days",
            "time_10h",
        }
        user_badge = db_session.query(UserBadge).join(Badge).filter(Badge.code == "distance_100km").one()
        assert user_badge.value_at_unlock == 120_000

    def test_unlocks_are_permanent(self, db_session, test_user, make_activity, badge_catalog):
        activity = make_activity(test_user, date=datetime(2024, 1, 3, 8))
        check_and_award_badges(db_session, test_user.id, today=TODAY)

        db_session.delete(activity)
        db_session.commit()

        assert check_and_award_badges(db_session, test_user.id, today=TODAY) == []
        progress = {p.badge.code: p for p in get_user_badges_with_progress(db_session, test_user.id, today=TODAY)}
        assert progress["special_first_activity"].unlocked
        assert progress["special_first_activity"].progress == 100
        assert progress["special_first_activity"].current_value == 1

    def test_second_check_is_a_no_op(self, db_session, test_user, make_activity, badge_catalog):
        make_activity(test_user, date=datetime(2024, 1, 3, 8))
        first_at = datetime(2024, 1, 3, 9, 0)

        first = check_and_award_badges(db_session, test_user.id, today=TODAY, now=first_at)
        second = check_and_award_badges(db_session, test_user.id, today=TODAY, now=datetime(2024, 1, 3, 21, 0))

        assert first and second == []
        assert db_session.query(UserBadge).count() == len(first)
        assert {ub.unlocked_at for ub in db_session.query(UserBadge).all()} == {first_at}

    def test_concurrent_unlock_is_a_no_op(self, engine, db_session, test_user, make_activity, badge_catalog, monkeypatch):
        make_activity(test_user, date=datetime(2024, 1, 3, 8))
        raced_at = datetime(2024, 1, 3, 7, 30)

        def load_after_rival_unlock(session, user_id, today=None):
            # Another writer unlocks the badge between the pending read and the insert
            rival = get_session(engine)
            badge = rival.query(Badge).filter_by(code="special_first_activity").one()
            rival.add(UserBadge(user_id=user_id, badge_id=badge.id, unlocked_at=raced_at, value_at_unlock=1))
            rival.commit()
            rival.close()
            return load_activity_stats(session, user_id, today)

        monkeypatch.setattr("metrics.badges.load_activity_stats", load_after_rival_unlock)

        new_badges = check_and_award_badges(db_session, test_user.id, today=TODAY, now=datetime(2024, 1, 3, 20, 0))

        assert new_badges == []
        rows = db_session.query(UserBadge).filter_by(user_id=test_user.id).all()
        assert len(rows) == 1
        assert rows[0].unlocked_at == raced_at

    def test_unlock_time_is_recorded(self, db_session, test_user, make_activity, badge_catalog):
        make_activity(test_user, date=datetime(2024, 1, 3, 8))
        now = datetime(2024, 1, 3, 20, 0)

        check_and_award_badges(db_session, test_user.id, today=TODAY, now=now)

        assert db_session.query(UserBadge).one().unlocked_at == now


class TestBadgeProgress:
    def test_locked_progress(self, db_session, test_user, make_activity, badge_catalog):
        make_activity(test_user, date=datetime(2024, 1, 3, 8), distance=250_000, duration=3600)
        check_and_award_badges(db_session, test_user.id, today=TODAY)

        progress = {p.badge.code: p for p in get_user_badges_with_progress(db_session, test_user.id, today=TODAY)}

        assert len(progress) == len(DEFAULT_BADGES)
        assert progress["distance_100km"].unlocked
        thousand = progress["distance_1000km"]
        assert not thousand.unlocked
        assert thousand.unlocked_at is None
        assert thousand.progress == 25
        assert thousand.current_value == 250_000
        assert thousand.target_value == 1_000_000
        assert progress["time_10h"].progress == 10

    def test_new_user_has_everything_locked(self, db_session, test_user, badge_catalog):
        progress = get_user_badges_with_progress(db_session, test_user.id, today=TODAY)

        assert not any(p.unlocked for p in progress)
        assert all(p.progress == 0 for p in progress)


class TestCatalog:
    def test_seeding_is_idempotent(self, db_session):
        assert ensure_badge_catalog(db_session) == len(DEFAULT_BADGES)
        assert ensure_badge_catalog(db_session) == 0
        assert db_session.query(Badge).count() == len(DEFAULT_BADGES)

    def test_catalog_uses_known_conditions(self):
        conditions = {c.value for c in BadgeCondition}
        assert all(entry["condition_type"] in conditions for entry in DEFAULT_BADGES)
        assert len({entry["code"] for entry in DEFAULT_BADGES}) == len(DEFAULT_BADGES)

    def test_stats_ignore_other_users(self, db_session, make_user, make_activity):
        athlete, other = make_user(), make_user()
        make_activity(other, distance=99_000)

        stats = load_activity_stats(db_session, athlete.id, today=TODAY)

        assert stats.total_activities == 0
        assert stats.total_distance == 0
        assert db_session.query(Activity).count() == 1
