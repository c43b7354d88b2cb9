"""Tests for the computation pipeline."""
from datetime import datetime

import pytest

from db.models import Badge, PersonalRecord, UserBadge
from metrics.compute import (
    backfill_trimp,
    compute_activity_trimp,
    process_new_activity,
    run_full_computation,
)
from metrics.exceptions import UserNotFoundError
from metrics.records import check_for_new_records, user_records_lock


@pytest.fixture
def athlete(make_user):
    return make_user(fc_max=190, fc_repos=60)


class TestComputeActivityTrimp:
    def test_stored_value_is_frozen(self, athlete, make_activity):
        activity = make_activity(athlete, avg_heart_rate=170.5, trimp=99)

        assert compute_activity_trimp(activity, athlete) == 99
        assert compute_activity_trimp(activity, athlete, force=True) == 240


class TestProcessNewActivity:
    def test_runs_every_engine(self, db_session, athlete, badge_catalog):
        from db.models import Activity

        activity = Activity(
            user_id=athlete.id,
            date=datetime(2024, 1, 3, 8),
            activity_type="cycling",
            duration=3600,
            distance=40_000,
            avg_heart_rate=170.5,
        )
        db_session.add(activity)
        db_session.flush()

        result = process_new_activity(db_session, activity)

        assert result.trimp == 240
        assert {r.record_type for r in result.new_records} == {"max_distance", "max_trimp", "longest_duration", "max_avg_heart_rate"}
        assert "special_first_activity" in {b.code for b in result.new_badges}

    def test_without_heart_rate_profile(self, db_session, make_user, make_activity):
        user = make_user(fc_max=None, fc_repos=None)
        activity = make_activity(user, avg_heart_rate=150)

        result = process_new_activity(db_session, activity)

        assert result.trimp is None
        assert "max_trimp" not in {r.record_type for r in result.new_records}

    def test_records_checked_under_user_lock(self, db_session, athlete, make_activity, monkeypatch):
        activity = make_activity(athlete, avg_heart_rate=170.5)
        held = []

        def check_records(session, checked):
            held.append(user_records_lock(checked.user_id).locked())
            return []

        monkeypatch.setattr("metrics.compute.check_for_new_records", check_records)

        process_new_activity(db_session, activity)

        assert held == [True]
        assert not user_records_lock(athlete.id).locked()

    def test_conflicting_record_keeps_the_activity(self, db_session, athlete, make_activity, monkeypatch):
        from db.models import Activity

        first = make_activity(athlete, avg_heart_rate=170.5, trimp=240)
        check_for_new_records(db_session, first)
        db_session.commit()

        activity = Activity(
            user_id=athlete.id,
            date=datetime(2024, 1, 3, 8),
            activity_type="cycling",
            duration=7200,
            distance=60_000,
            avg_heart_rate=175,
        )
        db_session.add(activity)
        db_session.flush()
        # Every current row was written by someone else after this read
        monkeypatch.setattr("metrics.records.get_current_record", lambda *args: None)

        result = process_new_activity(db_session, activity)

        assert result.new_records == []
        assert result.trimp is not None
        assert db_session.query(Activity).filter_by(user_id=athlete.id).count() == 2
        assert db_session.query(PersonalRecord).filter_by(is_current=True, activity_id=first.id).count() == 4
        assert db_session.query(PersonalRecord).filter_by(activity_id=activity.id).count() == 0


class TestBackfill:
    def test_fills_missing_values(self, db_session, athlete, make_activity):
        make_activity(athlete, avg_heart_rate=170.5)
        make_activity(athlete, date=datetime(2024, 1, 2, 8), avg_heart_rate=None)

        stats = backfill_trimp(db_session, athlete.id)

        assert stats == {"updated": 1, "skipped": 1, "errors": []}

    def test_stops_on_invalid_profile(self, db_session, make_user, make_activity):
        user = make_user(fc_max=60, fc_repos=70)
        make_activity(user, avg_heart_rate=150)

        stats = backfill_trimp(db_session, user.id)

        assert stats["updated"] == 0
        assert len(stats["errors"]) == 1


class TestRunFullComputation:
    def test_all_users(self, db_session, make_user, make_activity):
        first, second = make_user(fc_max=190, fc_repos=60), make_user()
        make_activity(first, avg_heart_rate=170.5)
        make_activity(second, avg_heart_rate=None)

        stats = run_full_computation(db_session)

        assert stats["users_processed"] == 2
        assert stats["trimp_updated"] == 1
        assert stats["records_created"] > 0
        assert stats["badges_unlocked"] == 2
        assert db_session.query(Badge).count() > 0
        assert db_session.query(UserBadge).count() == 2
        assert db_session.query(PersonalRecord).filter_by(record_type="max_trimp").count() == 1

    def test_unknown_user(self, db_session):
        with pytest.raises(UserNotFoundError):
            run_full_computation(db_session, user_id=42)
