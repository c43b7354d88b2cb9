"""
Pytest configuration and fixtures

Every test gets a fresh in-memory SQLite database, so nothing leaks
between tests.
"""
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from db.models import Activity, User, get_session, init_db
from metrics.badges import ensure_badge_catalog


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    session = get_session(engine)
    yield session
    session.close()


@pytest.fixture
def make_user(db_session):
    """Factory creating users with a heart rate profile by default."""
    counter = {"n": 0}

    def _make_user(**overrides):
        counter["n"] += 1
        values = {
            "email": f"athlete{counter['n']}@example.com",
            "name": f"Athlete {counter['n']}",
            "fc_max": 190,
            "fc_repos": 50,
        }
        values.update(overrides)
        user = User(**values)
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def test_user(make_user):
    return make_user()


@pytest.fixture
def make_activity(db_session):
    """Factory creating committed activities for a user."""

    def _make_activity(user, **overrides):
        values = {
            "date": datetime(2024, 1, 1, 8, 0),
            "activity_type": "cycling",
            "duration": 3600,
            "distance": 30_000,
        }
        values.update(overrides)
        activity = Activity(user_id=user.id, **values)
        db_session.add(activity)
        db_session.commit()
        return activity

    return _make_activity


@pytest.fixture
def badge_catalog(db_session):
    ensure_badge_catalog(db_session)


@pytest.fixture
def client(engine):
    """FastAPI TestClient bound to the test database with a fresh rate limiter."""
    from fastapi.testclient import TestClient

    from web.app import app
    from web.deps import get_db
    from web.rate_limit import FixedWindowRateLimiter

    def override_get_db():
        session = get_session(engine)
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiter = FixedWindowRateLimiter()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
