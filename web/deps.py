"""Shared dependencies for web routes."""

from functools import lru_cache
from typing import Generator

from sqlalchemy.orm import Session

from db.models import get_engine, get_session, init_db


@lru_cache(maxsize=1)
def _engine():
    engine = get_engine()
    init_db(engine)
    return engine


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency for database session."""
    session = get_session(_engine())
    try:
        yield session
    finally:
        session.close()
