"""SQLAlchemy models for the training tracker database."""
import os
from datetime import datetime
from pathlib import Path

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Session, relationship, sessionmaker


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """Athlete account with the physiological profile used by the metrics."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=True)

    # Physiological profile
    fc_max = Column(Integer, nullable=True)  # Maximum heart rate (bpm)
    fc_repos = Column(Integer, nullable=True)  # Resting heart rate (bpm)
    ftp = Column(Integer, nullable=True)  # Functional threshold power (watts)
    weight_current = Column(Float, nullable=True)  # kg

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    activities = relationship("Activity", back_populates="user", cascade="all, delete-orphan")
    personal_records = relationship("PersonalRecord", back_populates="user", cascade="all, delete-orphan")
    badges = relationship("UserBadge", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email}>"


class Activity(Base):
    """Normalized activity record, one row per uploaded session."""

    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Core summary fields
    date = Column(DateTime, nullable=False)
    activity_type = Column(String, nullable=False)
    sub_sport = Column(String, nullable=True)

    # Distance and time
    duration = Column(Float, nullable=False, default=0)  # seconds
    distance = Column(Float, nullable=True)  # meters

    # Heart rate
    avg_heart_rate = Column(Float, nullable=True)
    max_heart_rate = Column(Float, nullable=True)

    # Speed
    avg_speed = Column(Float, nullable=True)  # km/h
    max_speed = Column(Float, nullable=True)  # km/h

    # Other
    elevation_gain = Column(Float, nullable=True)  # meters
    calories = Column(Float, nullable=True)  # kcal

    # Computed training impulse, frozen at calculation time
    trimp = Column(Integer, nullable=True)

    # GPS samples as JSON array of
    # {"lat", "lon", "elevation", "time", "heart_rate", "speed"} objects
    gps_data = Column(JSON, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="activities")

    __table_args__ = (
        Index("ix_activities_user_date", "user_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<Activity {self.id}: {self.activity_type} {self.date}>"


class PersonalRecord(Base):
    """One link of a personal record chain.

    Rows are never overwritten: a beaten record is flagged non-current and the
    new row points back at the value and date it replaced.
    """

    __tablename__ = "personal_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    activity_id = Column(Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False)

    record_type = Column(String, nullable=False)  # e.g. 'max_distance'
    activity_type = Column(String, nullable=False)

    value = Column(Float, nullable=False)
    unit = Column(String, nullable=False)
    achieved_at = Column(DateTime, nullable=False)

    # Audit trail
    previous_value = Column(Float, nullable=True)
    previous_achieved_at = Column(DateTime, nullable=True)

    is_current = Column(Boolean, nullable=False, default=True)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="personal_records")
    activity = relationship("Activity")

    __table_args__ = (
        # Only one current record per (user, record type, activity type)
        Index(
            "uq_personal_records_current",
            "user_id",
            "record_type",
            "activity_type",
            unique=True,
            sqlite_where=text("is_current = 1"),
            postgresql_where=text("is_current"),
        ),
        Index("ix_personal_records_lookup", "user_id", "record_type", "activity_type", "achieved_at"),
    )

    def __repr__(self) -> str:
        marker = "current" if self.is_current else "past"
        return f"<PersonalRecord {self.record_type}/{self.activity_type}={self.value} ({marker})>"


class Badge(Base):
    """Static badge catalog entry."""

    __tablename__ = "badges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(String(10), nullable=False, default="")

    # 'distance', 'activities', 'elevation', 'streak', 'special', 'time'
    category = Column(String, nullable=False)
    level = Column(Integer, nullable=False, default=1)  # 1=bronze, 2=silver, 3=gold...

    # Unlock condition, see metrics.badges.BadgeCondition
    condition_type = Column(String, nullable=False)
    condition_value = Column(Float, nullable=True)  # e.g. 100000 for 100 km

    sort_order = Column(Integer, nullable=False, default=0)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Badge {self.code}>"


class UserBadge(Base):
    """Permanent unlock of a badge by a user."""

    __tablename__ = "user_badges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id = Column(Integer, ForeignKey("badges.id", ondelete="CASCADE"), nullable=False)

    unlocked_at = Column(DateTime, nullable=False)
    value_at_unlock = Column(Float, nullable=True)  # metric value when unlocked

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="badges")
    badge = relationship("Badge")

    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
    )

    def __repr__(self) -> str:
        return f"<UserBadge user={self.user_id} badge={self.badge_id}>"


# Database path
DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "training.db"


def get_db_path() -> Path:
    """Database path, overridable with the TRAINING_DB_PATH environment variable."""
    env_path = os.environ.get("TRAINING_DB_PATH")
    return Path(env_path) if env_path else DEFAULT_DB_PATH


def get_engine(db_path: Path | None = None, echo: bool = False):
    """Create and return a SQLAlchemy engine."""
    if db_path is None:
        db_path = get_db_path()

    # Ensure the data directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    return create_engine(f"sqlite:///{db_path}", echo=echo)


def get_session(engine=None) -> Session:
    """Create and return a new database session."""
    if engine is None:
        engine = get_engine()

    SessionLocal = sessionmaker(bind=engine)
    return SessionLocal()


def init_db(engine=None) -> None:
    """Initialize the database schema."""
    if engine is None:
        engine = get_engine()

    Base.metadata.create_all(engine)
