"""Training load, heart rate zones and activity processing routes."""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from db.models import Activity
from metrics.compute import process_new_activity
from metrics.profile import get_physiology, get_user
from web.deps import get_db
from web.rate_limit import rate_limit
from web.services.badges import badge_to_dict
from web.services.fitness import get_training_load_payload, get_zone_distribution
from web.services.records import new_record_to_dict

router = APIRouter()


class ActivityCreate(BaseModel):
    """Normalized activity produced by an ingestion adapter."""

    date: datetime
    activity_type: str
    sub_sport: Optional[str] = None
    duration: float = Field(ge=0)
    distance: Optional[float] = None
    avg_heart_rate: Optional[float] = None
    max_heart_rate: Optional[float] = None
    avg_speed: Optional[float] = None
    max_speed: Optional[float] = None
    elevation_gain: Optional[float] = None
    calories: Optional[float] = None
    gps_data: Optional[list[dict[str, Any]]] = None


@router.get("/physiology", dependencies=[Depends(rate_limit("general"))])
async def api_physiology(user_id: int, db: Session = Depends(get_db)):
    """Return the athlete's heart rate profile."""
    return get_physiology(db, user_id)


@router.get("/training-load", dependencies=[Depends(rate_limit("general"))])
async def api_training_load(
    user_id: int,
    db: Session = Depends(get_db),
    days: int = Query(90, ge=1, le=3650),
):
    """Return the CTL/ATL/TSB history and current form."""
    return get_training_load_payload(db, user_id, days=days)


@router.get("/zones", dependencies=[Depends(rate_limit("general"))])
async def api_zone_distribution(
    user_id: int,
    db: Session = Depends(get_db),
    days: int = Query(30, ge=1, le=3650),
    activity_type: Optional[list[str]] = Query(None),
):
    """Return time in heart rate zones over the last days."""
    return get_zone_distribution(db, user_id, days=days, activity_types=activity_type)


@router.post("/activities", status_code=201, dependencies=[Depends(rate_limit("upload"))])
async def api_create_activity(
    user_id: int,
    payload: ActivityCreate,
    db: Session = Depends(get_db),
):
    """Store a normalized activity and run TRIMP, records and badges on it."""
    get_user(db, user_id)

    values = payload.model_dump()
    if values["date"].tzinfo is not None:
        values["date"] = values["date"].astimezone(timezone.utc).replace(tzinfo=None)

    activity = Activity(user_id=user_id, **values)
    db.add(activity)
    db.flush()

    result = process_new_activity(db, activity)

    return {
        "activity_id": activity.id,
        "trimp": result.trimp,
        "new_records": [new_record_to_dict(r) for r in result.new_records],
        "new_badges": [badge_to_dict(b) for b in result.new_badges],
    }
