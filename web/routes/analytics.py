"""Analytics routes: similar activities, predictions, fatigue."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from web.deps import get_db
from web.rate_limit import rate_limit
from web.services.analytics import (
    get_fatigue_payload,
    get_prediction_payload,
    get_similar_activities_payload,
)

router = APIRouter(dependencies=[Depends(rate_limit("general"))])


@router.get("/activities/{activity_id}/similar")
async def api_similar_activities(
    user_id: int,
    activity_id: int,
    db: Session = Depends(get_db),
    limit: int = Query(5, ge=1, le=50),
):
    return get_similar_activities_payload(db, user_id, activity_id, limit=limit)


@router.get("/predictions")
async def api_predict_performance(
    user_id: int,
    activity_type: str,
    distance: float = Query(..., gt=0, description="Target distance in meters"),
    db: Session = Depends(get_db),
):
    """Predict time, speed, heart rate and TRIMP for a target distance."""
    return get_prediction_payload(db, user_id, activity_type, distance)


@router.get("/fatigue")
async def api_fatigue(user_id: int, db: Session = Depends(get_db)):
    return get_fatigue_payload(db, user_id)
