"""Personal record routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from metrics.records import recalculate_all_records
from web.deps import get_db
from web.rate_limit import rate_limit
from web.services.records import get_record_history_payload, get_records_overview

router = APIRouter(dependencies=[Depends(rate_limit("general"))])


@router.get("")
async def api_records(user_id: int, db: Session = Depends(get_db)):
    """Current records grouped by activity type, plus recent records."""
    return get_records_overview(db, user_id)


@router.get("/{record_type}/{activity_type}/history")
async def api_record_history(
    user_id: int,
    record_type: str,
    activity_type: str,
    db: Session = Depends(get_db),
):
    """Full history of one record, newest first."""
    return get_record_history_payload(db, user_id, record_type, activity_type)


@router.post("/recalculate")
async def api_recalculate_records(user_id: int, db: Session = Depends(get_db)):
    """Rebuild every record of the user from their activities."""
    created = recalculate_all_records(db, user_id)
    return {"records_created": created}
