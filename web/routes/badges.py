"""Badge routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from metrics.badges import check_and_award_badges
from web.deps import get_db
from web.rate_limit import rate_limit
from web.services.badges import badge_to_dict, get_badges_overview

router = APIRouter(dependencies=[Depends(rate_limit("general"))])


@router.get("")
async def api_badges(user_id: int, db: Session = Depends(get_db)):
    """All badges with unlock state and progress."""
    return get_badges_overview(db, user_id)


@router.post("/check")
async def api_check_badges(user_id: int, db: Session = Depends(get_db)):
    """Unlock any badge the user now qualifies for."""
    unlocked = check_and_award_badges(db, user_id)
    return {"new_badges": [badge_to_dict(b) for b in unlocked]}
