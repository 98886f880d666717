from typing import Optional

from fastapi import APIRouter, Depends

from ..auth import get_optional_user
from ..database import get_db
from ..ranking import ALL_TIME, leaderboard

router = APIRouter()


@router.get("")
def get_leaderboard(timeframe: str = ALL_TIME, subject: Optional[str] = None,
                    user=Depends(get_optional_user), db=Depends(get_db)):
    viewer_id = str(user["_id"]) if user else None
    return leaderboard(db, timeframe=timeframe, subject=subject, viewer_id=viewer_id)
