from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import select
from ..models import PointsAward

def already_awarded(db: Session, user_id: str, event_id: Optional[str], reason: str) -> bool:
    """
    Early-exit check for a prior award of (user, event, action).
    The unique index on points is what actually enforces it under concurrency.
    """
    if not event_id:
        return False
    q = select(PointsAward.id).where(
        PointsAward.user_id == user_id,
        PointsAward.event_id == event_id,
        PointsAward.reason == reason,
    ).limit(1)
    return db.execute(q).first() is not None
