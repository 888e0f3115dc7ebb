# app/services/repository.py
from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from ..models import Event, EventAttendance, UserProfile
from ..rules.ranks import capped_sum_expr, rank_case

def event_exists(db: Session, event_id: str) -> bool:
    return db.execute(select(Event.id).where(Event.id == event_id)).first() is not None

def has_checked_in(db: Session, user_id: str, event_id: str) -> bool:
    q = select(EventAttendance.id).where(
        EventAttendance.user_id == user_id,
        EventAttendance.event_id == event_id,
    )
    return db.execute(q).first() is not None

def lock_profile(db: Session, user_id: str) -> Optional[UserProfile]:
    # row lock held until commit so previous_points stays accurate for the audit row
    q = select(UserProfile).where(UserProfile.id == user_id).with_for_update()
    return db.execute(q).scalar_one_or_none()

def increment_rank_points(db: Session, user_id: str, delta: int, update_rank: bool) -> tuple[int, str]:
    """
    Atomic `rank_points = min(rank_points + delta, 100)`; rank recomputed from the
    post-increment value in the same statement when update_rank is set.
    Returns the stored (rank_points, rank).
    """
    new_points = capped_sum_expr(UserProfile.rank_points, delta)
    values = {"rank_points": new_points}
    if update_rank:
        values["rank"] = rank_case(new_points)
    db.execute(
        update(UserProfile)
        .where(UserProfile.id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    row = db.execute(
        select(UserProfile.rank_points, UserProfile.rank).where(UserProfile.id == user_id)
    ).one()
    return row.rank_points, row.rank
