# app/services/reconcile.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import PointsAward, UserProfile
from ..rules.ranks import RankTier, calculate_rank, cap_points, higher_rank
from ..utils.logging import logger

@dataclass
class ReconcileResult:
    user_id: str
    expected_points: int
    expected_rank: str
    previous_points: int
    previous_rank: str
    new_points: int
    new_rank: str
    repaired: bool
    ledger_behind: bool = False

def replay_ledger(awards: Iterable[Tuple[int, bool]]) -> Tuple[int, str]:
    """
    Rebuild (rank_points, rank) from (amount, rank_affecting) pairs in award order,
    the same way the live award flow applies them one by one.
    """
    points = 0
    rank = RankTier.UNRANKED.value
    for amount, rank_affecting in awards:
        points = cap_points(points + amount)
        if rank_affecting:
            rank = calculate_rank(points).value
    return points, rank

def _ledger(db: Session, user_id: str) -> list[Tuple[int, bool]]:
    q = (
        select(PointsAward.amount, PointsAward.meta)
        .where(PointsAward.user_id == user_id)
        .order_by(PointsAward.created_at, PointsAward.id)
    )
    # awards written before the flag existed counted toward rank
    return [(row.amount, (row.meta or {}).get("rank_affecting_allowed", True) is not False)
            for row in db.execute(q)]

def reconcile_user(db: Session, user_id: str) -> ReconcileResult | None:
    """
    Compare the stored balance with a replay of the ledger and raise it when it
    lags behind. Balances never go down: a ledger that sums below the stored
    profile is reported (ledger_behind) and left for an operator.
    """
    profile = db.execute(
        select(UserProfile).where(UserProfile.id == user_id).with_for_update()
    ).scalar_one_or_none()
    if profile is None:
        return None

    previous_points, previous_rank = profile.rank_points, profile.rank
    expected_points, expected_rank = replay_ledger(_ledger(db, user_id))
    new_points = max(previous_points, expected_points)
    new_rank = higher_rank(previous_rank, expected_rank)

    result = ReconcileResult(
        user_id=user_id,
        expected_points=expected_points,
        expected_rank=expected_rank,
        previous_points=previous_points,
        previous_rank=previous_rank,
        new_points=new_points,
        new_rank=new_rank,
        repaired=(new_points, new_rank) != (previous_points, previous_rank),
        ledger_behind=(new_points, new_rank) != (expected_points, expected_rank),
    )
    if result.ledger_behind:
        logger.warning(
            "Ledger for %s sums to %s/%s, below stored %s/%s; not lowering",
            user_id, expected_points, expected_rank, previous_points, previous_rank,
        )
    if result.repaired:
        logger.warning(
            "Balance drift for %s: stored %s/%s, raised to %s/%s",
            user_id, previous_points, previous_rank, new_points, new_rank,
        )
        profile.rank_points = new_points
        profile.rank = new_rank
    db.commit()
    return result

def all_profile_ids(db: Session) -> list[str]:
    return list(db.execute(select(UserProfile.id).order_by(UserProfile.id)).scalars())
