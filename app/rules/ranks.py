# app/rules/ranks.py
from __future__ import annotations
from enum import Enum
from sqlalchemy import case

class RankTier(str, Enum):
    UNRANKED = "unranked"
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"

MAX_RANK_POINTS = 100

# (min points, tier), highest first. Single source for both Python and SQL.
RANK_THRESHOLDS = (
    (75, RankTier.GOLD),
    (50, RankTier.SILVER),
    (25, RankTier.BRONZE),
)

def calculate_rank(points: int) -> RankTier:
    for floor_points, tier in RANK_THRESHOLDS:
        if points >= floor_points:
            return tier
    return RankTier.UNRANKED

_TIER_ORDER = [RankTier.UNRANKED.value] + [tier.value for _, tier in reversed(RANK_THRESHOLDS)]

def higher_rank(a: str, b: str) -> str:
    return max(a, b, key=_TIER_ORDER.index)

def cap_points(points: int) -> int:
    """Balances saturate at MAX_RANK_POINTS instead of overflowing."""
    return min(points, MAX_RANK_POINTS)

def capped_sum_expr(column, delta: int):
    """SQL for min(column + delta, MAX_RANK_POINTS)."""
    total = column + delta
    return case((total >= MAX_RANK_POINTS, MAX_RANK_POINTS), else_=total)

def rank_case(points_expr):
    """SQL CASE equivalent of calculate_rank()."""
    whens = [(points_expr >= floor_points, tier.value) for floor_points, tier in RANK_THRESHOLDS]
    return case(*whens, else_=RankTier.UNRANKED.value)
