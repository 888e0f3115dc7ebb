# tests/test_ranks.py
import pytest
from sqlalchemy import literal, select
from app.rules.ranks import MAX_RANK_POINTS, calculate_rank, cap_points, capped_sum_expr, higher_rank, rank_case

@pytest.mark.parametrize("points,tier", [
    (0, "unranked"),
    (24, "unranked"),
    (25, "bronze"),
    (49, "bronze"),
    (50, "silver"),
    (74, "silver"),
    (75, "gold"),
    (100, "gold"),
])
def test_calculate_rank_thresholds(points, tier):
    assert calculate_rank(points) == tier

def test_cap_points_saturates():
    assert cap_points(108) == MAX_RANK_POINTS == 100
    assert cap_points(42) == 42

def test_sql_rank_case_matches_python(engine):
    with engine.connect() as conn:
        for points in range(0, MAX_RANK_POINTS + 1):
            sql_rank = conn.execute(select(rank_case(literal(points)))).scalar_one()
            assert sql_rank == calculate_rank(points).value

def test_sql_capped_sum(engine):
    with engine.connect() as conn:
        assert conn.execute(select(capped_sum_expr(literal(98), 10))).scalar_one() == 100
        assert conn.execute(select(capped_sum_expr(literal(40), 10))).scalar_one() == 50

def test_higher_rank():
    assert higher_rank("unranked", "silver") == "silver"
    assert higher_rank("gold", "bronze") == "gold"
    assert higher_rank("bronze", "bronze") == "bronze"
