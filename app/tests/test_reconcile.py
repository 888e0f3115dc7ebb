# tests/test_reconcile.py
import threading
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app import celery_worker
from app.config import settings
from app.models import PointsAward, RankRuleSet, UserProfile
from app.rules.ruleset import DEFAULT_RULESET, DEFAULT_RULESET_NAME
from app.services.reconcile import reconcile_user, replay_ledger
from app.services import rules_store
from app.services.rules_store import clear_ruleset_cache, load_active_ruleset

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)

def _award(user_id, amount, minutes, rank_affecting=True, reason="verified"):
    return PointsAward(user_id=user_id, amount=amount, reason=reason,
                       meta={"rank_affecting_allowed": rank_affecting},
                       created_at=T0 + timedelta(minutes=minutes))

@pytest.mark.parametrize("ledger,expected", [
    ([], (0, "unranked")),
    ([(10, True), (20, True)], (30, "bronze")),
    ([(60, True), (60, True)], (100, "gold")),
    ([(30, True), (30, False)], (60, "bronze")),
    ([(30, False)], (30, "unranked")),
])
def test_replay_ledger(ledger, expected):
    assert replay_ledger(ledger) == expected

def test_reconcile_repairs_drift(db, seed, profile):
    profile(rank_points=7)
    seed(_award("user-1", 20, 0), _award("user-1", 40, 1))

    result = reconcile_user(db, "user-1")

    assert result.repaired is True
    assert (result.previous_points, result.previous_rank) == (7, "unranked")
    assert (result.expected_points, result.expected_rank) == (60, "silver")
    stored = db.execute(select(UserProfile.rank_points, UserProfile.rank)).one()
    assert tuple(stored) == (60, "silver")

def test_reconcile_no_drift(db, seed, profile):
    profile(rank_points=30, rank="bronze")
    seed(_award("user-1", 30, 0))
    assert reconcile_user(db, "user-1").repaired is False

def test_committee_blocked_award_keeps_rank_on_replay(db, seed, profile):
    profile(rank_points=30, rank="unranked")
    seed(_award("user-1", 30, 0, rank_affecting=False, reason="committee_setup"))
    assert reconcile_user(db, "user-1").repaired is False

def test_award_without_flag_counts_toward_rank(db, seed, profile):
    profile()
    seed(PointsAward(user_id="user-1", amount=30, reason="verified", meta={}, created_at=T0))
    assert reconcile_user(db, "user-1").expected_rank == "bronze"

def test_reconcile_missing_profile(db):
    assert reconcile_user(db, "ghost") is None

def test_reconcile_never_lowers_balance(db, seed, profile):
    profile(rank_points=60, rank="silver")
    seed(_award("user-1", 10, 0))

    result = reconcile_user(db, "user-1")

    assert result.repaired is False
    assert result.ledger_behind is True
    assert (result.expected_points, result.expected_rank) == (10, "unranked")
    assert (result.new_points, result.new_rank) == (60, "silver")
    stored = db.execute(select(UserProfile.rank_points, UserProfile.rank)).one()
    assert tuple(stored) == (60, "silver")

def test_reconcile_keeps_higher_stored_rank(db, seed, profile):
    # points lag the ledger but the stored tier is already above it
    profile(rank_points=20, rank="bronze")
    seed(_award("user-1", 30, 0, rank_affecting=False, reason="committee_setup"))

    result = reconcile_user(db, "user-1")

    assert (result.new_points, result.new_rank) == (30, "bronze")
    assert result.repaired is True

def test_reconcile_task(session_factory, seed, profile, monkeypatch):
    profile(rank_points=5)
    seed(_award("user-1", 10, 0), _award("user-1", 20, 1))
    monkeypatch.setattr(celery_worker, "get_sessionmaker", lambda: session_factory)

    out = celery_worker.reconcile_rank_points("user-1")

    assert out == {"ok": True, "user_id": "user-1", "rank_points": 30, "rank": "bronze",
                   "repaired": True, "ledger_behind": False}
    assert celery_worker.reconcile_rank_points("ghost") == {"ok": False, "user_id": "ghost"}

def test_reconcile_task_reports_ledger_behind(session_factory, seed, profile, monkeypatch):
    profile(rank_points=99, rank="gold")
    seed(_award("user-1", 10, 0))
    monkeypatch.setattr(celery_worker, "get_sessionmaker", lambda: session_factory)

    out = celery_worker.reconcile_rank_points("user-1")

    assert (out["rank_points"], out["rank"]) == (99, "gold")
    assert (out["repaired"], out["ledger_behind"]) == (False, True)

def test_reconcile_all_queues_each_profile(session_factory, profile, monkeypatch):
    profile("user-1")
    profile("user-2")
    queued = []
    monkeypatch.setattr(celery_worker, "get_sessionmaker", lambda: session_factory)
    monkeypatch.setattr(celery_worker.reconcile_rank_points, "delay", queued.append)

    assert celery_worker.reconcile_all_rank_points() == {"ok": True, "queued": 2}
    assert queued == ["user-1", "user-2"]

def test_beat_schedule_registered():
    entry = celery_worker.celery.conf.beat_schedule["reconcile-rank-points-nightly"]
    assert entry["task"] == "reconcile_all_rank_points"

# --- rule set cache -------------------------------------------------------------

def test_rule_cache_disabled_reads_every_time(db, session_factory, active_ruleset):
    assert load_active_ruleset(db) is not None
    db.rollback()
    with session_factory() as s:
        s.execute(select(RankRuleSet)).scalar_one().active = False
        s.commit()
    assert load_active_ruleset(db) is None

def test_rule_cache_serves_until_cleared(db, session_factory, active_ruleset, monkeypatch):
    monkeypatch.setattr(settings, "RULES_CACHE_TTL_SECONDS", 60)
    first = load_active_ruleset(db)
    db.rollback()
    with session_factory() as s:
        s.execute(select(RankRuleSet)).scalar_one().active = False
        s.commit()

    assert load_active_ruleset(db) is first
    clear_ruleset_cache()
    assert load_active_ruleset(db) is None

def test_malformed_active_rules_are_treated_as_missing(db, seed):
    seed(RankRuleSet(name="broken", version="0", active=True, rules={"rules": "nope"}))
    assert load_active_ruleset(db) is None

def test_rule_cache_survives_concurrent_expiry(monkeypatch):
    # entries expire almost immediately while many threads read and refill them
    monkeypatch.setattr(settings, "RULES_CACHE_TTL_SECONDS", 1e-6)
    row = RankRuleSet(name=DEFAULT_RULESET_NAME, version="1.0.0", active=True, rules=DEFAULT_RULESET)
    monkeypatch.setattr(rules_store, "get_active_ruleset_row", lambda _db: row)
    errors = []

    def worker():
        try:
            for _ in range(200):
                assert load_active_ruleset(None) is not None
        except Exception as e:
            errors.append(repr(e))

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
