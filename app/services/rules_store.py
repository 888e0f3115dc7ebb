# app/services/rules_store.py
import threading
from typing import Optional
from cachetools import TTLCache
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..models import RankRuleSet
from ..rules.ruleset import RuleDocument
from ..utils.logging import logger

_CACHE_KEY = "active"
_cache: Optional[TTLCache] = None
# TTLCache is not thread-safe and /award runs on the threadpool
_cache_lock = threading.Lock()

def _get_cache(ttl: float) -> TTLCache:
    """Caller must hold _cache_lock."""
    global _cache
    if _cache is None or _cache.ttl != ttl:
        _cache = TTLCache(maxsize=1, ttl=ttl)
    return _cache

def clear_ruleset_cache() -> None:
    with _cache_lock:
        if _cache is not None:
            _cache.clear()

def get_active_ruleset_row(db: Session) -> Optional[RankRuleSet]:
    q = select(RankRuleSet).where(RankRuleSet.active.is_(True))
    return db.execute(q).scalar_one_or_none()

def parse_ruleset(row: RankRuleSet) -> Optional[RuleDocument]:
    try:
        return RuleDocument.model_validate(row.rules)
    except ValidationError as e:
        logger.error("Active rule set %s (%s) is malformed: %s", row.name, row.version, e)
        return None

def _read_active_ruleset(db: Session) -> Optional[RuleDocument]:
    row = get_active_ruleset_row(db)
    if row is None:
        return None
    return parse_ruleset(row)

def load_active_ruleset(db: Session) -> Optional[RuleDocument]:
    """Fetch the single active rule document; None when there is none (or it is malformed)."""
    ttl = settings.RULES_CACHE_TTL_SECONDS
    if ttl <= 0:
        return _read_active_ruleset(db)

    with _cache_lock:
        cached = _get_cache(ttl).get(_CACHE_KEY)
    if cached is not None:
        return cached

    # DB read happens outside the lock; concurrent misses just both load
    doc = _read_active_ruleset(db)
    if doc is not None:
        with _cache_lock:
            _get_cache(ttl)[_CACHE_KEY] = doc
    return doc
