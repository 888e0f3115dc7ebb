# tests/conftest.py
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models import Event, EventAttendance, RankRuleSet, UserProfile
from app.rules.ruleset import DEFAULT_RULESET, DEFAULT_RULESET_NAME, RuleDocument
from app.services.rules_store import clear_ruleset_cache

@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # let SQLAlchemy own BEGIN so SAVEPOINTs behave on pysqlite
    @event.listens_for(eng, "connect")
    def _no_implicit_tx(dbapi_conn, _record):
        dbapi_conn.isolation_level = None

    @event.listens_for(eng, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()

@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()

@pytest.fixture(autouse=True)
def _fresh_rules_cache():
    clear_ruleset_cache()
    yield
    clear_ruleset_cache()

@pytest.fixture
def default_rules():
    return RuleDocument.model_validate(DEFAULT_RULESET)

@pytest.fixture
def seed(session_factory):
    """Insert rows in their own committed session; returns the ids."""
    def _seed(*rows):
        with session_factory() as s:
            s.add_all(rows)
            s.commit()
            return [getattr(r, "id", None) for r in rows]
    return _seed

@pytest.fixture
def active_ruleset(seed):
    seed(RankRuleSet(name=DEFAULT_RULESET_NAME, version=DEFAULT_RULESET["version"],
                     active=True, rules=DEFAULT_RULESET))

@pytest.fixture
def profile(seed):
    def _profile(user_id="user-1", rank_points=0, rank="unranked"):
        seed(UserProfile(id=user_id, rank_points=rank_points, rank=rank))
        return user_id
    return _profile

@pytest.fixture
def event_row(seed):
    def _event(event_id="event-1", checked_in=()):
        rows = [Event(id=event_id, title="General meeting")]
        rows += [EventAttendance(user_id=u, event_id=event_id) for u in checked_in]
        seed(*rows)
        return event_id
    return _event
