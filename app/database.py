from typing import Generator, Optional
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from .config import settings
from .errors import AwardError, ErrorCode

def _normalize_db_url(url: str) -> str:
    # Use psycopg v3 driver with SQLAlchemy
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://"):]
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://"):]
    return url

_engine = None  # lazy-init so a missing DATABASE_URL surfaces per request, not at import
_SessionLocal: Optional[sessionmaker] = None

def get_engine():
    global _engine
    if _engine is None:
        if not settings.DATABASE_URL:
            raise AwardError(ErrorCode.CONFIGURATION_ERROR, "Missing database configuration")
        _engine = create_engine(
            _normalize_db_url(settings.DATABASE_URL),
            pool_pre_ping=True,
        )
    return _engine

def get_sessionmaker() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _SessionLocal

class Base(DeclarativeBase):
    pass

def get_db() -> Generator:
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
