from __future__ import annotations
import uuid
from datetime import datetime, timezone
from typing import Optional, Any
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String, Integer, DateTime, JSON, Boolean, CheckConstraint, ForeignKey, UniqueConstraint, Index, func, text
)
from .database import Base

def _uuid() -> str:
    return str(uuid.uuid4())

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

# ----------------------------
# Profiles (denormalized balance + tier)
# ----------------------------
class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    rank_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    rank: Mapped[str] = mapped_column(String(16), nullable=False, default="unranked", server_default="unranked")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("rank IN ('unranked', 'bronze', 'silver', 'gold')", name="ck_user_profiles_rank"),
        CheckConstraint("rank_points BETWEEN 0 AND 100", name="ck_user_profiles_rank_points"),
    )

# ----------------------------
# Events + check-ins (read-only here, owned by the events flow)
# ----------------------------
class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[Optional[str]] = mapped_column(String(256))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

class EventAttendance(Base):
    __tablename__ = "event_attendance"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    event_id: Mapped[str] = mapped_column(ForeignKey("events.id"), nullable=False, index=True)
    checked_in_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_event_attendance_user_event"),
    )

# ----------------------------
# Versioned rule documents
# ----------------------------
class RankRuleSet(Base):
    __tablename__ = "rank_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    version: Mapped[str] = mapped_column(String(32), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    rules: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=_utcnow)

    __table_args__ = (
        # at most one active rule set
        Index(
            "uq_rank_rules_active", "active", unique=True,
            postgresql_where=text("active"), sqlite_where=text("active = 1"),
        ),
    )

# ----------------------------
# Points ledger (append-only)
# ----------------------------
class PointsAward(Base):
    __tablename__ = "points"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    event_id: Mapped[Optional[str]] = mapped_column(ForeignKey("events.id"), index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(64), nullable=False)  # action_type
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    __table_args__ = (
        # idempotency: one award per (user, event, action)
        Index(
            "uq_points_user_event_reason", "user_id", "event_id", "reason", unique=True,
            postgresql_where=text("event_id IS NOT NULL"),
            sqlite_where=text("event_id IS NOT NULL"),
        ),
    )

# ----------------------------
# Rank audit log (append-only, best-effort)
# ----------------------------
class RankTransaction(Base):
    __tablename__ = "rank_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    points_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_points: Mapped[int] = mapped_column(Integer, nullable=False)
    new_points: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_rank: Mapped[Optional[str]] = mapped_column(String(16))
    new_rank: Mapped[Optional[str]] = mapped_column(String(16))
    rank_changed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True)
