# app/services/awards.py
"""
Award orchestration.

Turns one award request into a validated, idempotent, audited state change:

    authenticate -> validate -> duplicate check -> preconditions -> load rules
    -> compute -> insert award -> insert audit (best-effort) -> update profile

Every failure raises AwardError and ends the request. Award, audit and profile
writes are committed together; a failed audit insert is rolled back to its
savepoint and logged without failing the award.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth.identity import resolve_user_id
from ..errors import AwardError, ErrorCode
from ..models import PointsAward, RankTransaction
from ..rules.engine import ActionPayload, ComputeResult, compute_points, validate_payload
from ..rules.ranks import calculate_rank, cap_points
from ..rules.ruleset import ActionType, RuleDocument
from ..schemas import AwardRequest
from ..utils.idempotency import already_awarded
from ..utils.logging import logger
from .repository import event_exists, has_checked_in, increment_rank_points, lock_profile
from .rules_store import load_active_ruleset

RulesLoader = Callable[[Session], Optional[RuleDocument]]

@dataclass
class AwardOutcome:
    award: PointsAward
    new_balance: int
    rank: str
    reasons: List[str]

def _effective_event_id(payload: ActionPayload) -> Optional[str]:
    event_id = payload.event_id or payload.metadata.get("event_id")
    return str(event_id) if event_id else None

def _check_preconditions(db: Session, user_id: str, event_id: Optional[str], action_type: str) -> None:
    if already_awarded(db, user_id, event_id, action_type):
        raise AwardError(ErrorCode.ALREADY_REWARDED, "Points already awarded for this action")

    if event_id and not event_exists(db, event_id):
        raise AwardError(ErrorCode.INVALID_EVENT, "Event not found")

    if action_type == ActionType.PHOTO_UPLOAD and event_id and not has_checked_in(db, user_id, event_id):
        raise AwardError(ErrorCode.PRECONDITION_FAILED, "User has not checked in to this event")

def _reject_empty_award(action_type: str, result: ComputeResult) -> None:
    if not result.rule_matched:
        raise AwardError(ErrorCode.INVALID_ACTION_TYPE, "; ".join(result.reasons))
    if result.points <= 0:
        # a configured rule that yields nothing is a rule-set problem, not an unknown action
        raise AwardError(
            ErrorCode.INVALID_ACTION_TYPE,
            f"Rule for {action_type} awarded no points: " + "; ".join(result.reasons),
        )

def _record_audit(db: Session, **fields: Any) -> None:
    with db.begin_nested():
        db.add(RankTransaction(**fields))
        db.flush()

def award_points(
    db: Session,
    request: AwardRequest,
    authorization: Optional[str] = None,
    *,
    load_rules: RulesLoader = load_active_ruleset,
) -> AwardOutcome:
    user_id = resolve_user_id(request.user_id, authorization)

    metadata: Dict[str, Any] = dict(request.metadata or {})
    payload = ActionPayload(
        action_type=request.action_type,
        user_id=user_id,
        event_id=request.event_id,
        metadata=metadata,
    )
    validation = validate_payload(payload)
    if not validation.valid:
        raise AwardError(ErrorCode.INVALID_ACTION_TYPE, "; ".join(validation.errors))

    action_type = payload.action_type
    event_id = _effective_event_id(payload)
    _check_preconditions(db, user_id, event_id, action_type)

    rules = load_rules(db)
    if rules is None:
        logger.error("No active rule set; refusing award of %s to %s", action_type, user_id)
        raise AwardError(ErrorCode.RULES_NOT_FOUND, "No active rule set found")

    result = compute_points(rules, payload)
    _reject_empty_award(action_type, result)

    return _persist(db, user_id, event_id, action_type, metadata, result)

def _persist(
    db: Session,
    user_id: str,
    event_id: Optional[str],
    action_type: str,
    metadata: Dict[str, Any],
    result: ComputeResult,
) -> AwardOutcome:
    profile = lock_profile(db, user_id)
    if profile is None:
        raise AwardError(ErrorCode.UNAUTHORIZED, "User profile not found")

    previous_points = profile.rank_points or 0
    previous_rank = profile.rank or "unranked"
    new_points = cap_points(previous_points + result.points)
    new_rank = calculate_rank(new_points).value if result.rank_affecting_allowed else previous_rank

    # 1) ledger row; the unique index settles concurrent duplicates
    award = PointsAward(
        user_id=user_id,
        event_id=event_id,
        amount=result.points,
        reason=action_type,
        meta={
            **metadata,
            "reasons": result.reasons,
            "rank_affecting_allowed": result.rank_affecting_allowed,
        },
    )
    try:
        db.add(award)
        db.flush()
    except IntegrityError:
        db.rollback()
        if event_id:
            logger.info("Duplicate award rejected by storage: %s/%s/%s", user_id, event_id, action_type)
            raise AwardError(ErrorCode.ALREADY_REWARDED, "Points already awarded for this action")
        logger.exception("Award insert failed for user %s", user_id)
        raise AwardError(ErrorCode.DATABASE_ERROR, "Failed to record points")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Award insert failed for user %s", user_id)
        raise AwardError(ErrorCode.DATABASE_ERROR, "Failed to record points")

    # 2) audit row, best-effort
    try:
        _record_audit(
            db,
            user_id=user_id,
            action_type=action_type,
            points_delta=result.points,
            previous_points=previous_points,
            new_points=new_points,
            previous_rank=previous_rank,
            new_rank=new_rank,
            rank_changed=result.rank_affecting_allowed and new_rank != previous_rank,
            meta={
                "event_id": event_id,
                **metadata,
                "reasons": result.reasons,
                "rank_affecting_allowed": result.rank_affecting_allowed,
                "committee_member_from_metadata": metadata.get("committee_member"),
            },
        )
    except SQLAlchemyError:
        logger.exception("Audit insert failed for user %s (%s); award kept", user_id, action_type)

    # 3) atomic balance/rank update, committed with the award
    try:
        balance, rank = increment_rank_points(
            db, user_id, result.points, update_rank=result.rank_affecting_allowed
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Profile update failed for user %s", user_id)
        raise AwardError(ErrorCode.DATABASE_ERROR, "Failed to update profile")

    logger.info(
        "Awarded %s points to %s for %s (balance=%s, rank=%s)",
        result.points, user_id, action_type, balance, rank,
    )
    return AwardOutcome(award=award, new_balance=balance, rank=rank, reasons=result.reasons)
