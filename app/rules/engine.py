# app/rules/engine.py
"""
Points rule engine.

Pure computation: no I/O, no clock, no randomness. Interprets a RuleDocument
against one action and returns the award plus a human-readable trail of every
rule, multiplier and cap that was applied.
"""
from __future__ import annotations
import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .ruleset import ActionType, EVENT_SCOPED_ACTIONS, MultiplierCondition, RuleDocument

@dataclass
class ActionPayload:
    action_type: Optional[str]
    user_id: Optional[str]
    event_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

@dataclass(frozen=True)
class ComputeResult:
    points: int
    reasons: List[str]
    rank_affecting_allowed: bool
    rule_matched: bool = True

@dataclass(frozen=True)
class PayloadValidation:
    valid: bool
    errors: List[str]

def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)

def _strict_equals(a: Any, b: Any) -> bool:
    # True must not equal 1
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b

_NUMERIC_OPS = {
    "gt": lambda a, b: a > b,
    "gte": lambda a, b: a >= b,
    "lt": lambda a, b: a < b,
    "lte": lambda a, b: a <= b,
}

def evaluate_condition(condition: MultiplierCondition, metadata: Dict[str, Any]) -> bool:
    field_value = metadata.get(condition.field)

    if condition.operator == "exists":
        return field_value is not None
    if condition.operator == "eq":
        return _strict_equals(field_value, condition.value)

    op = _NUMERIC_OPS.get(condition.operator)
    if op is None:
        return False
    # no coercion: both sides must already be numbers
    if not (_is_number(field_value) and _is_number(condition.value)):
        return False
    return op(field_value, condition.value)

def _format_value(condition: MultiplierCondition) -> str:
    # reason strings read the way the rule document is written (JSON literals)
    value = condition.value
    if value is None:
        return "null" if "value" in condition.model_fields_set else "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)

def _describe(condition: MultiplierCondition) -> str:
    if condition.operator == "exists":
        return f"{condition.field} exists"
    return f"{condition.field} {condition.operator} {_format_value(condition)}"

def compute_points(rules: RuleDocument, payload: ActionPayload) -> ComputeResult:
    action_type = payload.action_type
    metadata = payload.metadata or {}

    rule = rules.find_rule(action_type)
    if rule is None:
        return ComputeResult(
            points=0,
            reasons=[f"No active rule found for action: {action_type}"],
            rank_affecting_allowed=True,
            rule_matched=False,
        )

    points = rule.base_points
    reasons = [f"Base points for {action_type}: {rule.base_points}"]

    # multipliers are additive against base, never compounded
    for condition in rule.multipliers:
        if evaluate_condition(condition, metadata):
            bonus = math.floor(rule.base_points * (condition.multiplier - 1))
            points += bonus
            reasons.append(
                f"Multiplier {condition.multiplier:g}x applied ({_describe(condition)}): +{bonus}"
            )

    if rule.max_points is not None and points > rule.max_points:
        reasons.append(f"Points capped at max: {rule.max_points}")
        points = rule.max_points

    rank_affecting_allowed = True
    if rule.requires_committee_for_rank and metadata.get("committee_member") is not True:
        rank_affecting_allowed = False
        reasons.append(
            "Rank change blocked: rule requires committee membership, but committee_member is false"
        )

    return ComputeResult(
        points=points,
        reasons=reasons,
        rank_affecting_allowed=rank_affecting_allowed,
    )

def validate_payload(payload: ActionPayload) -> PayloadValidation:
    errors: List[str] = []
    metadata = payload.metadata or {}

    if not payload.action_type:
        errors.append("action_type is required")
    if not payload.user_id:
        errors.append("user_id is required")

    if payload.action_type == ActionType.COMMITTEE_SETUP:
        # an explicit null still counts as provided
        if "committee_member" not in metadata:
            errors.append("metadata.committee_member is required for committee_setup action")
    elif payload.action_type in EVENT_SCOPED_ACTIONS:
        if not payload.event_id and not metadata.get("event_id"):
            errors.append(f"event_id is required for {payload.action_type} action")

    return PayloadValidation(valid=not errors, errors=errors)
