# app/rules/ruleset.py
from __future__ import annotations
from enum import Enum
from typing import Any, List, Literal, Optional
from pydantic import BaseModel, Field

class ActionType(str, Enum):
    ATTENDANCE = "attendance"
    FEEDBACK = "feedback"
    PHOTO_UPLOAD = "photo_upload"
    RSVP = "rsvp"
    EARLY_CHECKIN = "early_checkin"
    COMMITTEE_SETUP = "committee_setup"
    VERIFIED = "verified"
    COLLEGE_YEAR = "college_year"

# actions that only make sense against a specific event
EVENT_SCOPED_ACTIONS = frozenset({
    ActionType.ATTENDANCE,
    ActionType.EARLY_CHECKIN,
    ActionType.RSVP,
    ActionType.FEEDBACK,
})

Operator = Literal["eq", "gt", "gte", "lt", "lte", "exists"]

class MultiplierCondition(BaseModel):
    """Bonus condition evaluated against the action's metadata bag."""
    field: str
    operator: Operator
    value: Any = None          # unused for "exists"
    multiplier: float

class RuleDefinition(BaseModel):
    action_type: ActionType
    base_points: int
    multipliers: List[MultiplierCondition] = Field(default_factory=list)
    requires_committee_for_rank: bool = False
    max_points: Optional[int] = None
    enabled: bool = True

class RuleDocument(BaseModel):
    """
    Versioned rule set as stored in rank_rules.rules.
    Immutable once published; activating another document swaps behavior without a deploy.
    """
    version: str
    rules: List[RuleDefinition]

    def find_rule(self, action_type: str) -> Optional[RuleDefinition]:
        # first enabled match wins; duplicates for one action type are not supported
        for rule in self.rules:
            if rule.enabled and rule.action_type == action_type:
                return rule
        return None

DEFAULT_RULESET_NAME = "MVP Rules v1"

DEFAULT_RULESET: dict = {
    "version": "1.0.0",
    "rules": [
        {"action_type": "attendance", "base_points": 10, "enabled": True},
        {"action_type": "feedback", "base_points": 5, "enabled": True},
        {
            "action_type": "photo_upload",
            "base_points": 5,
            "enabled": True,
            "multipliers": [
                {"field": "photoType", "operator": "eq", "value": "alumni", "multiplier": 2},
                {"field": "photoType", "operator": "eq", "value": "professional", "multiplier": 3},
                {"field": "photoType", "operator": "eq", "value": "member_of_month", "multiplier": 4},
            ],
        },
        {"action_type": "rsvp", "base_points": 3, "enabled": True},
        {
            "action_type": "early_checkin",
            "base_points": 5,
            "enabled": True,
            "multipliers": [
                {"field": "minutes_early", "operator": "gte", "value": 15, "multiplier": 1.5},
            ],
        },
        {"action_type": "verified", "base_points": 10, "enabled": True},
        {
            "action_type": "college_year",
            "base_points": 5,
            "enabled": True,
            "multipliers": [
                {"field": "college_year", "operator": "eq", "value": 1, "multiplier": 1.2},
                {"field": "college_year", "operator": "eq", "value": 4, "multiplier": 1.5},
            ],
        },
        {
            "action_type": "committee_setup",
            "base_points": 10,
            "enabled": True,
            "requires_committee_for_rank": True,
        },
    ],
}
