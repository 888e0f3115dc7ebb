
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional, Dict, List
from datetime import datetime

# Wire format is camelCase; python side stays snake_case
class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

class AwardRequest(_CamelModel):
    user_id: Optional[str] = Field(None, alias="userId")
    # optional here so a missing actionType is reported by payload validation
    action_type: Optional[str] = Field(None, alias="actionType")
    event_id: Optional[str] = Field(None, alias="eventId")
    metadata: Optional[Dict[str, Any]] = None

class TransactionOut(_CamelModel):
    id: str
    user_id: str = Field(alias="userId")
    amount: int
    reason: str
    created_at: datetime = Field(alias="createdAt")

class AwardResponse(_CamelModel):
    success: bool = True
    transaction: TransactionOut
    new_balance: int = Field(alias="newBalance")
    rank: str
    reasons: List[str]

class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str

class ActiveRulesResponse(BaseModel):
    name: str
    version: str
    rules: Dict[str, Any]
