from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ..database import get_db
from ..errors import AwardError, ErrorCode
from ..schemas import ActiveRulesResponse
from ..services.rules_store import get_active_ruleset_row

router = APIRouter(prefix="/rules", tags=["rules"])

@router.get("/active", response_model=ActiveRulesResponse)
def active_rules(db: Session = Depends(get_db)):
    row = get_active_ruleset_row(db)
    if row is None:
        raise AwardError(ErrorCode.RULES_NOT_FOUND, "No active rule set found")
    return ActiveRulesResponse(name=row.name, version=row.version, rules=row.rules)
