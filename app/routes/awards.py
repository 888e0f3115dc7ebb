# app/routes/awards.py

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session
from ..database import get_db
from ..schemas import AwardRequest, AwardResponse, ErrorResponse, TransactionOut
from ..services.awards import award_points

router = APIRouter(tags=["awards"])

@router.post(
    "/award",
    response_model=AwardResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def award(
    payload: AwardRequest,
    db: Session = Depends(get_db),
    authorization: str | None = Header(None),
):
    outcome = award_points(db, payload, authorization)
    rec = outcome.award
    return AwardResponse(
        transaction=TransactionOut(
            id=rec.id,
            user_id=rec.user_id,
            amount=rec.amount,
            reason=rec.reason,
            created_at=rec.created_at,
        ),
        new_balance=outcome.new_balance,
        rank=outcome.rank,
        reasons=outcome.reasons,
    )
