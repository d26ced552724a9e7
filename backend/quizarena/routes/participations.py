from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends
from quizarena.auth_deps import get_current_principal
from quizarena.repositories.unit_of_work import UnitOfWork, get_uow
from quizarena.schemas.participation import JoinResult, SubmitRequest, SubmitResult, ContestScore
from quizarena.security import Principal
from quizarena.services import participation

router = APIRouter(prefix="/participations", tags=["participations"])

@router.post("/contests/{contest_id}/join", status_code=201, response_model=JoinResult)
async def join_contest(
    contest_id: UUID,
    principal: Principal = Depends(get_current_principal),
    uow: UnitOfWork = Depends(get_uow),
):
    return await participation.join_contest(uow, principal, contest_id)

@router.post("/contests/{contest_id}/submit", response_model=SubmitResult)
async def submit_answers(
    contest_id: UUID,
    payload: SubmitRequest,
    principal: Principal = Depends(get_current_principal),
    uow: UnitOfWork = Depends(get_uow),
):
    return await participation.submit_answers(uow, principal, contest_id, payload.answers)

@router.get("/contests/{contest_id}/score", response_model=ContestScore)
async def get_score(
    contest_id: UUID,
    principal: Principal = Depends(get_current_principal),
    uow: UnitOfWork = Depends(get_uow),
):
    return await participation.get_user_contest_score(uow, principal, contest_id)
