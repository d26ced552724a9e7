from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends
from quizarena.auth_deps import get_current_principal, require_admin
from quizarena.repositories.unit_of_work import UnitOfWork, get_uow
from quizarena.schemas.prize import PrizeCreateRequest, PrizePublic, AwardedPrize, ContestPrizes
from quizarena.security import Principal
from quizarena.services import prizes

router = APIRouter(prefix="/prizes", tags=["prizes"])

@router.post("/contests/{contest_id}", status_code=201, response_model=list[PrizePublic])
async def create_prizes(
    contest_id: UUID,
    payload: PrizeCreateRequest,
    principal: Principal = Depends(require_admin),
    uow: UnitOfWork = Depends(get_uow),
):
    return await prizes.create_contest_prizes(uow, principal, contest_id, payload.prizes)

@router.post("/contests/{contest_id}/award", response_model=list[AwardedPrize])
async def award_prizes(
    contest_id: UUID,
    principal: Principal = Depends(require_admin),
    uow: UnitOfWork = Depends(get_uow),
):
    return await prizes.award_contest_prizes(uow, principal, contest_id)

@router.get("/contests/{contest_id}", response_model=ContestPrizes)
async def contest_prizes(contest_id: UUID, uow: UnitOfWork = Depends(get_uow)):
    return await prizes.get_contest_prizes(uow, contest_id)

@router.post("/{prize_id}/claim", response_model=PrizePublic)
async def claim_prize(
    prize_id: UUID,
    principal: Principal = Depends(get_current_principal),
    uow: UnitOfWork = Depends(get_uow),
):
    return await prizes.claim_prize(uow, principal, prize_id)
