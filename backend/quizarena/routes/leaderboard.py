from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from quizarena.auth_deps import get_current_principal
from quizarena.config import settings
from quizarena.repositories.unit_of_work import UnitOfWork, get_uow
from quizarena.schemas.leaderboard import Leaderboard, UserHistory
from quizarena.schemas.participation import ParticipationStatus, InProgressList
from quizarena.schemas.prize import UserPrizes
from quizarena.security import Principal
from quizarena.services import leaderboard, participation, prizes

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])

@router.get("/contests/{contest_id}", response_model=Leaderboard)
async def contest_leaderboard(
    contest_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    uow: UnitOfWork = Depends(get_uow),
):
    return await leaderboard.get_contest_leaderboard(uow, contest_id, page=page, limit=limit)

@router.get("/user/history", response_model=UserHistory)
async def my_history(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    status: ParticipationStatus | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    uow: UnitOfWork = Depends(get_uow),
):
    return await leaderboard.get_user_contest_history(uow, principal, page=page, limit=limit, status=status)

@router.get("/user/in-progress", response_model=InProgressList)
async def my_in_progress(
    principal: Principal = Depends(get_current_principal),
    uow: UnitOfWork = Depends(get_uow),
):
    return await participation.list_in_progress(uow, principal)

@router.get("/user/prizes", response_model=UserPrizes)
async def my_prizes(
    principal: Principal = Depends(get_current_principal),
    uow: UnitOfWork = Depends(get_uow),
):
    return await prizes.list_user_prizes(uow, principal)
