from __future__ import annotations
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Response
from quizarena.auth_deps import get_optional_principal, require_admin
from quizarena.config import settings
from quizarena.repositories.unit_of_work import UnitOfWork, get_uow
from quizarena.schemas.contest import ContestCreate, ContestUpdate, ContestDetail, ContestSummary, ContestList, ContestStatus, AccessLevel
from quizarena.security import Principal
from quizarena.services import catalog

router = APIRouter(prefix="/contests", tags=["contests"])

@router.get("", response_model=ContestList)
async def list_contests(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    status: ContestStatus | None = Query(None),
    access_level: AccessLevel | None = Query(None),
    principal: Principal = Depends(get_optional_principal),
    uow: UnitOfWork = Depends(get_uow),
):
    return await catalog.list_contests(uow, principal, page=page, limit=limit, status=status, access_level=access_level)

@router.get("/{contest_id}", response_model=ContestDetail)
async def get_contest(
    contest_id: UUID,
    principal: Principal = Depends(get_optional_principal),
    uow: UnitOfWork = Depends(get_uow),
):
    return await catalog.get_contest(uow, principal, contest_id)

@router.post("", status_code=201, response_model=ContestDetail)
async def create_contest(
    payload: ContestCreate,
    principal: Principal = Depends(require_admin),
    uow: UnitOfWork = Depends(get_uow),
):
    return await catalog.create_contest(uow, principal, payload)

@router.patch("/{contest_id}", response_model=ContestSummary)
async def update_contest(
    contest_id: UUID,
    payload: ContestUpdate,
    principal: Principal = Depends(require_admin),
    uow: UnitOfWork = Depends(get_uow),
):
    return await catalog.update_contest(uow, principal, contest_id, payload)

@router.delete("/{contest_id}", status_code=204)
async def delete_contest(
    contest_id: UUID,
    principal: Principal = Depends(require_admin),
    uow: UnitOfWork = Depends(get_uow),
):
    await catalog.delete_contest(uow, principal, contest_id)
    return Response(status_code=204)
