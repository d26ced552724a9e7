from __future__ import annotations
from datetime import datetime
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from quizarena.models.contest import Contest, Question


class ContestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, contest_id: UUID) -> Contest | None:
        return await self.session.get(Contest, contest_id)

    async def get_with_questions(self, contest_id: UUID) -> Contest | None:
        """Contest with its questions and their options eagerly loaded (grading schema)."""
        return await self.session.scalar(
            select(Contest)
            .where(Contest.id == contest_id)
            .options(selectinload(Contest.questions).selectinload(Question.options))
            .execution_options(populate_existing=True)
        )

    async def count_questions(self, contest_id: UUID) -> int:
        total = await self.session.scalar(
            select(func.count()).select_from(Question).where(Question.contest_id == contest_id)
        )
        return int(total or 0)

    async def list_page(
        self,
        *,
        now: datetime,
        offset: int,
        limit: int,
        access_levels: tuple[str, ...] | None = None,
        status: str | None = None,
    ) -> tuple[list[Contest], int]:
        q = select(Contest)
        if access_levels:
            q = q.where(Contest.access_level.in_(access_levels))
        # same [starts_at, ends_at) predicate as services.catalog.contest_status
        if status == "upcoming":
            q = q.where(Contest.starts_at > now)
        elif status == "ongoing":
            q = q.where(Contest.starts_at <= now, Contest.ends_at > now)
        elif status == "ended":
            q = q.where(Contest.ends_at <= now)

        total = await self.session.scalar(select(func.count()).select_from(q.subquery()))
        rows = (await self.session.execute(
            q.order_by(Contest.starts_at.desc(), Contest.id.asc()).offset(offset).limit(limit)
        )).scalars().all()
        return list(rows), int(total or 0)

    def add(self, contest: Contest) -> Contest:
        self.session.add(contest)
        return contest

    async def delete(self, contest: Contest) -> None:
        await self.session.delete(contest)
