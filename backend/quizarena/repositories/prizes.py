from __future__ import annotations
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from quizarena.models.prize import Prize
from quizarena.models.contest import Contest
from quizarena.models.user import User


class PrizeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, prize_id: UUID) -> Prize | None:
        return await self.session.get(Prize, prize_id)

    async def list_for_contest(self, contest_id: UUID, *, for_update: bool = False) -> list[Prize]:
        q = select(Prize).where(Prize.contest_id == contest_id).order_by(Prize.rank.asc())
        if for_update:
            q = q.with_for_update()
        return list((await self.session.execute(q)).scalars().all())

    async def list_with_winners(self, contest_id: UUID) -> list[tuple[Prize, str | None]]:
        rows = (await self.session.execute(
            select(Prize, User.username)
            .outerjoin(User, User.id == Prize.user_id)
            .where(Prize.contest_id == contest_id)
            .order_by(Prize.rank.asc())
        )).all()
        return [(p, uname) for (p, uname) in rows]

    async def existing_ranks(self, contest_id: UUID) -> set[int]:
        rows = (await self.session.execute(
            select(Prize.rank).where(Prize.contest_id == contest_id)
        )).scalars().all()
        return set(rows)

    async def list_for_user(self, user_id: UUID) -> list[tuple[Prize, str]]:
        rows = (await self.session.execute(
            select(Prize, Contest.name)
            .join(Contest, Contest.id == Prize.contest_id)
            .where(Prize.user_id == user_id, Prize.awarded.is_(True))
            .order_by(Prize.awarded_at.desc())
        )).all()
        return [(p, cname) for (p, cname) in rows]

    def add(self, prize: Prize) -> Prize:
        self.session.add(prize)
        return prize
