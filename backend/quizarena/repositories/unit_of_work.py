from __future__ import annotations
from typing import Awaitable, Callable
import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from quizarena.db import get_session
from quizarena.repositories.users import UserRepository
from quizarena.repositories.contests import ContestRepository
from quizarena.repositories.participations import ParticipationRepository
from quizarena.repositories.prizes import PrizeRepository

log = structlog.get_logger()

AfterCommit = Callable[[], Awaitable[None]]


class UnitOfWork:
    """
    One request-scoped transaction over an AsyncSession.

        async with uow:
            ...            # reads + writes through uow.<repo>
        # committed here; after-commit hooks have run

    Any exception inside the block rolls everything back and drops the
    after-commit hooks. Hooks run after COMMIT and before the block exits, so
    the caller's response is built only once they are done.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.contests = ContestRepository(session)
        self.participations = ParticipationRepository(session)
        self.prizes = PrizeRepository(session)
        self._after_commit: list[AfterCommit] = []

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self.rollback()
            return
        await self.commit()

    def after_commit(self, hook: AfterCommit) -> None:
        self._after_commit.append(hook)

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except Exception:
            await self.rollback()
            raise
        hooks, self._after_commit = self._after_commit, []
        for hook in hooks:
            await hook()

    async def rollback(self) -> None:
        self._after_commit = []
        await self.session.rollback()


async def get_uow(session: AsyncSession = Depends(get_session)) -> UnitOfWork:
    return UnitOfWork(session)
