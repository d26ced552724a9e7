from __future__ import annotations
from uuid import UUID
from quizarena.config import settings
from quizarena.db import utcnow
from quizarena.repositories.unit_of_work import UnitOfWork
from quizarena.schemas.common import Pagination
from quizarena.schemas.leaderboard import (
    Leaderboard, LeaderboardContest, RankingRow, UserHistory, HistoryRow,
)
from quizarena.security import Principal
from quizarena.services.cache import CacheKey, cached, leaderboard_namespace, history_namespace
from quizarena.services.catalog import get_contest_or_404, contest_status


async def get_contest_leaderboard(uow: UnitOfWork, contest_id: UUID, *, page: int, limit: int) -> Leaderboard:
    """
    Submitted attempts ranked by score desc, then earliest submission.
    Ranks are positions in the full ordering (offset + index + 1), so pages
    line up without gaps. Cached per (contest, page, limit); ended contests
    are kept longer since their ranking no longer moves.
    """
    contest = await get_contest_or_404(uow, contest_id)
    now = utcnow()
    status = contest_status(contest.starts_at, contest.ends_at, now)
    ttl = settings.leaderboard_ttl_ended if status == "ended" else settings.leaderboard_ttl_ongoing
    offset = (page - 1) * limit

    async def compute() -> Leaderboard:
        total = await uow.participations.count_submitted(contest.id)
        rows = await uow.participations.ranked(contest.id, offset=offset, limit=limit)
        return Leaderboard(
            contest=LeaderboardContest(id=contest.id, name=contest.name, status=status),
            pagination=Pagination.build(total, page, limit),
            rankings=[
                RankingRow(
                    rank=offset + i + 1,
                    user_id=p.user_id,
                    username=uname,
                    score=p.score,
                    submitted_at=p.submitted_at,
                )
                for i, (p, uname) in enumerate(rows)
            ],
        )

    key = CacheKey(leaderboard_namespace(contest.id), (page, limit))
    return await cached(key, ttl, Leaderboard, compute)


async def get_user_contest_history(
    uow: UnitOfWork, principal: Principal, *, page: int, limit: int, status: str | None = None
) -> UserHistory:
    """Caller's attempts, most recently touched first; submitted ones carry their current rank."""
    offset = (page - 1) * limit

    async def compute() -> UserHistory:
        rows, total = await uow.participations.history_page(principal.id, status=status, offset=offset, limit=limit)
        history = []
        for p, contest_name in rows:
            rank = await uow.participations.rank_of(p) if p.status == "submitted" else None
            history.append(HistoryRow(
                id=p.id,
                contest_id=p.contest_id,
                contest_name=contest_name,
                status=p.status,
                score=p.score,
                rank=rank,
                submitted_at=p.submitted_at,
            ))
        return UserHistory(pagination=Pagination.build(total, page, limit), history=history)

    key = CacheKey(history_namespace(principal.id), (page, limit, status or "all"))
    return await cached(key, settings.history_ttl, UserHistory, compute)
