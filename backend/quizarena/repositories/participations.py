from __future__ import annotations
from datetime import datetime
from typing import Iterable
from uuid import UUID
from sqlalchemy import select, func, update, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from quizarena.models.participation import Participation, Answer, AnswerOption
from quizarena.models.contest import Contest
from quizarena.models.user import User
from quizarena.services.scoring import GradedAnswer

# Ranking total order: score desc, earlier submission first, id as final tiebreak
RANKING_ORDER = (
    Participation.score.desc(),
    Participation.submitted_at.asc(),
    Participation.id.asc(),
)


class ParticipationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_user(self, user_id: UUID, contest_id: UUID) -> Participation | None:
        return await self.session.scalar(
            select(Participation).where(
                Participation.user_id == user_id,
                Participation.contest_id == contest_id,
            )
        )

    async def get_in_progress_for_update(self, user_id: UUID, contest_id: UUID) -> Participation | None:
        """Row-locks the in-progress attempt (no-op lock on SQLite)."""
        return await self.session.scalar(
            select(Participation)
            .where(
                Participation.user_id == user_id,
                Participation.contest_id == contest_id,
                Participation.status == "in-progress",
            )
            .with_for_update()
        )

    async def add(self, p: Participation) -> Participation:
        self.session.add(p)
        await self.session.flush()
        return p

    async def mark_submitted(self, participation_id: UUID, *, score: int, now: datetime) -> bool:
        """
        Conditional in-progress -> submitted flip.
        Returns False when another transaction already submitted this attempt.
        """
        res = await self.session.execute(
            update(Participation)
            .where(Participation.id == participation_id, Participation.status == "in-progress")
            .values(status="submitted", score=score, submitted_at=now, updated_at=now)
        )
        return res.rowcount == 1

    async def add_answers(self, participation_id: UUID, graded: Iterable[GradedAnswer]) -> list[Answer]:
        answers: list[tuple[Answer, GradedAnswer]] = []
        for g in graded:
            a = Answer(participation_id=participation_id, question_id=g.question_id, is_correct=g.is_correct)
            self.session.add(a)
            answers.append((a, g))
        await self.session.flush()  # answer ids
        for a, g in answers:
            for oid in g.option_ids:
                self.session.add(AnswerOption(answer_id=a.id, option_id=oid))
        await self.session.flush()
        return [a for a, _ in answers]

    async def count_answers(self, participation_id: UUID) -> int:
        total = await self.session.scalar(
            select(func.count()).select_from(Answer).where(Answer.participation_id == participation_id)
        )
        return int(total or 0)

    # ---------- ranking ----------

    async def count_submitted(self, contest_id: UUID) -> int:
        total = await self.session.scalar(
            select(func.count()).select_from(Participation).where(
                Participation.contest_id == contest_id, Participation.status == "submitted"
            )
        )
        return int(total or 0)

    async def ranked(self, contest_id: UUID, *, offset: int = 0, limit: int | None = None) -> list[tuple[Participation, str]]:
        """Submitted attempts of a contest in ranking order, with usernames."""
        q = (
            select(Participation, User.username)
            .join(User, User.id == Participation.user_id)
            .where(Participation.contest_id == contest_id, Participation.status == "submitted")
            .order_by(*RANKING_ORDER)
            .offset(offset)
        )
        if limit is not None:
            q = q.limit(limit)
        return [(p, uname) for (p, uname) in (await self.session.execute(q)).all()]

    async def rank_of(self, p: Participation) -> int:
        """1-based position of a submitted attempt in its contest's ranking order."""
        ahead = await self.session.scalar(
            select(func.count()).select_from(Participation).where(
                Participation.contest_id == p.contest_id,
                Participation.status == "submitted",
                or_(
                    Participation.score > p.score,
                    and_(Participation.score == p.score, Participation.submitted_at < p.submitted_at),
                    and_(
                        Participation.score == p.score,
                        Participation.submitted_at == p.submitted_at,
                        Participation.id < p.id,
                    ),
                ),
            )
        )
        return int(ahead or 0) + 1

    # ---------- per-user views ----------

    async def history_page(
        self, user_id: UUID, *, status: str | None, offset: int, limit: int
    ) -> tuple[list[tuple[Participation, str]], int]:
        where = [Participation.user_id == user_id]
        if status:
            where.append(Participation.status == status)
        total = await self.session.scalar(
            select(func.count()).select_from(Participation).where(*where)
        )
        rows = (await self.session.execute(
            select(Participation, Contest.name)
            .join(Contest, Contest.id == Participation.contest_id)
            .where(*where)
            .order_by(Participation.updated_at.desc(), Participation.id.asc())
            .offset(offset)
            .limit(limit)
        )).all()
        return [(p, cname) for (p, cname) in rows], int(total or 0)

    async def list_in_progress(self, user_id: UUID, now: datetime) -> list[tuple[Participation, Contest]]:
        rows = (await self.session.execute(
            select(Participation, Contest)
            .join(Contest, Contest.id == Participation.contest_id)
            .where(
                Participation.user_id == user_id,
                Participation.status == "in-progress",
                Contest.ends_at > now,
            )
            .order_by(Contest.ends_at.asc())
        )).all()
        return [(p, c) for (p, c) in rows]
