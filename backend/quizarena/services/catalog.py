from __future__ import annotations
from datetime import datetime
from uuid import UUID
import structlog
from quizarena.db import utcnow
from quizarena.errors import NotFound, Forbidden, BadRequest
from quizarena.models.contest import Contest, Question, Option
from quizarena.repositories.unit_of_work import UnitOfWork
from quizarena.schemas.common import Pagination
from quizarena.schemas.contest import (
    ContestCreate, ContestUpdate, ContestSummary, ContestDetail, ContestList,
    QuestionPublic, OptionPublic,
)
from quizarena.security import Principal, PRIVILEGED_ROLES
from quizarena.services.scoring import QuestionSchema, OptionSchema
from quizarena.services.cache import invalidate_leaderboard

log = structlog.get_logger()


def contest_status(starts_at: datetime, ends_at: datetime, now: datetime) -> str:
    """Derived contest status over the half-open window [starts_at, ends_at)."""
    if now < starts_at:
        return "upcoming"
    if now < ends_at:
        return "ongoing"
    return "ended"


def can_access(role: str, access_level: str) -> bool:
    return access_level != "vip" or role in PRIVILEGED_ROLES


def ensure_access(principal: Principal, contest: Contest) -> None:
    if not can_access(principal.role, contest.access_level):
        raise Forbidden("This contest requires VIP access")


def visible_access_levels(role: str) -> tuple[str, ...] | None:
    """None = no restriction."""
    return None if role in PRIVILEGED_ROLES else ("normal",)


def question_schemas(contest: Contest) -> list[QuestionSchema]:
    """Grading schema of a contest loaded with questions + options."""
    return [
        QuestionSchema(
            id=q.id,
            type=q.type,
            options=tuple(OptionSchema(id=o.id, is_correct=bool(o.is_correct)) for o in q.options),
        )
        for q in contest.questions
    ]


def check_window(starts_at: datetime, ends_at: datetime) -> None:
    if ends_at <= starts_at:
        raise BadRequest("ends_at must be after starts_at")


async def get_contest_or_404(uow: UnitOfWork, contest_id: UUID, *, with_questions: bool = False) -> Contest:
    if with_questions:
        contest = await uow.contests.get_with_questions(contest_id)
    else:
        contest = await uow.contests.get(contest_id)
    if not contest:
        raise NotFound("Contest not found")
    return contest


def to_summary(c: Contest, now: datetime | None = None) -> ContestSummary:
    now = now or utcnow()
    return ContestSummary(
        id=c.id, name=c.name, description=c.description or "",
        starts_at=c.starts_at, ends_at=c.ends_at,
        access_level=c.access_level, prize_information=c.prize_information,
        creator_id=c.creator_id, status=contest_status(c.starts_at, c.ends_at, now),
        created_at=c.created_at,
    )


def to_detail(c: Contest, *, reveal_answers: bool, now: datetime | None = None) -> ContestDetail:
    summary = to_summary(c, now)
    return ContestDetail(
        **summary.model_dump(),
        questions=[
            QuestionPublic(
                id=q.id, text=q.text, type=q.type,
                options=[
                    OptionPublic(id=o.id, text=o.text, is_correct=o.is_correct if reveal_answers else None)
                    for o in q.options
                ],
            )
            for q in c.questions
        ],
    )


# ---------- authoring ----------

async def create_contest(uow: UnitOfWork, principal: Principal, payload: ContestCreate) -> ContestDetail:
    if not principal.is_admin:
        raise Forbidden("Only admin users can create contests")
    check_window(payload.starts_at, payload.ends_at)

    async with uow:
        contest = uow.contests.add(Contest(
            creator_id=principal.id,
            name=payload.name.strip(),
            description=payload.description.strip(),
            starts_at=payload.starts_at,
            ends_at=payload.ends_at,
            access_level=payload.access_level,
            prize_information=payload.prize_information,
            questions=[
                Question(
                    position=qi,
                    text=q.text.strip(),
                    type=q.type,
                    options=[
                        Option(position=oi, text=o.text.strip(), is_correct=o.is_correct)
                        for oi, o in enumerate(q.options)
                    ],
                )
                for qi, q in enumerate(payload.questions)
            ],
        ))
        await uow.session.flush()
        contest_id = contest.id

    log.info("contest_created", contest_id=str(contest_id), questions=len(payload.questions))
    contest = await get_contest_or_404(uow, contest_id, with_questions=True)
    return to_detail(contest, reveal_answers=True)


async def get_contest(uow: UnitOfWork, principal: Principal, contest_id: UUID) -> ContestDetail:
    contest = await get_contest_or_404(uow, contest_id, with_questions=True)
    ensure_access(principal, contest)
    # correctness flags stay hidden from everyone but admins
    return to_detail(contest, reveal_answers=principal.is_admin)


async def list_contests(
    uow: UnitOfWork,
    principal: Principal,
    *,
    page: int,
    limit: int,
    status: str | None = None,
    access_level: str | None = None,
) -> ContestList:
    now = utcnow()
    levels = visible_access_levels(principal.role)
    if levels is None and access_level:
        levels = (access_level,)
    elif levels is not None and access_level and access_level not in levels:
        # regular users asking for vip contests see nothing rather than an error
        return ContestList(pagination=Pagination.build(0, page, limit), contests=[])
    rows, total = await uow.contests.list_page(
        now=now, offset=(page - 1) * limit, limit=limit, access_levels=levels, status=status,
    )
    return ContestList(
        pagination=Pagination.build(total, page, limit),
        contests=[to_summary(c, now) for c in rows],
    )


async def update_contest(uow: UnitOfWork, principal: Principal, contest_id: UUID, patch: ContestUpdate) -> ContestSummary:
    if not principal.is_admin:
        raise Forbidden("Only admin users can update contests")
    changes = patch.model_dump(exclude_unset=True)
    for field in ("name", "description", "starts_at", "ends_at", "access_level"):
        if field in changes and changes[field] is None:
            raise BadRequest(f"{field} cannot be null")

    async with uow:
        contest = await get_contest_or_404(uow, contest_id)
        # window invariant is checked on the merged values, so partial updates can't break it
        check_window(changes.get("starts_at", contest.starts_at), changes.get("ends_at", contest.ends_at))
        for field, value in changes.items():
            setattr(contest, field, value.strip() if isinstance(value, str) and field in ("name", "description") else value)
        await uow.session.flush()
        summary = to_summary(contest)
        uow.after_commit(lambda: invalidate_leaderboard(contest_id))

    log.info("contest_updated", contest_id=str(contest_id), fields=sorted(changes))
    return summary


async def delete_contest(uow: UnitOfWork, principal: Principal, contest_id: UUID) -> None:
    if not principal.is_admin:
        raise Forbidden("Only admin users can delete contests")
    async with uow:
        contest = await get_contest_or_404(uow, contest_id)
        await uow.contests.delete(contest)
        uow.after_commit(lambda: invalidate_leaderboard(contest_id))
    log.info("contest_deleted", contest_id=str(contest_id))
