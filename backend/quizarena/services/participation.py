from __future__ import annotations
from typing import Sequence
from uuid import UUID
import structlog
from sqlalchemy.exc import IntegrityError
from quizarena.db import utcnow
from quizarena.errors import NotFound, Forbidden, BadRequest, Conflict
from quizarena.models.participation import Participation
from quizarena.repositories.unit_of_work import UnitOfWork
from quizarena.schemas.participation import (
    AnswerIn, JoinResult, SubmitResult, ContestScore, InProgressItem, InProgressList,
)
from quizarena.security import Principal
from quizarena.services.cache import invalidate_leaderboard, invalidate_user_history
from quizarena.services.catalog import get_contest_or_404, can_access, ensure_access, question_schemas
from quizarena.services.scoring import SubmittedAnswer, validate_answer_set, grade

log = structlog.get_logger()


def _join_result(p: Participation, question_count: int) -> JoinResult:
    return JoinResult(
        participation_id=p.id,
        contest_id=p.contest_id,
        status=p.status,
        started_at=p.started_at,
        question_count=question_count,
    )


async def _join(uow: UnitOfWork, principal: Principal, contest_id: UUID) -> JoinResult:
    async with uow:
        user = await uow.users.get(principal.id)
        if not user:
            raise NotFound("User not found")
        contest = await get_contest_or_404(uow, contest_id)
        if not can_access(user.role, contest.access_level):
            raise Forbidden("This contest requires VIP access")

        now = utcnow()
        if now < contest.starts_at:
            raise BadRequest("Contest has not started yet")
        if now >= contest.ends_at:
            raise BadRequest("Contest has already ended")

        question_count = await uow.contests.count_questions(contest.id)

        existing = await uow.participations.get_for_user(user.id, contest.id)
        if existing:
            if existing.status == "submitted":
                raise BadRequest("You have already submitted answers for this contest")
            # joining again while in progress hands back the same attempt
            return _join_result(existing, question_count)

        p = await uow.participations.add(Participation(
            user_id=user.id,
            contest_id=contest.id,
            status="in-progress",
            score=0,
            started_at=now,
        ))
        result = _join_result(p, question_count)
        user_id = user.id
        uow.after_commit(lambda: invalidate_user_history(user_id))

    log.info("contest_joined", contest_id=str(contest_id), user_id=str(principal.id), participation_id=str(result.participation_id))
    return result


async def join_contest(uow: UnitOfWork, principal: Principal, contest_id: UUID) -> JoinResult:
    """
    Start (or resume) the caller's single attempt at a contest.
    A concurrent join for the same (user, contest) that wins the insert makes
    ours hit the unique constraint; the loser re-reads and returns that row.
    """
    try:
        return await _join(uow, principal, contest_id)
    except IntegrityError:
        log.info("join_race_lost", contest_id=str(contest_id), user_id=str(principal.id))

    async with uow:
        existing = await uow.participations.get_for_user(principal.id, contest_id)
        if existing is None:
            raise Conflict("Could not create participation")
        if existing.status != "in-progress":
            raise Conflict("Participation was submitted concurrently")
        return _join_result(existing, await uow.contests.count_questions(contest_id))


async def submit_answers(
    uow: UnitOfWork, principal: Principal, contest_id: UUID, answers: Sequence[AnswerIn]
) -> SubmitResult:
    """
    Grade and persist a full answer set, then flip the attempt to submitted.
    Nothing is written unless every structural check passes; the leaderboard
    and the caller's history caches are dropped once the transaction commits.
    """
    async with uow:
        contest = await get_contest_or_404(uow, contest_id, with_questions=True)
        ensure_access(principal, contest)

        p = await uow.participations.get_in_progress_for_update(principal.id, contest_id)
        if not p:
            raise NotFound("Active participation not found")

        now = utcnow()
        if now >= contest.ends_at:
            raise BadRequest("Contest has already ended")

        questions = question_schemas(contest)
        submitted = [SubmittedAnswer(question_id=a.question_id, option_ids=tuple(a.option_ids)) for a in answers]

        violations = validate_answer_set(questions, submitted)
        if violations:
            log.info(
                "submission_rejected",
                contest_id=str(contest_id),
                user_id=str(principal.id),
                violations=[v.code for v in violations],
            )
            raise BadRequest(violations[0].message, details=[v.to_dict() for v in violations])

        graded = grade(questions, submitted)

        if not await uow.participations.mark_submitted(p.id, score=graded.score, now=now):
            # another request submitted this attempt first
            raise NotFound("Active participation not found")
        await uow.participations.add_answers(p.id, graded.answers)

        result = SubmitResult(
            participation_id=p.id,
            contest_id=contest_id,
            status="submitted",
            score=graded.score,
            total_questions=len(questions),
            started_at=p.started_at,
            submitted_at=now,
        )
        user_id = principal.id
        uow.after_commit(lambda: invalidate_leaderboard(contest_id))
        uow.after_commit(lambda: invalidate_user_history(user_id))

    log.info(
        "answers_submitted",
        contest_id=str(contest_id),
        user_id=str(principal.id),
        score=result.score,
        total=result.total_questions,
    )
    return result


async def get_user_contest_score(uow: UnitOfWork, principal: Principal, contest_id: UUID) -> ContestScore:
    contest = await get_contest_or_404(uow, contest_id)
    p = await uow.participations.get_for_user(principal.id, contest_id)
    if not p:
        raise NotFound("You have not participated in this contest")
    return ContestScore(
        contest_id=contest.id,
        contest_name=contest.name,
        score=p.score,
        status=p.status,
        submitted_at=p.submitted_at,
    )


async def list_in_progress(uow: UnitOfWork, principal: Principal) -> InProgressList:
    rows = await uow.participations.list_in_progress(principal.id, utcnow())
    items = [
        InProgressItem(
            id=p.id,
            contest_id=c.id,
            contest_name=c.name,
            description=c.description or "",
            started_at=p.started_at,
            ends_at=c.ends_at,
        )
        for (p, c) in rows
    ]
    return InProgressList(count=len(items), participations=items)
