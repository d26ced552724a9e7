from __future__ import annotations
from typing import Sequence
from uuid import UUID
import structlog
from quizarena.db import utcnow
from quizarena.errors import NotFound, Forbidden, BadRequest, Conflict
from quizarena.models.prize import Prize
from quizarena.repositories.unit_of_work import UnitOfWork
from quizarena.schemas.prize import (
    PrizeIn, PrizePublic, Winner, AwardedPrize, PrizeWinner,
    ContestPrizeRow, ContestPrizes, UserPrizeRow, UserPrizes,
)
from quizarena.security import Principal
from quizarena.services.cache import invalidate_leaderboard
from quizarena.services.catalog import get_contest_or_404

log = structlog.get_logger()


def to_public(p: Prize) -> PrizePublic:
    return PrizePublic(
        id=p.id,
        contest_id=p.contest_id,
        rank=p.rank,
        prize_details=p.prize_details,
        user_id=p.user_id,
        awarded=bool(p.awarded),
        awarded_at=p.awarded_at,
        claimed=bool(p.claimed),
        claimed_at=p.claimed_at,
    )


async def create_contest_prizes(
    uow: UnitOfWork, principal: Principal, contest_id: UUID, prizes: Sequence[PrizeIn]
) -> list[PrizePublic]:
    if not principal.is_admin:
        raise Forbidden("Only admin users can create prizes")
    if not prizes:
        raise BadRequest("At least one prize is required")
    ranks = [p.rank for p in prizes]
    if any(r < 1 for r in ranks):
        raise BadRequest("Prize rank must be at least 1")
    if len(set(ranks)) != len(ranks):
        raise BadRequest("Duplicate prize ranks")

    async with uow:
        contest = await get_contest_or_404(uow, contest_id)
        taken = await uow.prizes.existing_ranks(contest.id)
        clash = sorted(taken.intersection(ranks))
        if clash:
            raise Conflict("Prize rank already exists for this contest", details=[{"rank": r} for r in clash])

        created = [
            uow.prizes.add(Prize(
                contest_id=contest.id,
                rank=p.rank,
                prize_details=p.prize_details.strip(),
                awarded=False,
                claimed=False,
            ))
            for p in sorted(prizes, key=lambda p: p.rank)
        ]
        await uow.session.flush()
        result = [to_public(p) for p in created]

    log.info("prizes_created", contest_id=str(contest_id), ranks=sorted(ranks))
    return result


async def award_contest_prizes(uow: UnitOfWork, principal: Principal, contest_id: UUID) -> list[AwardedPrize]:
    """
    Hand the contest's prizes, lowest rank first, to the top of the final
    leaderboard: the i-th prize goes to the i-th ranked participant.
    Prizes already awarded keep their winner, so re-running only fills gaps.
    """
    if not principal.is_admin:
        raise Forbidden("Only admin users can award prizes")

    async with uow:
        contest = await get_contest_or_404(uow, contest_id)
        now = utcnow()
        if now < contest.ends_at:
            raise BadRequest("Cannot award prizes before contest ends")

        prizes = await uow.prizes.list_for_contest(contest.id, for_update=True)
        if not prizes:
            raise BadRequest("No prizes defined for this contest")

        top = await uow.participations.ranked(contest.id, limit=len(prizes))
        if not top:
            raise BadRequest("No participants found for this contest")

        awarded: list[AwardedPrize] = []
        for prize, (participation, username) in zip(prizes, top):
            if prize.awarded:
                continue
            prize.user_id = participation.user_id
            prize.awarded = True
            prize.awarded_at = now
            awarded.append(AwardedPrize(
                prize=to_public(prize),
                winner=Winner(user_id=participation.user_id, username=username, score=participation.score),
            ))
        await uow.session.flush()
        uow.after_commit(lambda: invalidate_leaderboard(contest_id))

    log.info("prizes_awarded", contest_id=str(contest_id), awarded=len(awarded))
    return awarded


async def get_contest_prizes(uow: UnitOfWork, contest_id: UUID) -> ContestPrizes:
    contest = await get_contest_or_404(uow, contest_id)
    rows = await uow.prizes.list_with_winners(contest.id)
    return ContestPrizes(
        contest_id=contest.id,
        contest_name=contest.name,
        prizes=[
            ContestPrizeRow(
                id=p.id,
                rank=p.rank,
                prize_details=p.prize_details,
                awarded=bool(p.awarded),
                awarded_at=p.awarded_at,
                claimed=bool(p.claimed),
                claimed_at=p.claimed_at,
                winner=PrizeWinner(id=p.user_id, username=uname) if p.awarded and p.user_id and uname else None,
            )
            for p, uname in rows
        ],
    )


async def list_user_prizes(uow: UnitOfWork, principal: Principal) -> UserPrizes:
    rows = await uow.prizes.list_for_user(principal.id)
    items = [
        UserPrizeRow(
            id=p.id,
            contest_id=p.contest_id,
            contest_name=cname,
            rank=p.rank,
            prize_details=p.prize_details,
            awarded_at=p.awarded_at,
            claimed=bool(p.claimed),
        )
        for p, cname in rows
    ]
    return UserPrizes(count=len(items), prizes=items)


async def claim_prize(uow: UnitOfWork, principal: Principal, prize_id: UUID) -> PrizePublic:
    async with uow:
        prize = await uow.prizes.get(prize_id)
        if not prize:
            raise NotFound("Prize not found")
        if not prize.awarded:
            raise BadRequest("Prize has not been awarded yet")
        if prize.user_id != principal.id:
            raise Forbidden("Only the winner can claim this prize")
        if prize.claimed:
            raise BadRequest("Prize has already been claimed")
        prize.claimed = True
        prize.claimed_at = utcnow()
        await uow.session.flush()
        result = to_public(prize)

    log.info("prize_claimed", prize_id=str(prize_id), user_id=str(principal.id))
    return result
