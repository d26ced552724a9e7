from __future__ import annotations
from datetime import timedelta
import uuid
import pytest
from sqlalchemy import select, func, update
from quizarena.db import SessionLocal, utcnow
from quizarena.models.participation import Participation, Answer
from quizarena.repositories.participations import ParticipationRepository
from quizarena.errors import NotFound
from quizarena.schemas.participation import AnswerIn
from quizarena.services.participation import join_contest, submit_answers

async def _count(model, **where) -> int:
    async with SessionLocal() as s:
        q = select(func.count()).select_from(model)
        for k, v in where.items():
            q = q.where(getattr(model, k) == v)
        return int(await s.scalar(q) or 0)

@pytest.mark.asyncio
async def test_join_is_idempotent(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)

    r1 = await client.post(f"/participations/contests/{contest.id}/join", headers=user.headers)
    assert r1.status_code == 201, r1.text
    body = r1.json()
    assert body["status"] == "in-progress"
    assert body["question_count"] == 3

    r2 = await client.post(f"/participations/contests/{contest.id}/join", headers=user.headers)
    assert r2.status_code == 201
    assert r2.json()["participation_id"] == body["participation_id"]
    assert await _count(Participation, contest_id=contest.id) == 1

@pytest.mark.asyncio
async def test_join_requires_auth(client, factory):
    admin = await factory.user("admin")
    contest = await factory.contest(admin)
    r = await client.post(f"/participations/contests/{contest.id}/join")
    assert r.status_code == 401

@pytest.mark.asyncio
async def test_join_vip_contest_gated_by_role(client, factory):
    admin = await factory.user("admin")
    normal = await factory.user("normal")
    vip = await factory.user("vip")
    contest = await factory.contest(admin, access_level="vip")

    r = await client.post(f"/participations/contests/{contest.id}/join", headers=normal.headers)
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"
    r = await client.post(f"/participations/contests/{contest.id}/join", headers=vip.headers)
    assert r.status_code == 201

@pytest.mark.asyncio
async def test_join_outside_window(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    now = utcnow()
    upcoming = await factory.contest(admin, starts_at=now + timedelta(hours=1), ends_at=now + timedelta(hours=2))
    ended = await factory.contest(admin, starts_at=now - timedelta(hours=2), ends_at=now - timedelta(hours=1))

    r = await client.post(f"/participations/contests/{upcoming.id}/join", headers=user.headers)
    assert r.status_code == 400
    assert "not started" in r.json()["message"]
    r = await client.post(f"/participations/contests/{ended.id}/join", headers=user.headers)
    assert r.status_code == 400
    assert "ended" in r.json()["message"]

@pytest.mark.asyncio
async def test_join_unknown_contest(client, factory):
    user = await factory.user()
    r = await client.post(f"/participations/contests/{uuid.uuid4()}/join", headers=user.headers)
    assert r.status_code == 404

@pytest.mark.asyncio
async def test_submit_scores_and_persists_answers(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    joined = await client.post(f"/participations/contests/{contest.id}/join", headers=user.headers)
    pid = uuid.UUID(joined.json()["participation_id"])

    r = await client.post(
        f"/participations/contests/{contest.id}/submit",
        headers=user.headers,
        json={"answers": contest.answers(correct=2)},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "submitted"
    assert body["score"] == 2
    assert body["total_questions"] == 3
    assert body["submitted_at"]
    assert await _count(Answer, participation_id=pid) == 3

    score = await client.get(f"/participations/contests/{contest.id}/score", headers=user.headers)
    assert score.status_code == 200
    assert score.json()["score"] == 2
    assert score.json()["status"] == "submitted"

@pytest.mark.asyncio
async def test_cannot_submit_or_rejoin_twice(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    await client.post(f"/participations/contests/{contest.id}/join", headers=user.headers)
    r = await client.post(f"/participations/contests/{contest.id}/submit", headers=user.headers, json={"answers": contest.answers()})
    assert r.status_code == 200

    again = await client.post(f"/participations/contests/{contest.id}/submit", headers=user.headers, json={"answers": contest.answers()})
    assert again.status_code == 404
    rejoin = await client.post(f"/participations/contests/{contest.id}/join", headers=user.headers)
    assert rejoin.status_code == 400
    assert "already submitted" in rejoin.json()["message"]

@pytest.mark.asyncio
async def test_submit_without_join(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    r = await client.post(f"/participations/contests/{contest.id}/submit", headers=user.headers, json={"answers": contest.answers()})
    assert r.status_code == 404

@pytest.mark.asyncio
async def test_incomplete_submission_writes_nothing(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    joined = await client.post(f"/participations/contests/{contest.id}/join", headers=user.headers)
    pid = uuid.UUID(joined.json()["participation_id"])

    partial = contest.answers()[:2]
    r = await client.post(f"/participations/contests/{contest.id}/submit", headers=user.headers, json={"answers": partial})
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "BAD_REQUEST"
    assert body["details"][0]["code"] == "UNANSWERED_QUESTION"
    assert body["details"][0]["question_id"] == str(contest.questions[2].id)

    assert await _count(Answer, participation_id=pid) == 0
    async with SessionLocal() as s:
        p = await s.get(Participation, pid)
        assert p.status == "in-progress"
        assert p.submitted_at is None

    # the attempt is still open and can be completed
    r = await client.post(f"/participations/contests/{contest.id}/submit", headers=user.headers, json={"answers": contest.answers()})
    assert r.status_code == 200
    assert r.json()["score"] == 3

@pytest.mark.asyncio
async def test_submit_rejects_foreign_option(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    await client.post(f"/participations/contests/{contest.id}/join", headers=user.headers)
    answers = contest.answers()
    # option of question 2 given as the answer to question 1
    answers[0]["option_ids"] = [str(contest.questions[1].option_ids[0])]
    r = await client.post(f"/participations/contests/{contest.id}/submit", headers=user.headers, json={"answers": answers})
    assert r.status_code == 400
    assert r.json()["details"][0]["code"] == "UNKNOWN_OPTION"

@pytest.mark.asyncio
async def test_submit_after_contest_ended(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    await client.post(f"/participations/contests/{contest.id}/join", headers=user.headers)
    await factory.end_contest(contest)
    r = await client.post(f"/participations/contests/{contest.id}/submit", headers=user.headers, json={"answers": contest.answers()})
    assert r.status_code == 400
    assert "ended" in r.json()["message"]

@pytest.mark.asyncio
async def test_empty_option_list_is_a_validation_error(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    await client.post(f"/participations/contests/{contest.id}/join", headers=user.headers)
    answers = contest.answers()
    answers[0]["option_ids"] = []
    r = await client.post(f"/participations/contests/{contest.id}/submit", headers=user.headers, json={"answers": answers})
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"

@pytest.mark.asyncio
async def test_score_without_participation(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    r = await client.get(f"/participations/contests/{contest.id}/score", headers=user.headers)
    assert r.status_code == 404

@pytest.mark.asyncio
async def test_in_progress_list(client, factory):
    admin = await factory.user("admin")
    user = await factory.user()
    open_contest = await factory.contest(admin)
    done_contest = await factory.contest(admin)
    await client.post(f"/participations/contests/{open_contest.id}/join", headers=user.headers)
    await client.post(f"/participations/contests/{done_contest.id}/join", headers=user.headers)
    await client.post(f"/participations/contests/{done_contest.id}/submit", headers=user.headers, json={"answers": done_contest.answers()})

    r = await client.get("/leaderboard/user/in-progress", headers=user.headers)
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 1
    assert body["participations"][0]["contest_id"] == str(open_contest.id)

@pytest.mark.asyncio
async def test_join_race_returns_winner_row(factory, uow, monkeypatch):
    """Losing the insert race on the unique (user, contest) key hands back the existing attempt."""
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    first = await join_contest(uow, user.principal, contest.id)

    original = ParticipationRepository.get_for_user
    calls = {"n": 0}

    async def stale_read(self, user_id, contest_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return None  # as if the other request had not committed yet
        return await original(self, user_id, contest_id)

    monkeypatch.setattr(ParticipationRepository, "get_for_user", stale_read)
    second = await join_contest(uow, user.principal, contest.id)
    assert calls["n"] == 2
    assert second.participation_id == first.participation_id
    assert await _count(Participation, contest_id=contest.id) == 1

@pytest.mark.asyncio
async def test_submit_loses_to_concurrent_submit(factory, uow, monkeypatch):
    """The attempt is flipped by another request between the locked read and the update."""
    admin = await factory.user("admin")
    user = await factory.user()
    contest = await factory.contest(admin)
    joined = await join_contest(uow, user.principal, contest.id)
    answers = [AnswerIn.model_validate(a) for a in contest.answers()]

    original = ParticipationRepository.get_in_progress_for_update

    async def read_then_other_submit(self, user_id, contest_id):
        p = await original(self, user_id, contest_id)
        async with SessionLocal() as other:
            await other.execute(
                update(Participation)
                .where(Participation.id == p.id)
                .values(status="submitted", score=2, submitted_at=utcnow())
            )
            await other.commit()
        return p

    monkeypatch.setattr(ParticipationRepository, "get_in_progress_for_update", read_then_other_submit)
    with pytest.raises(NotFound) as exc:
        await submit_answers(uow, user.principal, contest.id, answers)
    assert exc.value.status_code == 404

    assert await _count(Answer, participation_id=joined.participation_id) == 0
    async with SessionLocal() as s:
        p = await s.get(Participation, joined.participation_id)
        assert p.status == "submitted"
        assert p.score == 2

@pytest.mark.asyncio
async def test_vip_contest_rejects_normal_user_on_submit_and_late_join(client, factory):
    admin = await factory.user("admin")
    normal = await factory.user("normal")
    contest = await factory.contest(admin, access_level="vip")

    r = await client.post(f"/participations/contests/{contest.id}/submit", headers=normal.headers, json={"answers": contest.answers()})
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"

    now = utcnow()
    ended = await factory.contest(admin, access_level="vip", starts_at=now - timedelta(days=1), ends_at=now - timedelta(hours=1))
    r = await client.post(f"/participations/contests/{ended.id}/join", headers=normal.headers)
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"
    assert await _count(Participation, user_id=normal.id) == 0
