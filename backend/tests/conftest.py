from __future__ import annotations
import os
import tempfile
import uuid

# must be set before quizarena.config is imported
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), f'quizarena-test-{os.getpid()}.db')}",
)
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import httpx
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import event, update
from quizarena.db import Base, engine, SessionLocal, utcnow
from quizarena.main import app
from quizarena.models.contest import Contest, Question, Option
from quizarena.models.participation import Participation
from quizarena.models.user import User
from quizarena.repositories.unit_of_work import UnitOfWork
from quizarena.security import Principal, hash_password, make_access_token
from quizarena.services.cache import MemoryCache, set_cache

PASSWORD = "supersecret"
_PASSWORD_HASH = hash_password(PASSWORD)

if engine.dialect.name == "sqlite":
    # cascading deletes need FK enforcement, which SQLite leaves off by default
    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_fk_pragma(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


@dataclass
class SeededUser:
    id: uuid.UUID
    username: str
    role: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_access_token(str(self.id), self.role)}"}

    @property
    def principal(self) -> Principal:
        return Principal(id=self.id, role=self.role, username=self.username)


@dataclass
class SeededQuestion:
    id: uuid.UUID
    type: str
    option_ids: list[uuid.UUID]
    correct_ids: list[uuid.UUID]

    @property
    def wrong_ids(self) -> list[uuid.UUID]:
        return [o for o in self.option_ids if o not in self.correct_ids]

    def answer(self, correct: bool = True) -> dict:
        picked = self.correct_ids if correct else self.wrong_ids[:1]
        return {"question_id": str(self.id), "option_ids": [str(o) for o in picked]}


@dataclass
class SeededContest:
    id: uuid.UUID
    name: str
    questions: list[SeededQuestion] = field(default_factory=list)

    def answers(self, correct: int | None = None) -> list[dict]:
        """Full answer set; the first `correct` questions are answered right, the rest wrong."""
        n = len(self.questions) if correct is None else correct
        return [q.answer(correct=i < n) for i, q in enumerate(self.questions)]


DEFAULT_QUESTIONS = [
    ("What is the capital of France?", "single-select", [("Paris", True), ("Lyon", False), ("Nice", False)]),
    ("Which of these are primes?", "multi-select", [("2", True), ("3", True), ("4", False), ("6", False)]),
    ("The earth orbits the sun.", "true-false", [("True", True), ("False", False)]),
]


class Factory:
    """Direct-to-database builders for test fixtures."""

    async def user(self, role: str = "normal", username: str | None = None) -> SeededUser:
        username = username or f"user_{uuid.uuid4().hex[:8]}"
        async with SessionLocal() as s:
            u = User(
                username=username,
                email=f"{username}@example.com",
                password_hash=_PASSWORD_HASH,
                role=role,
            )
            s.add(u)
            await s.commit()
            return SeededUser(id=u.id, username=username, role=role)

    async def contest(
        self,
        creator: SeededUser,
        *,
        starts_at: datetime | None = None,
        ends_at: datetime | None = None,
        access_level: str = "normal",
        questions=DEFAULT_QUESTIONS,
        name: str | None = None,
    ) -> SeededContest:
        now = utcnow()
        starts_at = starts_at or now - timedelta(hours=1)
        ends_at = ends_at or now + timedelta(hours=1)
        async with SessionLocal() as s:
            c = Contest(
                creator_id=creator.id,
                name=name or f"Contest {uuid.uuid4().hex[:6]}",
                description="General knowledge",
                starts_at=starts_at,
                ends_at=ends_at,
                access_level=access_level,
                questions=[
                    Question(
                        position=qi,
                        text=text,
                        type=qtype,
                        options=[Option(position=oi, text=t, is_correct=ok) for oi, (t, ok) in enumerate(opts)],
                    )
                    for qi, (text, qtype, opts) in enumerate(questions)
                ],
            )
            s.add(c)
            await s.commit()
            return SeededContest(
                id=c.id,
                name=c.name,
                questions=[
                    SeededQuestion(
                        id=q.id,
                        type=q.type,
                        option_ids=[o.id for o in q.options],
                        correct_ids=[o.id for o in q.options if o.is_correct],
                    )
                    for q in c.questions
                ],
            )

    async def end_contest(self, contest: SeededContest) -> None:
        now = utcnow()
        async with SessionLocal() as s:
            await s.execute(
                update(Contest)
                .where(Contest.id == contest.id)
                .values(starts_at=now - timedelta(days=1), ends_at=now - timedelta(seconds=1))
            )
            await s.commit()

    async def submitted(
        self, user: SeededUser, contest: SeededContest, *, score: int, submitted_at: datetime | None = None
    ) -> uuid.UUID:
        """Insert a finished attempt without going through the submit flow."""
        now = utcnow()
        async with SessionLocal() as s:
            p = Participation(
                user_id=user.id,
                contest_id=contest.id,
                status="submitted",
                score=score,
                started_at=now - timedelta(minutes=30),
                submitted_at=submitted_at or now,
            )
            s.add(p)
            await s.commit()
            return p.id


@pytest_asyncio.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    set_cache(MemoryCache())
    yield
    set_cache(None)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(db):
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def factory(db) -> Factory:
    return Factory()


@pytest_asyncio.fixture
async def uow(db):
    async with SessionLocal() as session:
        yield UnitOfWork(session)
