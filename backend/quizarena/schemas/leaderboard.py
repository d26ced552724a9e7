from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from quizarena.schemas.common import Pagination
from quizarena.schemas.contest import ContestStatus
from quizarena.schemas.participation import ParticipationStatus

class LeaderboardContest(BaseModel):
    id: UUID
    name: str
    status: ContestStatus

class RankingRow(BaseModel):
    rank: int
    user_id: UUID
    username: str
    score: int
    submitted_at: datetime

class Leaderboard(BaseModel):
    contest: LeaderboardContest
    pagination: Pagination
    rankings: list[RankingRow]

class HistoryRow(BaseModel):
    id: UUID
    contest_id: UUID
    contest_name: str
    status: ParticipationStatus
    score: int
    rank: int | None = None
    submitted_at: datetime | None = None

class UserHistory(BaseModel):
    pagination: Pagination
    history: list[HistoryRow]
