from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal, List
from uuid import UUID
from datetime import datetime

ParticipationStatus = Literal["in-progress", "submitted"]

class JoinResult(BaseModel):
    participation_id: UUID
    contest_id: UUID
    status: ParticipationStatus
    started_at: datetime
    question_count: int

class AnswerIn(BaseModel):
    question_id: UUID
    option_ids: List[UUID] = Field(min_length=1)

class SubmitRequest(BaseModel):
    answers: List[AnswerIn]

class SubmitResult(BaseModel):
    participation_id: UUID
    contest_id: UUID
    status: ParticipationStatus
    score: int
    total_questions: int
    started_at: datetime
    submitted_at: datetime

class ContestScore(BaseModel):
    contest_id: UUID
    contest_name: str
    score: int
    status: ParticipationStatus
    submitted_at: datetime | None = None

class InProgressItem(BaseModel):
    id: UUID
    contest_id: UUID
    contest_name: str
    description: str
    started_at: datetime
    ends_at: datetime

class InProgressList(BaseModel):
    count: int
    participations: list[InProgressItem]
