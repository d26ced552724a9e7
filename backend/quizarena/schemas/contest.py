from __future__ import annotations
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Literal, List
from uuid import UUID
from datetime import datetime, timezone
from quizarena.schemas.common import Pagination

AccessLevel = Literal["normal", "vip"]
QuestionType = Literal["single-select", "multi-select", "true-false"]
ContestStatus = Literal["upcoming", "ongoing", "ended"]

def as_utc(v: datetime | None) -> datetime | None:
    # naive timestamps are read as UTC
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)

class OptionCreate(BaseModel):
    text: str = Field(min_length=1, max_length=200)
    is_correct: bool

class QuestionCreate(BaseModel):
    text: str = Field(min_length=5, max_length=500)
    type: QuestionType
    options: List[OptionCreate] = Field(min_length=2)

    @model_validator(mode="after")
    def check_options(self):
        correct = sum(1 for o in self.options if o.is_correct)
        if self.type == "true-false" and len(self.options) != 2:
            raise ValueError("true-false questions must have exactly 2 options")
        if self.type in ("single-select", "true-false") and correct != 1:
            raise ValueError(f"{self.type} questions must have exactly one correct option")
        if self.type == "multi-select" and correct < 1:
            raise ValueError("multi-select questions must have at least one correct option")
        return self

class ContestCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: str = Field(default="", max_length=2000)
    starts_at: datetime
    ends_at: datetime
    access_level: AccessLevel = "normal"
    prize_information: str | None = Field(default=None, max_length=1000)
    questions: List[QuestionCreate] = Field(min_length=1)

    utc_window = field_validator("starts_at", "ends_at")(as_utc)

class ContestUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    access_level: AccessLevel | None = None
    prize_information: str | None = Field(default=None, max_length=1000)

    utc_window = field_validator("starts_at", "ends_at")(as_utc)

class OptionPublic(BaseModel):
    id: UUID
    text: str
    # only populated for admins
    is_correct: bool | None = None

class QuestionPublic(BaseModel):
    id: UUID
    text: str
    type: QuestionType
    options: list[OptionPublic]

class ContestSummary(BaseModel):
    id: UUID
    name: str
    description: str
    starts_at: datetime
    ends_at: datetime
    access_level: AccessLevel
    prize_information: str | None = None
    creator_id: UUID
    status: ContestStatus
    created_at: datetime

class ContestDetail(ContestSummary):
    questions: list[QuestionPublic]

class ContestList(BaseModel):
    pagination: Pagination
    contests: list[ContestSummary]
