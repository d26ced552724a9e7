from __future__ import annotations
from pydantic import BaseModel, Field
from typing import List
from uuid import UUID
from datetime import datetime

class PrizeIn(BaseModel):
    rank: int = Field(ge=1)
    prize_details: str = Field(min_length=1, max_length=1000)

class PrizeCreateRequest(BaseModel):
    prizes: List[PrizeIn] = Field(min_length=1)

class PrizePublic(BaseModel):
    id: UUID
    contest_id: UUID
    rank: int
    prize_details: str
    user_id: UUID | None = None
    awarded: bool
    awarded_at: datetime | None = None
    claimed: bool
    claimed_at: datetime | None = None

class Winner(BaseModel):
    user_id: UUID
    username: str
    score: int

class AwardedPrize(BaseModel):
    prize: PrizePublic
    winner: Winner

class PrizeWinner(BaseModel):
    id: UUID
    username: str

class ContestPrizeRow(BaseModel):
    id: UUID
    rank: int
    prize_details: str
    awarded: bool
    awarded_at: datetime | None = None
    claimed: bool
    claimed_at: datetime | None = None
    winner: PrizeWinner | None = None

class ContestPrizes(BaseModel):
    contest_id: UUID
    contest_name: str
    prizes: list[ContestPrizeRow]

class UserPrizeRow(BaseModel):
    id: UUID
    contest_id: UUID
    contest_name: str
    rank: int
    prize_details: str
    awarded_at: datetime | None = None
    claimed: bool

class UserPrizes(BaseModel):
    count: int
    prizes: list[UserPrizeRow]
