from __future__ import annotations
from pydantic import BaseModel, EmailStr, Field, field_validator
from uuid import UUID
from datetime import datetime
from typing import Literal

Role = Literal["admin", "vip", "normal", "guest"]

class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=8, max_length=128)
    # self-service sign-up can only create regular accounts
    role: Literal["normal", "guest"] = "normal"

    @field_validator("username")
    @classmethod
    def lower(cls, v: str) -> str:
        return v.lower()

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class UserPublic(BaseModel):
    id: UUID
    email: EmailStr
    username: str
    role: Role
    created_at: datetime

class TokenPair(BaseModel):
    access: str
    refresh: str
