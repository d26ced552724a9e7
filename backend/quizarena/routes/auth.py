from __future__ import annotations
import uuid
import jwt
from fastapi import APIRouter, Depends, Header
from quizarena.auth_deps import get_current_principal
from quizarena.errors import Conflict, NotFound, Unauthorized
from quizarena.models.user import User
from quizarena.repositories.unit_of_work import UnitOfWork, get_uow
from quizarena.schemas.auth import RegisterRequest, LoginRequest, UserPublic, TokenPair
from quizarena.security import Principal, hash_password, verify_password, make_access_token, make_refresh_token, decode_token
import structlog

router = APIRouter(prefix="/auth", tags=["auth"])
log = structlog.get_logger()

def _public(user: User) -> UserPublic:
    return UserPublic(id=user.id, email=user.email, username=user.username, role=user.role, created_at=user.created_at)

@router.post("/register", status_code=201, response_model=UserPublic)
async def register(payload: RegisterRequest, uow: UnitOfWork = Depends(get_uow)):
    async with uow:
        if await uow.users.get_by_email(payload.email):
            raise Conflict("Email already registered")
        if await uow.users.get_by_username(payload.username):
            raise Conflict("Username already taken")
        user = uow.users.add(User(
            email=payload.email,
            username=payload.username,
            password_hash=hash_password(payload.password),
            role=payload.role,
        ))
        await uow.session.flush()
        result = _public(user)
    log.info("user_registered", user_id=str(result.id), role=result.role)
    return result

@router.post("/login", response_model=TokenPair)
async def login(payload: LoginRequest, uow: UnitOfWork = Depends(get_uow)):
    user = await uow.users.get_by_email(payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise Unauthorized("Invalid credentials")
    return TokenPair(access=make_access_token(str(user.id), user.role), refresh=make_refresh_token(str(user.id)))

@router.post("/refresh", response_model=TokenPair)
async def refresh(authorization: str | None = Header(None), uow: UnitOfWork = Depends(get_uow)):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthorized("Missing refresh token")
    token = authorization.split(" ", 1)[1]
    try:
        data = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.PyJWTError:
        raise Unauthorized("Invalid token")
    if data.get("type") != "refresh":
        raise Unauthorized("Wrong token type")
    sub = data.get("sub")
    try:
        user = await uow.users.get(uuid.UUID(str(sub)))
    except ValueError:
        raise Unauthorized("Invalid token")
    if not user:
        raise Unauthorized("User not found")
    return TokenPair(access=make_access_token(sub, user.role), refresh=make_refresh_token(sub))

@router.get("/me", response_model=UserPublic)
async def me(principal: Principal = Depends(get_current_principal), uow: UnitOfWork = Depends(get_uow)):
    user = await uow.users.get(principal.id)
    if not user:
        raise NotFound("User not found")
    return _public(user)
