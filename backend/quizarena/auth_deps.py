from __future__ import annotations
import uuid
import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from quizarena.db import get_session
from quizarena.errors import Unauthorized, Forbidden
from quizarena.security import decode_token, Principal
from quizarena.models.user import User

security = HTTPBearer(auto_error=False)

async def _principal_from_token(token: str, session: AsyncSession) -> Principal:
    try:
        data = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.PyJWTError:
        raise Unauthorized("Invalid token")
    if data.get("type") != "access":
        raise Unauthorized("Wrong token type")
    try:
        user_id = uuid.UUID(str(data.get("sub")))
    except ValueError:
        raise Unauthorized("Invalid token")
    user = await session.get(User, user_id)
    if not user:
        raise Unauthorized("User not found")
    # role is read from the database so role changes apply to live tokens
    return Principal(id=user.id, role=user.role, username=user.username)

async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> Principal:
    if credentials is None:
        raise Unauthorized("Authentication required")
    return await _principal_from_token(credentials.credentials, session)

async def get_optional_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> Principal:
    """Public endpoints: anonymous callers are treated as role 'guest'."""
    if credentials is None:
        return Principal.guest()
    return await _principal_from_token(credentials.credentials, session)

async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise Forbidden("You do not have permission to access this resource")
    return principal
