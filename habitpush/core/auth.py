"""
Caller identification for the reminder endpoints.
Tokens are issued by the main application; we only verify them.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_async_session
from habitpush.core.error_handling import UnauthorizedException
from habitpush.models import User

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
        "type": "access",
        "jti": secrets.token_hex(8),
    })

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise UnauthorizedException("Invalid token") from e
    if payload.get("type") != "access":
        raise UnauthorizedException("Invalid token type")
    return payload


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """Resolve the calling user from the bearer token (sub = user id)"""
    if credentials is None:
        raise UnauthorizedException("Missing bearer token")

    payload = decode_access_token(credentials.credentials)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError) as e:
        raise UnauthorizedException("Invalid token subject") from e

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthorizedException("User not found")
    return user
