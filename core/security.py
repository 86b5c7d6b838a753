# core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError, ExpiredSignatureError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.errors import AuthenticationError, AuthorizationError
from models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Подписать access-токен. Используется сидером и тестами, логина в сервисе нет."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "user_id": user_id,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: Optional[str]) -> int:
    """
    Проверить bearer-токен и вернуть id пользователя.

    Истёкший и невалидный токен различаются кодом ошибки (TOKEN_EXPIRED /
    TOKEN_INVALID), чтобы клиент понимал, что нужно переавторизоваться.
    """
    if not token:
        raise AuthenticationError("Access token not provided", code="TOKEN_MISSING")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Access token expired", code="TOKEN_EXPIRED")
    except JWTError:
        raise AuthenticationError("Invalid access token", code="TOKEN_INVALID")

    user_id = payload.get("user_id")
    if not isinstance(user_id, int):
        raise AuthenticationError("Invalid access token: user id missing", code="TOKEN_INVALID")
    return user_id


def bearer_from_header(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = credentials.credentials if credentials else None
    user_id = verify_access_token(token)

    user = await db.get(User, user_id)
    if not user:
        raise AuthenticationError("User not found", code="TOKEN_INVALID")
    return user


async def get_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise AuthorizationError(
            "Your account has been deactivated",
            code="ACCOUNT_DEACTIVATED",
        )
    return current_user
