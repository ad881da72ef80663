"""Request dependencies: a database session and the authenticated user."""

from collections.abc import AsyncIterator

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from chord.core.security import ACCESS_TOKEN_TYPE, decode_token
from chord.db.session import get_session
from chord.models.user import User
from chord.services import user_service

# Access tokens are minted by the auth service; this API only verifies them.
bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    session: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    cookie_token: str | None = Cookie(default=None, alias="access_token"),
) -> User:
    """Resolve the bearer (or ``access_token`` cookie) JWT to an active user and note the activity."""
    raw = credentials.credentials if credentials else cookie_token
    payload = decode_token(raw, expected_type=ACCESS_TOKEN_TYPE) if raw else None
    if payload is None:
        raise _unauthorized("Invalid token")
    user = await user_service.get_user_by_id(session, payload["sub"])
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account deactivated")
    await user_service.touch_activity(session, user)
    return user
