# clinic/dependencies.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.security import InvalidTokenError, decode_token, is_access_token
from clinic.db.sql import get_session
from clinic.modules.users.models import User, UserRole
from clinic.modules.users.repository import get_by_id

# Swagger's "Authorize" button posts the staff credentials to /auth/token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _staff_id(payload: dict) -> Optional[UUID]:
    try:
        return UUID(str(payload.get("sub")))
    except ValueError:
        return None


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Staff member behind the bearer access token; must be active."""
    try:
        payload = decode_token(token)
    except InvalidTokenError:
        raise _unauthorized("invalid_token")
    if not is_access_token(payload):
        raise _unauthorized("invalid_token_type")

    staff_id = _staff_id(payload)
    user = await get_by_id(session, staff_id) if staff_id else None
    if user is None:
        raise _unauthorized("user_not_found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="user_inactive")
    return user


def require_roles(*roles: UserRole):
    """
    Restrict a route to some staff roles, e.g.
    `Depends(require_roles(UserRole.DENTIST, UserRole.ADMIN))` for catalog writes.
    """
    allowed = frozenset(role.value for role in roles)

    async def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="insufficient_role",
            )
        return user

    return _guard
