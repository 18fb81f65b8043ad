# clinic/modules/users/service.py
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from clinic.modules.log import write_audit_log
from clinic.modules.users import repository as users_repo
from clinic.modules.users.models import User
from clinic.modules.users.schemas import LoginRequest, RegisterRequest, TokenPair, UserPublic


# Service-level errors (map them to HTTP in the router)
class EmailAlreadyExists(Exception):
    pass


class InvalidCredentials(Exception):
    pass


def to_public(user: User) -> UserPublic:
    return UserPublic.model_validate(user)


async def register_user(session: AsyncSession, payload: RegisterRequest) -> UserPublic:
    """
    1) Check email uniqueness.
    2) Hash password.
    3) Persist the account with the requested role.
    """
    existing = await users_repo.get_by_email(session, payload.email)
    if existing:
        raise EmailAlreadyExists("email_already_exists")

    try:
        user = await users_repo.create_user(
            session,
            email=payload.email,
            password_hash=hash_password(payload.password.get_secret_value()),
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            role=payload.role.value,
        )
    except users_repo.EmailAlreadyExistsError as exc:
        raise EmailAlreadyExists("email_already_exists") from exc

    await write_audit_log(session, user.id, "REGISTER", f"role={user.role}")
    return to_public(user)


async def login_user(session: AsyncSession, payload: LoginRequest) -> TokenPair:
    user = await users_repo.get_by_email(session, payload.email)
    if not user or not user.is_active:
        raise InvalidCredentials("invalid_credentials")

    if not verify_password(payload.password.get_secret_value(), user.password_hash):
        raise InvalidCredentials("invalid_credentials")

    access = create_access_token(subject=str(user.id), email=user.email, role=user.role)
    return TokenPair(
        access_token=access,
        expires_in=settings.ACCESS_EXPIRES_MIN * 60,
        refresh_token=create_refresh_token(subject=str(user.id)),
    )
