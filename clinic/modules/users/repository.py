# clinic/modules/users/repository.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.modules.users.models import User, UserRole


class EmailAlreadyExistsError(Exception):
    """Raised when trying to insert a user with an email that already exists."""


class InvalidUserDataError(Exception):
    """Raised when DB-level constraints fail (e.g., bad CHECK constraints)."""


async def get_by_id(session: AsyncSession, user_id: UUID) -> Optional[User]:
    return await session.get(User, user_id)


async def get_by_email(session: AsyncSession, email: str) -> Optional[User]:
    """
    Returns a User by email (normalized to lowercase) or None.
    """
    stmt = select(User).where(User.email == email.strip().lower())
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_practitioner_for_update(
    session: AsyncSession, practitioner_id: UUID
) -> Optional[User]:
    """
    Active dentist row, locked FOR UPDATE until the end of the transaction.
    Booking writes for one practitioner queue up behind this lock.
    """
    stmt = (
        select(User)
        .where(
            User.id == practitioner_id,
            User.role == UserRole.DENTIST.value,
            User.is_active.is_(True),
        )
        .with_for_update()
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str,
    phone: Optional[str] = None,
    role: UserRole | str = UserRole.ASSISTANT,
) -> User:
    """
    Inserts a new staff account. Expects an already *hashed* password.
    """
    role_value = role.value if isinstance(role, UserRole) else str(role)

    user = User(
        email=email.strip().lower(),
        password_hash=password_hash,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=phone,
        role=role_value,
        is_active=True,
    )

    session.add(user)
    try:
        # Flush to force INSERT and surface constraint violations here
        await session.flush()
    except IntegrityError as exc:
        message = str(exc.orig).lower() if exc.orig else str(exc).lower()
        if "uq_users_email" in message or "unique" in message:
            raise EmailAlreadyExistsError("Email already registered") from exc
        raise InvalidUserDataError("Failed to insert user") from exc

    await session.refresh(user)
    return user
