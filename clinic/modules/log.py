from __future__ import annotations

from uuid import UUID

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.modules.users.models import AuditLog


async def write_audit_log(
    session: AsyncSession,
    user_id: UUID | None,
    action: str,
    details: str | None = None,
):
    """
    Write an audit log entry inside the caller's transaction
    (rolled back together with the business write).

    action:
        "REGISTER"
        "CREATE_APPOINTMENT"
        "CANCEL_APPOINTMENT"
        "ADD_LINE_ITEM"
    """
    stmt = insert(AuditLog).values(
        user_id=user_id,
        action=action,
        details=details,
    )
    await session.execute(stmt)
