# clinic/db/sql.py
from __future__ import annotations

import logging
import uuid
from typing import Any, AsyncIterator

from fastapi import Request
from sqlalchemy import event, insert, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clinic.core.config import settings
from clinic.core.security import InvalidTokenError, decode_token
from clinic.modules.users.models import AuditLog

logger = logging.getLogger(__name__)


def _engine_options(dsn: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
    # SQLite (tests) gets the driver's default pool; no sizing knobs there.
    if not dsn.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )
    return options


engine = create_async_engine(settings.SQL_DSN, **_engine_options(settings.SQL_DSN))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    class_=AsyncSession,
)


def install_sqlite_hooks(async_engine: AsyncEngine) -> None:
    """
    pysqlite defers BEGIN on its own, which breaks SAVEPOINT and rollback;
    hand transaction control to SQLAlchemy and turn FK checks on.
    """
    sync_engine = async_engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sync_engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")


if engine.dialect.name == "sqlite":
    install_sqlite_hooks(engine)


def _user_id_from_request(request: Request) -> uuid.UUID | None:
    token = request.headers.get("Authorization", "").replace("Bearer ", "")
    if not token:
        return None
    try:
        return uuid.UUID(str(decode_token(token).get("sub")))
    except (InvalidTokenError, ValueError):
        return None


async def _audit(session: AsyncSession, user_id, action: str, details: str) -> None:
    if not settings.AUDIT_REQUESTS:
        return
    try:
        await session.execute(
            insert(AuditLog).values(user_id=user_id, action=action, details=details)
        )
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.warning("audit log write failed", extra={"action": action})


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    The whole request is one transaction: commit on success, rollback on
    any exception (HTTPException included), then write a COMMIT/ROLLBACK
    audit row.
    """
    async with AsyncSessionLocal() as session:
        user_id = _user_id_from_request(request)
        action = f"{request.method} {request.url.path}"

        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            await _audit(session, user_id, f"{action} ROLLBACK", str(exc)[:500])
            raise

        await _audit(session, user_id, f"{action} COMMIT", "Operation completed successfully")


async def ping_db() -> str | None:
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))
        if engine.dialect.name == "postgresql":
            result = await session.execute(text("SHOW server_version"))
            return result.scalar_one_or_none()
        return engine.dialect.name


async def init_db(drop: bool = False) -> None:
    """
    Create all tables (dev / tests). Production schema goes through Alembic.
    """
    from clinic import models  # noqa: F401  registers every mapper
    from clinic.db.base import Base

    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
