# clinic/db/base.py
from __future__ import annotations

import datetime as dt
import uuid
from typing import Any

from sqlalchemy import DateTime, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Monetary columns: exact decimal, two fractional digits.
Money = Numeric(12, 2, asdecimal=True)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    type_annotation_map = {
        dt.datetime: DateTime(timezone=True),
    }


class UUIDPKMixin:
    """UUID (v4) primary key."""

    id: Mapped[uuid.UUID] = mapped_column(default=uuid.uuid4, primary_key=True)


class TimestampMixin:
    """Server-side creation / update timestamps."""

    created_at: Mapped[dt.datetime] = mapped_column(
        nullable=False, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        nullable=False, server_default=func.now(), onupdate=func.now()
    )


class ReprMixin:
    """__repr__ for debugging and log lines."""

    def __repr__(self) -> str:
        cols: list[str] = []
        for k in getattr(self, "__mapper__").c.keys():
            v: Any = getattr(self, k, None)
            if k == "password_hash":
                v = "***"
            cols.append(f"{k}={v!r}")
        return f"<{self.__class__.__name__} {' '.join(cols)}>"


__all__ = ["Base", "Money", "UUIDPKMixin", "TimestampMixin", "ReprMixin"]
