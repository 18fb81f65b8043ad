# clinic/modules/treatments/models.py
from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from clinic.db.base import Base, Money, TimestampMixin, ReprMixin


def _new_code() -> str:
    return f"S{uuid.uuid4().hex[:8].upper()}"


class Treatment(TimestampMixin, ReprMixin, Base):
    """Catalog entry (soin). Shared by invoice line items, never owned."""

    __tablename__ = "treatments"

    code: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_code)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    category: Mapped[str] = mapped_column(String(80), nullable=False, index=True)

    __table_args__ = (CheckConstraint("price > 0", name="ck_treatments_price_positive"),)
