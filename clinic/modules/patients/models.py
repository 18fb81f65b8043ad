# clinic/modules/patients/models.py
from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from clinic.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class Patient(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    __tablename__ = "patients"

    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)

    __table_args__ = (Index("ix_patients_name", "last_name", "first_name"),)

    @property
    def full_name(self) -> str:
        return f"{self.last_name} {self.first_name}"
