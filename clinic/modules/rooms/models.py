# clinic/modules/rooms/models.py
from __future__ import annotations

from sqlalchemy import CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinic.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class Room(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """Consultation room (salle de consultation)."""

    __tablename__ = "rooms"

    number: Mapped[str] = mapped_column(String(20), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("number", name="uq_rooms_number"),
        CheckConstraint("capacity > 0", name="ck_rooms_capacity_positive"),
    )
