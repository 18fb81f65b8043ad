# clinic/modules/appointments/models.py
from __future__ import annotations

import datetime as dt
import uuid
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin
from clinic.modules.patients.models import Patient
from clinic.modules.rooms.models import Room
from clinic.modules.users.models import User


class ApptStatus(PyEnum):
    CONFIRMED = "confirmed"
    CANCELED = "canceled"


class Appointment(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    Rendez-vous. The window is [start_date, end_date); canceled rows are
    kept and ignored by conflict detection.
    """

    __tablename__ = "appointments"

    start_date: Mapped[dt.datetime] = mapped_column(nullable=False)
    end_date: Mapped[dt.datetime] = mapped_column(nullable=False)

    practitioner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    room_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("rooms.id", ondelete="RESTRICT"),
        nullable=False,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
    )

    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ApptStatus.CONFIRMED.value,
        server_default=ApptStatus.CONFIRMED.value,
    )

    practitioner: Mapped[Optional[User]] = relationship(
        "User",
        foreign_keys=[practitioner_id],
        lazy="joined",
    )
    patient: Mapped[Optional[Patient]] = relationship("Patient", lazy="joined")
    room: Mapped[Optional[Room]] = relationship("Room", lazy="joined")

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_appt_window_order"),
        CheckConstraint(
            "status IN ('confirmed', 'canceled')", name="ck_appt_status_valid"
        ),
        Index("ix_appt_practitioner_start", "practitioner_id", "start_date"),
        Index("ix_appt_patient_start", "patient_id", "start_date"),
    )
