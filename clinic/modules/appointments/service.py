# clinic/modules/appointments/service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.clock import Clock
from clinic.core.errors import (
    AppointmentCanceled,
    NotFound,
    PastDate,
    SchedulingConflict,
    UnexpectedError,
)
from clinic.core.responses import Page
from clinic.core.validation import (
    as_utc,
    combine_date_and_time,
    parse_calendar_date,
    parse_clock_time,
    require_fields,
    require_positive_int,
)
from clinic.modules.appointments.models import Appointment, ApptStatus
from clinic.modules.appointments.schemas import (
    AppointmentCreateRequest,
    AppointmentPublic,
    AppointmentUpdateRequest,
)
from clinic.modules.log import write_audit_log
from clinic.modules.patients.service import get_patient
from clinic.modules.rooms.service import get_room
from clinic.modules.users.repository import get_practitioner_for_update

logger = logging.getLogger(__name__)

BOOKING_FIELDS = (
    "date",
    "time",
    "duration_minutes",
    "patient_id",
    "room_id",
    "practitioner_id",
    "reason",
    "notes",
)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open [start, end) interval in UTC."""

    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(frozen=True)
class ConflictResult:
    conflicting_ids: Tuple[UUID, ...] = ()

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicting_ids)

    def __bool__(self) -> bool:
        return self.has_conflict


NO_CONFLICT = ConflictResult()


def windows_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # Touching windows (a_end == b_start) do not overlap.
    return a_start < b_end and a_end > b_start


def compute_window(date: Any, time: Any, duration_minutes: Any, clock: Clock) -> TimeWindow:
    """
    Combine a calendar date and a clock time into an absolute UTC window.

    Raises InvalidFormat for a malformed date/time, InvalidValue for a
    non-positive duration and PastDate when the window starts before now.
    """
    day = parse_calendar_date(date)
    at = parse_clock_time(time)
    minutes = require_positive_int(duration_minutes, "duree")

    start = combine_date_and_time(day, at)
    if start < clock.now():
        raise PastDate()
    return TimeWindow(start=start, end=start + timedelta(minutes=minutes))


def _rescheduled_window(
    current: TimeWindow, payload: AppointmentUpdateRequest, clock: Clock
) -> TimeWindow:
    duration = (
        payload.duration_minutes
        if payload.duration_minutes is not None
        else current.duration_minutes
    )
    if payload.date or payload.time:
        return compute_window(
            payload.date or current.start.date().isoformat(),
            payload.time or current.start.strftime("%H:%M"),
            duration,
            clock,
        )
    if payload.duration_minutes is not None:
        minutes = require_positive_int(payload.duration_minutes, "duree")
        return TimeWindow(start=current.start, end=current.start + timedelta(minutes=minutes))
    return current


async def check_conflict(
    session: AsyncSession,
    practitioner_id: UUID,
    window: TimeWindow,
    exclude_id: Optional[UUID] = None,
) -> ConflictResult:
    """
    Confirmed appointments of the practitioner intersecting the window.
    Exact start/end equality is matched on its own as well, so a duplicate
    slot is caught even if the range test were evaluated loosely.
    """
    conditions = [
        Appointment.practitioner_id == practitioner_id,
        Appointment.status == ApptStatus.CONFIRMED.value,
        or_(
            and_(Appointment.start_date < window.end, Appointment.end_date > window.start),
            Appointment.start_date == window.start,
            Appointment.end_date == window.end,
        ),
    ]
    if exclude_id is not None:
        conditions.append(Appointment.id != exclude_id)

    stmt = select(Appointment.id).where(*conditions).order_by(Appointment.start_date)
    ids = (await session.execute(stmt)).scalars().all()
    if not ids:
        return NO_CONFLICT
    return ConflictResult(conflicting_ids=tuple(ids))


def _to_public(appt: Appointment) -> AppointmentPublic:
    return AppointmentPublic(
        id=appt.id,
        start_date=appt.start_date,
        end_date=appt.end_date,
        patient_id=appt.patient_id,
        patient_name=appt.patient.full_name if appt.patient else None,
        room_id=appt.room_id,
        room_number=appt.room.number if appt.room else None,
        practitioner_id=appt.practitioner_id,
        practitioner_name=appt.practitioner.full_name if appt.practitioner else None,
        reason=appt.reason,
        notes=appt.notes,
        status=appt.status,
    )


async def _lock_practitioner(session: AsyncSession, practitioner_id: UUID) -> None:
    """
    Take the practitioner's row lock before looking for conflicts; two
    bookings for the same dentist cannot both pass the check.
    """
    if await get_practitioner_for_update(session, practitioner_id) is None:
        raise NotFound("Dentist")


async def _flush(session: AsyncSession, operation: str, **context) -> None:
    try:
        await session.flush()
    except SQLAlchemyError as exc:
        logger.exception("%s failed", operation, extra={"operation": operation, **context})
        raise UnexpectedError() from exc


# CREATE
async def book_appointment_svc(
    session: AsyncSession,
    payload: AppointmentCreateRequest,
    clock: Clock,
    actor_id: Optional[UUID] = None,
) -> AppointmentPublic:
    """
    Book a new appointment (status confirmed).

    Validation happens before any write; on conflict nothing is inserted.
    """
    require_fields(payload.model_dump(), BOOKING_FIELDS)
    window = compute_window(payload.date, payload.time, payload.duration_minutes, clock)

    await get_patient(session, payload.patient_id)
    await get_room(session, payload.room_id)
    await _lock_practitioner(session, payload.practitioner_id)

    conflict = await check_conflict(session, payload.practitioner_id, window)
    if conflict:
        logger.info(
            "booking rejected, dentist busy",
            extra={
                "practitioner_id": str(payload.practitioner_id),
                "conflicts": [str(i) for i in conflict.conflicting_ids],
            },
        )
        raise SchedulingConflict(
            payload.practitioner_id, window.start, window.end, conflict.conflicting_ids
        )

    appt = Appointment(
        start_date=window.start,
        end_date=window.end,
        practitioner_id=payload.practitioner_id,
        room_id=payload.room_id,
        patient_id=payload.patient_id,
        reason=payload.reason,
        notes=payload.notes,
        status=ApptStatus.CONFIRMED.value,
    )
    session.add(appt)
    await _flush(
        session,
        "book_appointment",
        practitioner_id=str(payload.practitioner_id),
        patient_id=str(payload.patient_id),
    )
    await write_audit_log(
        session,
        actor_id,
        "CREATE_APPOINTMENT",
        f"appointment={appt.id} dentist={appt.practitioner_id} start={window.start.isoformat()}",
    )
    await session.refresh(appt)
    return _to_public(appt)


# UPDATE
async def reschedule_appointment_svc(
    session: AsyncSession,
    appointment_id: UUID,
    payload: AppointmentUpdateRequest,
    clock: Clock,
    actor_id: Optional[UUID] = None,
) -> AppointmentPublic:
    """
    Move and/or edit an appointment.

    - date and time are taken individually from the payload, falling back
      to the stored start; the stored duration is kept unless `duree` is sent
    - the past-date rule only applies when the start moves
    - the conflict check ignores the appointment itself
    """
    appt = await session.get(Appointment, appointment_id)
    if not appt:
        raise NotFound("Appointment")
    if appt.status == ApptStatus.CANCELED.value:
        raise AppointmentCanceled()

    current = TimeWindow(start=as_utc(appt.start_date), end=as_utc(appt.end_date))
    window = _rescheduled_window(current, payload, clock)
    practitioner_id = payload.practitioner_id or appt.practitioner_id

    if payload.patient_id:
        await get_patient(session, payload.patient_id)
    if payload.room_id:
        await get_room(session, payload.room_id)
    await _lock_practitioner(session, practitioner_id)

    conflict = await check_conflict(session, practitioner_id, window, exclude_id=appt.id)
    if conflict:
        raise SchedulingConflict(
            practitioner_id, window.start, window.end, conflict.conflicting_ids
        )

    appt.start_date = window.start
    appt.end_date = window.end
    appt.practitioner_id = practitioner_id
    if payload.patient_id:
        appt.patient_id = payload.patient_id
    if payload.room_id:
        appt.room_id = payload.room_id
    if payload.reason:
        appt.reason = payload.reason
    if payload.notes:
        appt.notes = payload.notes

    await _flush(session, "reschedule_appointment", appointment_id=str(appointment_id))
    await write_audit_log(
        session,
        actor_id,
        "UPDATE_APPOINTMENT",
        f"appointment={appt.id} start={window.start.isoformat()} end={window.end.isoformat()}",
    )
    await session.refresh(appt)
    return _to_public(appt)


# CANCEL
async def cancel_appointment_svc(
    session: AsyncSession,
    appointment_id: UUID,
    actor_id: Optional[UUID] = None,
) -> AppointmentPublic:
    """
    Soft cancel: the row stays, its window is freed for new bookings.
    Cancelling twice is a no-op.
    """
    appt = await session.get(Appointment, appointment_id)
    if not appt:
        raise NotFound("Appointment")

    if appt.status == ApptStatus.CANCELED.value:
        return _to_public(appt)

    appt.status = ApptStatus.CANCELED.value
    await _flush(session, "cancel_appointment", appointment_id=str(appointment_id))
    await write_audit_log(session, actor_id, "CANCEL_APPOINTMENT", f"appointment={appt.id}")
    await session.refresh(appt)
    return _to_public(appt)


# READ
async def get_appointment_svc(session: AsyncSession, appointment_id: UUID) -> AppointmentPublic:
    appt = await session.get(Appointment, appointment_id)
    if not appt:
        raise NotFound("Appointment")
    return _to_public(appt)


async def _page(
    session: AsyncSession,
    conditions: list,
    ordering: list,
    limit: int,
    offset: int,
) -> Page[AppointmentPublic]:
    total_stmt = select(func.count()).select_from(Appointment).where(*conditions)
    total = (await session.execute(total_stmt)).scalar_one()

    stmt = (
        select(Appointment)
        .where(*conditions)
        .order_by(*ordering, Appointment.id)
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return Page[AppointmentPublic](
        items=[_to_public(a) for a in rows],
        total=total,
        limit=limit,
        offset=offset,
        has_next=offset + limit < total,
    )


async def list_appointments_svc(
    session: AsyncSession, limit: int, offset: int
) -> Page[AppointmentPublic]:
    """Every appointment, canceled included, newest first."""
    return await _page(session, [], [Appointment.start_date.desc()], limit, offset)


async def list_active_appointments_svc(
    session: AsyncSession, limit: int, offset: int
) -> Page[AppointmentPublic]:
    cond = [Appointment.status == ApptStatus.CONFIRMED.value]
    return await _page(session, cond, [Appointment.start_date], limit, offset)


async def list_patient_appointments_svc(
    session: AsyncSession, patient_id: UUID, limit: int, offset: int
) -> Page[AppointmentPublic]:
    await get_patient(session, patient_id)
    cond = [
        Appointment.patient_id == patient_id,
        Appointment.status == ApptStatus.CONFIRMED.value,
    ]
    return await _page(session, cond, [Appointment.start_date.desc()], limit, offset)


async def list_practitioner_appointments_svc(
    session: AsyncSession, practitioner_id: UUID, limit: int, offset: int
) -> Page[AppointmentPublic]:
    cond = [
        Appointment.practitioner_id == practitioner_id,
        Appointment.status == ApptStatus.CONFIRMED.value,
    ]
    return await _page(session, cond, [Appointment.start_date.desc()], limit, offset)
