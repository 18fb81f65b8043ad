# clinic/routers/appointments.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.clock import Clock, get_clock
from clinic.core.config import settings
from clinic.core.errors import ClinicError, to_http
from clinic.core.responses import Envelope, Page
from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.appointments.schemas import (
    AppointmentCreateRequest,
    AppointmentPublic,
    AppointmentUpdateRequest,
)
from clinic.modules.appointments.service import (
    book_appointment_svc,
    cancel_appointment_svc,
    get_appointment_svc,
    list_active_appointments_svc,
    list_appointments_svc,
    list_patient_appointments_svc,
    list_practitioner_appointments_svc,
    reschedule_appointment_svc,
)
from clinic.modules.users.models import User

router = APIRouter(prefix="/rendez-vous", tags=["rendez-vous"])


@router.post(
    "",
    response_model=Envelope[AppointmentPublic],
    summary="Book an appointment",
)
async def appointments_create(
    payload: AppointmentCreateRequest,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    try:
        appt = await book_appointment_svc(session, payload, clock, current_user.id)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=appt, message="Rendez-vous created successfully")


@router.get("", response_model=Envelope[Page[AppointmentPublic]])
async def appointments_index(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return Envelope(data=await list_appointments_svc(session, limit, offset))


@router.get("/active", response_model=Envelope[Page[AppointmentPublic]])
async def appointments_active(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return Envelope(data=await list_active_appointments_svc(session, limit, offset))


@router.get("/patient/{patient_id}", response_model=Envelope[Page[AppointmentPublic]])
async def appointments_by_patient(
    patient_id: UUID,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        page = await list_patient_appointments_svc(session, patient_id, limit, offset)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=page)


@router.get("/user/{user_id}", response_model=Envelope[Page[AppointmentPublic]])
async def appointments_by_dentist(
    user_id: UUID,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return Envelope(
        data=await list_practitioner_appointments_svc(session, user_id, limit, offset)
    )


@router.get("/{appointment_id}", response_model=Envelope[AppointmentPublic])
async def appointments_show(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return Envelope(data=await get_appointment_svc(session, appointment_id))
    except ClinicError as exc:
        raise to_http(exc) from exc


@router.put(
    "/{appointment_id}",
    response_model=Envelope[AppointmentPublic],
    summary="Reschedule or edit an appointment",
)
async def appointments_update(
    appointment_id: UUID,
    payload: AppointmentUpdateRequest,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    try:
        appt = await reschedule_appointment_svc(
            session, appointment_id, payload, clock, current_user.id
        )
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=appt, message="Rendez-vous updated successfully")


@router.delete(
    "/{appointment_id}",
    response_model=Envelope[AppointmentPublic],
    summary="Cancel an appointment (the record is kept)",
)
async def appointments_cancel(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        appt = await cancel_appointment_svc(session, appointment_id, current_user.id)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=appt, message="Rendez-vous canceled successfully")
