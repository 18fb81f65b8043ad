# clinic/routers/patients.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.errors import NotFound, to_http
from clinic.core.responses import Envelope, Page
from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.patients.schemas import PatientCreateRequest, PatientPublic
from clinic.modules.patients.service import create_patient_svc, get_patient, list_patients_svc
from clinic.modules.users.models import User

router = APIRouter(tags=["patients"])


@router.post(
    "/patients",
    response_model=Envelope[PatientPublic],
    status_code=status.HTTP_201_CREATED,
)
async def patients_create(
    payload: PatientCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    patient = await create_patient_svc(session, payload)
    return Envelope(data=patient, message="Patient created successfully")


@router.get("/patients", response_model=Envelope[Page[PatientPublic]])
async def patients_index(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return Envelope(data=await list_patients_svc(session, limit, offset))


@router.get("/patients/{patient_id}", response_model=Envelope[PatientPublic])
async def patients_show(
    patient_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        patient = await get_patient(session, patient_id)
    except NotFound as exc:
        raise to_http(exc) from exc
    return Envelope(data=PatientPublic.model_validate(patient))
