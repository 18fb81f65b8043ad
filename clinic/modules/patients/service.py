# clinic/modules/patients/service.py
from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import NotFound
from clinic.core.responses import Page
from clinic.modules.patients.models import Patient
from clinic.modules.patients.schemas import PatientCreateRequest, PatientPublic


async def get_patient(session: AsyncSession, patient_id: UUID) -> Patient:
    patient = await session.get(Patient, patient_id)
    if not patient:
        raise NotFound("Patient")
    return patient


async def create_patient_svc(
    session: AsyncSession, payload: PatientCreateRequest
) -> PatientPublic:
    patient = Patient(
        last_name=payload.last_name,
        first_name=payload.first_name,
        birth_date=payload.birth_date,
        address=payload.address,
        phone=payload.phone,
        email=payload.email.lower() if payload.email else None,
    )
    session.add(patient)
    await session.flush()
    await session.refresh(patient)
    return PatientPublic.model_validate(patient)


async def list_patients_svc(
    session: AsyncSession, limit: int, offset: int
) -> Page[PatientPublic]:
    total = (await session.execute(select(func.count()).select_from(Patient))).scalar_one()
    stmt = (
        select(Patient)
        .order_by(Patient.last_name, Patient.first_name, Patient.id)
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return Page[PatientPublic](
        items=[PatientPublic.model_validate(p) for p in rows],
        total=total,
        limit=limit,
        offset=offset,
        has_next=offset + limit < total,
    )
