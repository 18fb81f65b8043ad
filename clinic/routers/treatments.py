# clinic/routers/treatments.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import ClinicError, to_http
from clinic.core.responses import Envelope
from clinic.db.sql import get_session
from clinic.dependencies import get_current_user, require_roles
from clinic.modules.treatments.schemas import (
    TreatmentCreateRequest,
    TreatmentPublic,
    TreatmentUpdateRequest,
)
from clinic.modules.treatments.service import (
    create_treatment_svc,
    delete_treatment_svc,
    get_treatment,
    list_treatments_svc,
    update_treatment_svc,
)
from clinic.modules.users.models import User, UserRole

router = APIRouter(prefix="/soins", tags=["soins"])


@router.post(
    "",
    response_model=Envelope[TreatmentPublic],
    status_code=status.HTTP_201_CREATED,
)
async def treatments_create(
    payload: TreatmentCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_roles(UserRole.DENTIST, UserRole.ADMIN)),
):
    try:
        treatment = await create_treatment_svc(session, payload)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=treatment, message="Soin created successfully")


@router.get("", response_model=Envelope[List[TreatmentPublic]])
async def treatments_index(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return Envelope(data=await list_treatments_svc(session))


@router.get("/{code}", response_model=Envelope[TreatmentPublic])
async def treatments_show(
    code: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        treatment = await get_treatment(session, code)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=TreatmentPublic.model_validate(treatment))


@router.put("/{code}", response_model=Envelope[TreatmentPublic])
async def treatments_update(
    code: str,
    payload: TreatmentUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_roles(UserRole.DENTIST, UserRole.ADMIN)),
):
    try:
        treatment = await update_treatment_svc(session, code, payload)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=treatment, message="Soin updated successfully")


@router.delete("/{code}", response_model=Envelope[None])
async def treatments_delete(
    code: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_roles(UserRole.DENTIST, UserRole.ADMIN)),
):
    try:
        await delete_treatment_svc(session, code)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(message="Soin deleted successfully")
