# clinic/modules/treatments/service.py
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import NotFound, ValidationError
from clinic.core.validation import require_fields, require_positive_money
from clinic.modules.billing.models import InvoiceLineItem
from clinic.modules.treatments.models import Treatment
from clinic.modules.treatments.schemas import (
    TreatmentCreateRequest,
    TreatmentPublic,
    TreatmentUpdateRequest,
)


async def get_treatment(session: AsyncSession, code: str) -> Treatment:
    treatment = await session.get(Treatment, code) if code else None
    if not treatment:
        raise NotFound("Soin")
    return treatment


async def create_treatment_svc(
    session: AsyncSession, payload: TreatmentCreateRequest
) -> TreatmentPublic:
    require_fields(payload.model_dump(), ("description", "price", "category"))
    price = require_positive_money(payload.price, "prix")

    if payload.code and await session.get(Treatment, payload.code):
        raise ValidationError("Soin code already exists")

    treatment = Treatment(
        description=payload.description.strip(),
        price=price,
        category=payload.category.strip(),
    )
    if payload.code:
        treatment.code = payload.code
    session.add(treatment)
    await session.flush()
    return TreatmentPublic.model_validate(treatment)


async def list_treatments_svc(session: AsyncSession) -> list[TreatmentPublic]:
    stmt = select(Treatment).order_by(Treatment.category, Treatment.description)
    rows = (await session.execute(stmt)).scalars().all()
    return [TreatmentPublic.model_validate(t) for t in rows]


async def update_treatment_svc(
    session: AsyncSession, code: str, payload: TreatmentUpdateRequest
) -> TreatmentPublic:
    """Partial update; the price of existing line items is not touched."""
    treatment = await get_treatment(session, code)
    if payload.description:
        treatment.description = payload.description.strip()
    if payload.price is not None:
        treatment.price = require_positive_money(payload.price, "prix")
    if payload.category:
        treatment.category = payload.category.strip()
    await session.flush()
    return TreatmentPublic.model_validate(treatment)


async def delete_treatment_svc(session: AsyncSession, code: str) -> None:
    treatment = await get_treatment(session, code)
    used = (
        await session.execute(
            select(func.count())
            .select_from(InvoiceLineItem)
            .where(InvoiceLineItem.treatment_code == code)
        )
    ).scalar_one()
    if used:
        raise ValidationError("Soin is referenced by invoice line items")
    await session.delete(treatment)
    await session.flush()
