# clinic/routers/line_items.py
from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import ClinicError, to_http
from clinic.core.responses import Envelope
from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.billing.schemas import (
    LineItemCreateRequest,
    LineItemPublic,
    LineItemSummary,
    LineItemUpdateRequest,
)
from clinic.modules.billing.service import (
    add_line_item_svc,
    line_item_summary_svc,
    list_line_items_svc,
    remove_line_item_svc,
    update_line_item_amount_svc,
)
from clinic.modules.users.models import User

router = APIRouter(prefix="/facture-soins", tags=["facture-soins"])


@router.post(
    "",
    response_model=Envelope[LineItemPublic],
    status_code=status.HTTP_201_CREATED,
    summary="Add a line item; the invoice total grows by its amount",
)
async def line_items_create(
    payload: LineItemCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        item = await add_line_item_svc(session, payload, current_user.id)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=item, message="Facture soin created successfully")


@router.get("/summary", response_model=Envelope[List[LineItemSummary]])
async def line_items_summary(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return Envelope(data=await line_item_summary_svc(session))


@router.get("/{facture_id}", response_model=Envelope[List[LineItemPublic]])
async def line_items_of_invoice(
    facture_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return Envelope(data=await list_line_items_svc(session, facture_id))
    except ClinicError as exc:
        raise to_http(exc) from exc


@router.put("/{line_item_id}", response_model=Envelope[LineItemPublic])
async def line_items_update(
    line_item_id: UUID,
    payload: LineItemUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        item = await update_line_item_amount_svc(
            session, line_item_id, payload.amount, current_user.id
        )
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=item, message="Facture soin updated successfully")


@router.delete("/{line_item_id}", response_model=Envelope[None])
async def line_items_delete(
    line_item_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        await remove_line_item_svc(session, line_item_id, current_user.id)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(message="Facture soin deleted successfully")
