# clinic/routers/invoices.py
from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.clock import Clock, get_clock
from clinic.core.config import settings
from clinic.core.errors import ClinicError, to_http
from clinic.core.responses import Envelope, Page
from clinic.db.sql import get_session
from clinic.dependencies import get_current_user
from clinic.modules.billing.schemas import (
    InvoiceCreateRequest,
    InvoicePublic,
    InvoiceUpdateRequest,
)
from clinic.modules.billing.service import (
    create_invoice_svc,
    delete_invoice_svc,
    get_invoice_svc,
    list_patient_invoices_svc,
    mark_paid_svc,
    overdue_invoices_svc,
    update_invoice_svc,
)
from clinic.modules.users.models import User

router = APIRouter(prefix="/factures", tags=["factures"])


@router.post(
    "",
    response_model=Envelope[InvoicePublic],
    summary="Create an invoice with its initial line items",
)
async def invoices_create(
    payload: InvoiceCreateRequest,
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    try:
        invoice = await create_invoice_svc(session, payload, clock, current_user.id)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=invoice, message="Facture created successfully")


@router.get("/en-retard", response_model=Envelope[List[InvoicePublic]])
async def invoices_overdue(
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    return Envelope(data=await overdue_invoices_svc(session, clock))


@router.put("/mark-as-paid/{invoice_id}", response_model=Envelope[InvoicePublic])
async def invoices_mark_paid(
    invoice_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        invoice = await mark_paid_svc(session, invoice_id, current_user.id)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=invoice, message="Facture marked as paid")


@router.get("/patient/{patient_id}", response_model=Envelope[Page[InvoicePublic]])
async def invoices_by_patient(
    patient_id: UUID,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        page = await list_patient_invoices_svc(session, patient_id, limit, offset)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=page)


@router.get("/{invoice_id}", response_model=Envelope[InvoicePublic])
async def invoices_show(
    invoice_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        return Envelope(data=await get_invoice_svc(session, invoice_id))
    except ClinicError as exc:
        raise to_http(exc) from exc


@router.put("/{invoice_id}", response_model=Envelope[InvoicePublic])
async def invoices_update(
    invoice_id: UUID,
    payload: InvoiceUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        invoice = await update_invoice_svc(session, invoice_id, payload, current_user.id)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=invoice, message="Facture updated successfully")


@router.delete("/{invoice_id}", response_model=Envelope[None])
async def invoices_delete(
    invoice_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        await delete_invoice_svc(session, invoice_id, current_user.id)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(message="Facture deleted successfully")
