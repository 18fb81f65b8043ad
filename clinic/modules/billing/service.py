# clinic/modules/billing/service.py
from __future__ import annotations

import logging
from datetime import time
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.clock import Clock
from clinic.core.config import settings
from clinic.core.errors import InvalidValue, InvariantViolation, NotFound, UnexpectedError
from clinic.core.responses import Page
from clinic.core.validation import (
    combine_date_and_time,
    parse_calendar_date,
    require_fields,
    require_positive_money,
    to_money,
)
from clinic.modules.billing.models import (
    Invoice,
    InvoiceLineItem,
    InvoiceSequence,
    InvoiceStatus,
)
from clinic.modules.billing.schemas import (
    InvoiceCreateRequest,
    InvoicePublic,
    InvoiceUpdateRequest,
    LineItemCreateRequest,
    LineItemPublic,
    LineItemSummary,
)
from clinic.modules.log import write_audit_log
from clinic.modules.patients.service import get_patient
from clinic.modules.treatments.models import Treatment
from clinic.modules.treatments.schemas import TreatmentPublic
from clinic.modules.treatments.service import get_treatment

logger = logging.getLogger(__name__)


def format_invoice_number(period: str, sequence: int, prefix: str | None = None) -> str:
    return f"{prefix or settings.INVOICE_NUMBER_PREFIX}-{period}-{sequence:04d}"


async def next_invoice_number(session: AsyncSession, clock: Clock) -> str:
    """
    Hand out the next number of the current YYYYMM period.

    The per-period counter row is read FOR UPDATE, so concurrent invoice
    creations queue on it instead of counting the same rows twice.
    """
    period = clock.now().strftime("%Y%m")

    seq = await session.get(InvoiceSequence, period, with_for_update=True)
    if seq is None:
        try:
            async with session.begin_nested():
                seq = InvoiceSequence(period=period, last_value=0)
                session.add(seq)
        except IntegrityError:
            # Another transaction opened the period first.
            seq = await session.get(
                InvoiceSequence, period, with_for_update=True, populate_existing=True
            )

    seq.last_value += 1
    await session.flush()
    return format_invoice_number(period, seq.last_value)


async def _lock_invoice(session: AsyncSession, invoice_id: UUID) -> Invoice:
    """Invoice row FOR UPDATE, line items reloaded under the lock."""
    invoice = await session.get(
        Invoice, invoice_id, with_for_update=True, populate_existing=True
    )
    if not invoice:
        raise NotFound("Facture")
    return invoice


async def _get_line_item(session: AsyncSession, line_item_id: UUID) -> InvoiceLineItem:
    item = await session.get(InvoiceLineItem, line_item_id)
    if not item:
        raise NotFound("FactureSoin")
    return item


async def _flush(session: AsyncSession, operation: str, **context) -> None:
    try:
        await session.flush()
    except SQLAlchemyError as exc:
        logger.exception("%s failed", operation, extra={"operation": operation, **context})
        raise UnexpectedError() from exc


async def _verify_total(session: AsyncSession, invoice: Invoice) -> None:
    """
    Re-sum the line items inside the current transaction. A mismatch aborts
    the request and rolls every write of it back.
    """
    stmt = select(func.coalesce(func.sum(InvoiceLineItem.amount), 0)).where(
        InvoiceLineItem.invoice_id == invoice.id
    )
    expected = to_money((await session.execute(stmt)).scalar_one())
    stored = to_money(invoice.total_amount)
    if stored != expected:
        logger.error(
            "invoice total out of sync",
            extra={
                "invoice_id": str(invoice.id),
                "stored_total": str(stored),
                "line_items_total": str(expected),
            },
        )
        raise InvariantViolation()


async def _to_public(session: AsyncSession, invoice: Invoice) -> InvoicePublic:
    await session.refresh(invoice)
    return InvoicePublic.model_validate(invoice)


# CREATE
async def create_invoice_svc(
    session: AsyncSession,
    payload: InvoiceCreateRequest,
    clock: Clock,
    actor_id: Optional[UUID] = None,
) -> InvoicePublic:
    """
    Create an invoice together with its initial line items (one transaction).

    A line item without `montant` is billed at the treatment's catalog price.
    """
    require_fields(payload.model_dump(), ("patient_id", "payment_method", "due_date"))
    raw_lines = payload.line_items or []
    for raw in raw_lines:
        require_fields(raw.model_dump(), ("treatment_code",))
    due_date = combine_date_and_time(parse_calendar_date(payload.due_date), time(0, 0))
    amounts = [
        None if raw.amount is None else require_positive_money(raw.amount, "montant")
        for raw in raw_lines
    ]
    await get_patient(session, payload.patient_id)

    lines: list[InvoiceLineItem] = []
    for raw, amount in zip(raw_lines, amounts):
        treatment = await get_treatment(session, raw.treatment_code)
        if amount is None:
            amount = to_money(treatment.price)
        lines.append(InvoiceLineItem(treatment=treatment, amount=amount))

    invoice_number = await next_invoice_number(session, clock)
    invoice = Invoice(
        invoice_number=invoice_number,
        issued_at=clock.now(),
        total_amount=to_money(sum((line.amount for line in lines), Decimal("0"))),
        status=InvoiceStatus.PENDING.value,
        payment_method=payload.payment_method.strip(),
        due_date=due_date,
        patient_id=payload.patient_id,
        line_items=lines,
    )
    session.add(invoice)
    await _flush(session, "create_invoice", patient_id=str(payload.patient_id))
    await _verify_total(session, invoice)

    logger.info(
        "invoice created",
        extra={"invoice_number": invoice_number, "line_items": len(lines)},
    )
    await write_audit_log(
        session,
        actor_id,
        "CREATE_INVOICE",
        f"invoice={invoice.id} number={invoice_number} total={invoice.total_amount}",
    )
    return await _to_public(session, invoice)


# LINE ITEMS
async def add_line_item_svc(
    session: AsyncSession,
    payload: LineItemCreateRequest,
    actor_id: Optional[UUID] = None,
) -> LineItemPublic:
    """Insert a line item and raise the invoice total by its amount."""
    require_fields(payload.model_dump(), ("invoice_id", "treatment_code", "amount"))
    amount = require_positive_money(payload.amount, "montant")

    invoice = await _lock_invoice(session, payload.invoice_id)
    treatment = await get_treatment(session, payload.treatment_code)

    item = InvoiceLineItem(treatment=treatment, amount=amount)
    invoice.line_items.append(item)
    invoice.total_amount = to_money(invoice.total_amount) + amount

    await _flush(session, "add_line_item", invoice_id=str(invoice.id))
    await _verify_total(session, invoice)
    await write_audit_log(
        session, actor_id, "ADD_LINE_ITEM", f"invoice={invoice.id} item={item.id} amount={amount}"
    )
    await session.refresh(item)
    return LineItemPublic.model_validate(item)


async def update_line_item_amount_svc(
    session: AsyncSession,
    line_item_id: UUID,
    new_amount,
    actor_id: Optional[UUID] = None,
) -> LineItemPublic:
    """
    Change a line item's amount; the invoice total moves by the difference
    (new - old), never by the full new amount.
    """
    amount = require_positive_money(new_amount, "montant")
    item = await _get_line_item(session, line_item_id)
    invoice = await _lock_invoice(session, item.invoice_id)

    delta = amount - to_money(item.amount)
    item.amount = amount
    invoice.total_amount = to_money(invoice.total_amount) + delta

    await _flush(session, "update_line_item", line_item_id=str(line_item_id))
    await _verify_total(session, invoice)
    await write_audit_log(
        session, actor_id, "UPDATE_LINE_ITEM", f"invoice={invoice.id} item={item.id} delta={delta}"
    )
    await session.refresh(item)
    return LineItemPublic.model_validate(item)


async def remove_line_item_svc(
    session: AsyncSession,
    line_item_id: UUID,
    actor_id: Optional[UUID] = None,
) -> None:
    item = await _get_line_item(session, line_item_id)
    invoice = await _lock_invoice(session, item.invoice_id)

    amount = to_money(item.amount)
    invoice.line_items.remove(item)
    invoice.total_amount = to_money(invoice.total_amount) - amount

    await _flush(session, "remove_line_item", line_item_id=str(line_item_id))
    await _verify_total(session, invoice)
    await write_audit_log(
        session, actor_id, "REMOVE_LINE_ITEM", f"invoice={invoice.id} item={line_item_id} amount={amount}"
    )


async def list_line_items_svc(session: AsyncSession, invoice_id: UUID) -> list[LineItemPublic]:
    invoice = await session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFound("Facture")
    return [LineItemPublic.model_validate(li) for li in invoice.line_items]


async def line_item_summary_svc(session: AsyncSession) -> list[LineItemSummary]:
    """Count and billed total per treatment across all invoices."""
    stmt = (
        select(
            InvoiceLineItem.treatment_code,
            func.count(InvoiceLineItem.id),
            func.coalesce(func.sum(InvoiceLineItem.amount), 0),
        )
        .group_by(InvoiceLineItem.treatment_code)
        .order_by(InvoiceLineItem.treatment_code)
    )
    rows = (await session.execute(stmt)).all()
    if not rows:
        return []

    codes = [code for code, _, _ in rows]
    treatments = {
        t.code: t
        for t in (
            await session.execute(select(Treatment).where(Treatment.code.in_(codes)))
        ).scalars()
    }
    return [
        LineItemSummary(
            treatment_code=code,
            count=count,
            total_amount=to_money(total),
            treatment=(
                TreatmentPublic.model_validate(treatments[code]) if code in treatments else None
            ),
        )
        for code, count, total in rows
    ]


# INVOICE HEADER
async def get_invoice_svc(session: AsyncSession, invoice_id: UUID) -> InvoicePublic:
    invoice = await session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFound("Facture")
    return InvoicePublic.model_validate(invoice)


async def list_patient_invoices_svc(
    session: AsyncSession, patient_id: UUID, limit: int, offset: int
) -> Page[InvoicePublic]:
    await get_patient(session, patient_id)
    cond = Invoice.patient_id == patient_id

    total = (
        await session.execute(select(func.count()).select_from(Invoice).where(cond))
    ).scalar_one()
    stmt = (
        select(Invoice)
        .where(cond)
        .order_by(Invoice.issued_at.desc(), Invoice.id)
        .limit(limit)
        .offset(offset)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return Page[InvoicePublic](
        items=[InvoicePublic.model_validate(i) for i in rows],
        total=total,
        limit=limit,
        offset=offset,
        has_next=offset + limit < total,
    )


async def update_invoice_svc(
    session: AsyncSession,
    invoice_id: UUID,
    payload: InvoiceUpdateRequest,
    actor_id: Optional[UUID] = None,
) -> InvoicePublic:
    """Header fields only; the total is owned by the line-item operations."""
    invoice = await session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFound("Facture")

    if payload.status:
        allowed = {s.value for s in InvoiceStatus}
        if payload.status not in allowed:
            raise InvalidValue("statut", "statut must be one of: " + ", ".join(sorted(allowed)))
        invoice.status = payload.status
    if payload.payment_method:
        invoice.payment_method = payload.payment_method.strip()
    if payload.due_date:
        invoice.due_date = combine_date_and_time(parse_calendar_date(payload.due_date), time(0, 0))

    await _flush(session, "update_invoice", invoice_id=str(invoice_id))
    await write_audit_log(session, actor_id, "UPDATE_INVOICE", f"invoice={invoice.id}")
    return await _to_public(session, invoice)


async def mark_paid_svc(
    session: AsyncSession,
    invoice_id: UUID,
    actor_id: Optional[UUID] = None,
) -> InvoicePublic:
    invoice = await session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFound("Facture")

    invoice.status = InvoiceStatus.PAID.value
    await _flush(session, "mark_paid", invoice_id=str(invoice_id))
    await write_audit_log(session, actor_id, "MARK_INVOICE_PAID", f"invoice={invoice.id}")
    return await _to_public(session, invoice)


async def delete_invoice_svc(
    session: AsyncSession,
    invoice_id: UUID,
    actor_id: Optional[UUID] = None,
) -> None:
    invoice = await session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFound("Facture")

    await session.delete(invoice)
    await _flush(session, "delete_invoice", invoice_id=str(invoice_id))
    await write_audit_log(
        session, actor_id, "DELETE_INVOICE", f"invoice={invoice_id} number={invoice.invoice_number}"
    )


async def overdue_invoices_svc(session: AsyncSession, clock: Clock) -> list[InvoicePublic]:
    """Unpaid invoices whose due date has passed, oldest due date first."""
    stmt = (
        select(Invoice)
        .where(
            Invoice.due_date < clock.now(),
            Invoice.status != InvoiceStatus.PAID.value,
        )
        .order_by(Invoice.due_date, Invoice.id)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return [InvoicePublic.model_validate(i) for i in rows]
