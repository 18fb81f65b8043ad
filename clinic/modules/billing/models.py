# clinic/modules/billing/models.py
from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.db.base import Base, Money, UUIDPKMixin, TimestampMixin, ReprMixin
from clinic.modules.treatments.models import Treatment


class InvoiceStatus(PyEnum):
    PENDING = "pending"
    PAID = "paid"


class Invoice(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    Facture. `total_amount` always equals the sum of its line items once a
    transaction commits.
    """

    __tablename__ = "invoices"

    invoice_number: Mapped[str] = mapped_column(String(32), nullable=False)
    issued_at: Mapped[dt.datetime] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvoiceStatus.PENDING.value,
        server_default=InvoiceStatus.PENDING.value,
    )
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    # Midnight UTC of the due day; overdue once that instant has passed.
    due_date: Mapped[dt.datetime] = mapped_column(nullable=False)

    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # selectin, not joined: the invoice row is read FOR UPDATE
    line_items: Mapped[List["InvoiceLineItem"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="InvoiceLineItem.created_at",
    )

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoices_number"),
        CheckConstraint("total_amount >= 0", name="ck_invoices_total_non_negative"),
        CheckConstraint("status IN ('pending', 'paid')", name="ck_invoices_status_valid"),
        Index("ix_invoices_patient_issued", "patient_id", "issued_at"),
        Index("ix_invoices_status_due", "status", "due_date"),
    )


class InvoiceLineItem(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """Facture-soin: one treatment billed on one invoice."""

    __tablename__ = "invoice_line_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    treatment_code: Mapped[str] = mapped_column(
        ForeignKey("treatments.code", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)

    invoice: Mapped["Invoice"] = relationship(back_populates="line_items")
    treatment: Mapped[Optional[Treatment]] = relationship("Treatment", lazy="joined")

    __table_args__ = (CheckConstraint("amount > 0", name="ck_line_items_amount_positive"),)


class InvoiceSequence(Base):
    """Last invoice number handed out per YYYYMM period."""

    __tablename__ = "invoice_sequences"

    period: Mapped[str] = mapped_column(String(6), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
