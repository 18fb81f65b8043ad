# clinic/modules/billing/schemas.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clinic.core.validation import as_utc
from clinic.modules.treatments.schemas import TreatmentPublic


# --- Requests ---

class LineItemInput(BaseModel):
    """Initial line item sent with a new invoice."""
    treatment_code: Optional[str] = Field(default=None, alias="soinId")
    amount: Any = Field(default=None, alias="montant")

    class Config:
        populate_by_name = True


class InvoiceCreateRequest(BaseModel):
    patient_id: Optional[UUID] = Field(default=None, alias="patientId")
    payment_method: Optional[str] = Field(default=None, alias="methodPaiement")
    due_date: Optional[str] = Field(default=None, alias="dateEcheance")
    line_items: Optional[List[LineItemInput]] = Field(default=None, alias="factureSoins")

    class Config:
        populate_by_name = True


class InvoiceUpdateRequest(BaseModel):
    status: Optional[str] = Field(default=None, alias="statut")
    payment_method: Optional[str] = Field(default=None, alias="methodPaiement")
    due_date: Optional[str] = Field(default=None, alias="dateEcheance")

    class Config:
        populate_by_name = True


class LineItemCreateRequest(BaseModel):
    invoice_id: Optional[UUID] = Field(default=None, alias="factureId")
    treatment_code: Optional[str] = Field(default=None, alias="soinId")
    amount: Any = Field(default=None, alias="montant")

    class Config:
        populate_by_name = True


class LineItemUpdateRequest(BaseModel):
    amount: Any = Field(default=None, alias="montant")

    class Config:
        populate_by_name = True


# --- Responses ---

class LineItemPublic(BaseModel):
    id: UUID
    invoice_id: UUID = Field(alias="factureId")
    treatment_code: str = Field(alias="soinId")
    amount: Decimal = Field(alias="montant")
    treatment: Optional[TreatmentPublic] = Field(default=None, alias="soin")

    class Config:
        from_attributes = True
        populate_by_name = True


class InvoicePublic(BaseModel):
    id: UUID
    invoice_number: str = Field(alias="numeroFacture")
    issued_at: datetime = Field(alias="date")
    total_amount: Decimal = Field(alias="montant")
    status: str = Field(alias="statut")
    payment_method: str = Field(alias="methodPaiement")
    due_date: datetime = Field(alias="dateEcheance")
    patient_id: UUID = Field(alias="patientId")
    line_items: List[LineItemPublic] = Field(default_factory=list, alias="factureSoins")

    class Config:
        from_attributes = True
        populate_by_name = True

    @field_validator("issued_at", "due_date")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class LineItemSummary(BaseModel):
    treatment_code: str = Field(alias="soinId")
    count: int
    total_amount: Decimal = Field(alias="montant")
    treatment: Optional[TreatmentPublic] = Field(default=None, alias="soin")

    class Config:
        populate_by_name = True
