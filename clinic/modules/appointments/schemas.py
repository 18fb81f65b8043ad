# clinic/modules/appointments/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clinic.core.validation import as_utc


class AppointmentCreateRequest(BaseModel):
    """
    Booking payload. Fields are optional at the schema level so the service
    can answer "All fields are required" itself.
    """
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD (UTC)")
    time: Optional[str] = Field(default=None, description="HH:MM (UTC)")
    duration_minutes: Any = Field(default=None, alias="duree")
    patient_id: Optional[UUID] = Field(default=None, alias="patientId")
    room_id: Optional[UUID] = Field(default=None, alias="salleConsultationId")
    practitioner_id: Optional[UUID] = Field(default=None, alias="utilisateurId")
    reason: Optional[str] = Field(default=None, alias="motif")
    notes: Optional[str] = None

    class Config:
        populate_by_name = True


class AppointmentUpdateRequest(AppointmentCreateRequest):
    """
    Same shape as the booking payload; every field is optional and missing
    ones keep their stored value.
    """


class AppointmentPublic(BaseModel):
    id: UUID
    start_date: datetime = Field(alias="startDate")
    end_date: datetime = Field(alias="endDate")
    patient_id: UUID = Field(alias="patientId")
    patient_name: Optional[str] = Field(default=None, alias="patientName")
    room_id: UUID = Field(alias="salleConsultationId")
    room_number: Optional[str] = Field(default=None, alias="salleConsultationNumero")
    practitioner_id: UUID = Field(alias="dentistId")
    practitioner_name: Optional[str] = Field(default=None, alias="dentistName")
    reason: str = Field(alias="motif")
    notes: str
    status: str

    class Config:
        populate_by_name = True

    @field_validator("start_date", "end_date")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)
