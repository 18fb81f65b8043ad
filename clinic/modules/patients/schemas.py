# clinic/modules/patients/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, StringConstraints

NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=80)]


class PatientCreateRequest(BaseModel):
    last_name: NameStr = Field(alias="nom")
    first_name: NameStr = Field(alias="prenom")
    birth_date: date = Field(alias="dateNaissance")
    address: str = Field(alias="adresse", min_length=1)
    phone: str = Field(alias="telephone", min_length=1)
    email: Optional[EmailStr] = None

    class Config:
        populate_by_name = True


class PatientPublic(BaseModel):
    id: UUID
    last_name: str = Field(alias="nom")
    first_name: str = Field(alias="prenom")
    birth_date: date = Field(alias="dateNaissance")
    address: str = Field(alias="adresse")
    phone: str = Field(alias="telephone")
    email: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")

    class Config:
        from_attributes = True
        populate_by_name = True
