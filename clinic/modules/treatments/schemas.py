# clinic/modules/treatments/schemas.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class TreatmentCreateRequest(BaseModel):
    code: Optional[str] = Field(default=None, max_length=32)
    description: Optional[str] = None
    price: Any = Field(default=None, alias="prix")
    category: Optional[str] = Field(default=None, alias="categorie")

    class Config:
        populate_by_name = True


class TreatmentUpdateRequest(BaseModel):
    description: Optional[str] = None
    price: Any = Field(default=None, alias="prix")
    category: Optional[str] = Field(default=None, alias="categorie")

    class Config:
        populate_by_name = True


class TreatmentPublic(BaseModel):
    code: str
    description: str
    price: Decimal = Field(alias="prix")
    category: str = Field(alias="categorie")

    class Config:
        from_attributes = True
        populate_by_name = True
