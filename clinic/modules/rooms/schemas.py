# clinic/modules/rooms/schemas.py
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RoomCreateRequest(BaseModel):
    number: Optional[str] = Field(default=None, alias="numero")
    capacity: Any = Field(default=None, alias="capacite")

    class Config:
        populate_by_name = True


class RoomPublic(BaseModel):
    id: UUID
    number: str = Field(alias="numero")
    capacity: int = Field(alias="capacite")

    class Config:
        from_attributes = True
        populate_by_name = True
