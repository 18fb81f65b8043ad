# clinic/routers/rooms.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.errors import ClinicError, to_http
from clinic.core.responses import Envelope
from clinic.db.sql import get_session
from clinic.dependencies import require_roles
from clinic.modules.rooms.schemas import RoomCreateRequest, RoomPublic
from clinic.modules.rooms.service import create_room_svc, list_rooms_svc
from clinic.modules.users.models import User, UserRole

router = APIRouter(tags=["salles"])


@router.post(
    "/salles",
    response_model=Envelope[RoomPublic],
    status_code=status.HTTP_201_CREATED,
    summary="Create a consultation room (admin only)",
)
async def rooms_create(
    payload: RoomCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
):
    try:
        room = await create_room_svc(session, payload)
    except ClinicError as exc:
        raise to_http(exc) from exc
    return Envelope(data=room, message="Salle consultation created successfully")


@router.get("/salles", response_model=Envelope[List[RoomPublic]])
async def rooms_index(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.DENTIST, UserRole.ASSISTANT)),
):
    return Envelope(data=await list_rooms_svc(session, limit, offset))
