# clinic/modules/rooms/service.py
from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import NotFound, ValidationError
from clinic.core.validation import require_fields, require_positive_int
from clinic.modules.rooms.models import Room
from clinic.modules.rooms.schemas import RoomCreateRequest, RoomPublic


async def get_room(session: AsyncSession, room_id: UUID) -> Room:
    room = await session.get(Room, room_id)
    if not room:
        raise NotFound("Room")
    return room


async def create_room_svc(session: AsyncSession, payload: RoomCreateRequest) -> RoomPublic:
    require_fields(payload.model_dump(), ("number", "capacity"))
    room = Room(
        number=payload.number.strip(),
        capacity=require_positive_int(payload.capacity, "capacite"),
    )
    try:
        async with session.begin_nested():
            session.add(room)
    except IntegrityError as exc:
        raise ValidationError("Room number already exists") from exc
    return RoomPublic.model_validate(room)


async def list_rooms_svc(session: AsyncSession, limit: int, offset: int) -> list[RoomPublic]:
    stmt = select(Room).order_by(Room.number).limit(limit).offset(offset)
    rows = (await session.execute(stmt)).scalars().all()
    return [RoomPublic.model_validate(r) for r in rows]
