import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_async_session
from models.schemas import BuildingCreate, BuildingResponse, RoomPayload
from services.building_service import building_service
from services.audit_orchestrator import classify_audit_level
from services.equipment_catalog import get_form_options

logger = logging.getLogger(__name__)
router = APIRouter()


def _building_response(building) -> BuildingResponse:
    return BuildingResponse(
        id=building.id,
        name=building.name,
        address=building.address,
        type=building.type,
        customer_type=building.customer_type,
        area=building.area,
        construction_year=building.construction_year,
        rooms_count=building.rooms_count,
        residents=building.residents,
        audit_level=classify_audit_level(building.area).value,
        created_at=building.created_at,
    )


def _room_dict(room) -> dict:
    room_data = room.room_data or {}
    return {
        "id": room.id,
        "name": room.name,
        "area": room.area,
        "room_type": room.room_type,
        "windows": room.windows,
        "lighting_type": room.lighting_type,
        "num_fixtures": room.num_fixtures,
        "ac_type": room.ac_type,
        "ac_size": room.ac_size,
        "dimensions": room_data.get("dimensions"),
        "is_default": bool(room_data.get("is_default")),
    }


@router.post("", response_model=BuildingResponse, status_code=201)
async def create_building(payload: BuildingCreate, session: AsyncSession = Depends(get_async_session)):
    """Create a building from the intake form"""
    data = payload.model_dump()
    data["type"] = payload.type.value
    if not data.get("customer_type"):
        data["customer_type"] = payload.type.value
    building = await building_service.create_building(data, session)
    return _building_response(building)


@router.get("/equipment-types/{customer_type}")
async def equipment_types(customer_type: str):
    """Equipment catalog and form options for a customer type"""
    return get_form_options(customer_type)


@router.get("/{building_id}", response_model=BuildingResponse)
async def get_building(building_id: str, session: AsyncSession = Depends(get_async_session)):
    building = await building_service.get_building(building_id, session)
    return _building_response(building)


@router.get("/{building_id}/audit-level")
async def get_audit_level(building_id: str, session: AsyncSession = Depends(get_async_session)):
    building = await building_service.get_building(building_id, session)
    return {"building_id": building.id, "area": building.area,
            "audit_level": classify_audit_level(building.area).value}


@router.get("/{building_id}/rooms")
async def list_rooms(building_id: str, session: AsyncSession = Depends(get_async_session)):
    """Rooms for the assessment form, one per name"""
    await building_service.get_building(building_id, session)
    rooms = await building_service.rooms_for_editing(building_id, session)
    return {"rooms": [_room_dict(room) for room in rooms]}


@router.put("/{building_id}/rooms")
async def update_rooms(building_id: str, rooms: List[RoomPayload],
                       session: AsyncSession = Depends(get_async_session)):
    """Replace the building's rooms with the edited set"""
    await building_service.get_building(building_id, session)
    rows = []
    for room in rooms:
        data = room.model_dump(exclude={"dimensions", "is_default"})
        data["room_data"] = {"dimensions": room.dimensions, "is_default": room.is_default}
        rows.append(data)
    stored = await building_service.replace_rooms(building_id, rows, session)
    logger.info(f"Updated {len(stored)} rooms for building {building_id}")
    return {"rooms": [_room_dict(room) for room in stored]}
