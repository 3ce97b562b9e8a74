"""Oil change API: per-vehicle records, odometer updates and due status."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fleetshop.db import crud
from fleetshop.db.engine import get_db
from fleetshop.dependencies import require_permission
from fleetshop.models import Vehicle
from fleetshop.schemas import KmUpdate, OilChangeCreate, OilChangeRead, OilChangeStatusRead
from fleetshop.services.oil_change import oil_change_status, record_km_update, record_oil_change

router = APIRouter(prefix="/api/vehicles/{vehicle_id}/oil-changes", tags=["oil_changes"])


async def _vehicle(vehicle_id: str, db: AsyncSession) -> Vehicle:
    vehicle = await crud.get_vehicle(db, vehicle_id)
    if not vehicle:
        raise HTTPException(404, "Vehicle not found")
    return vehicle


@router.get("", response_model=list[OilChangeRead])
async def list_oil_changes(
    vehicle_id: str,
    auth=Depends(require_permission("manutencoes", "visualizar", "troca-oleo")),
    db: AsyncSession = Depends(get_db),
):
    await _vehicle(vehicle_id, db)
    return await crud.list_oil_changes(db, vehicle_id)


@router.post("", status_code=201, response_model=OilChangeRead)
async def create_oil_change(
    vehicle_id: str,
    body: OilChangeCreate,
    auth=Depends(require_permission("manutencoes", "criar", "troca-oleo")),
    db: AsyncSession = Depends(get_db),
):
    await _vehicle(vehicle_id, db)
    return await record_oil_change(
        db, vehicle_id,
        current_km=body.current_km,
        next_change_km=body.next_change_km,
        note=body.note,
        changed_at=body.changed_at,
    )


@router.post("/km", status_code=201, response_model=OilChangeRead)
async def update_km(
    vehicle_id: str,
    body: KmUpdate,
    auth=Depends(require_permission("manutencoes", "editar", "troca-oleo")),
    db: AsyncSession = Depends(get_db),
):
    await _vehicle(vehicle_id, db)
    return await record_km_update(db, vehicle_id, body.km, next_km=body.next_km, note=body.note)


@router.get("/status", response_model=OilChangeStatusRead)
async def get_status(
    vehicle_id: str,
    auth=Depends(require_permission("manutencoes", "visualizar", "troca-oleo")),
    db: AsyncSession = Depends(get_db),
):
    await _vehicle(vehicle_id, db)
    records = await crud.list_oil_changes(db, vehicle_id)
    return OilChangeStatusRead.model_validate(oil_change_status(records))
