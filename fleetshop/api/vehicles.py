"""Vehicle registry API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fleetshop.db import crud
from fleetshop.db.engine import get_db
from fleetshop.dependencies import require_permission
from fleetshop.schemas import StockExitRead, VehicleCreate, VehicleRead, VehicleUpdate

router = APIRouter(prefix="/api/vehicles", tags=["vehicles"])


async def _get_or_404(db: AsyncSession, vehicle_id: str):
    vehicle = await crud.get_vehicle(db, vehicle_id)
    if not vehicle:
        raise HTTPException(404, "Vehicle not found")
    return vehicle


@router.post("", status_code=201, response_model=VehicleRead)
async def create_vehicle(
    body: VehicleCreate,
    auth=Depends(require_permission("veiculos", "criar")),
    db: AsyncSession = Depends(get_db),
):
    if await crud.get_vehicle_by_plate(db, body.plate):
        raise HTTPException(409, "A vehicle with this plate already exists")
    fields = body.model_dump(exclude={"plate"})
    return await crud.create_vehicle(db, body.plate, **fields)


@router.get("", response_model=list[VehicleRead])
async def list_vehicles(
    q: str = "",
    auth=Depends(require_permission("veiculos", "visualizar")),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_vehicles(db, q)


@router.get("/{vehicle_id}", response_model=VehicleRead)
async def get_vehicle(
    vehicle_id: str,
    auth=Depends(require_permission("veiculos", "visualizar")),
    db: AsyncSession = Depends(get_db),
):
    return await _get_or_404(db, vehicle_id)


@router.patch("/{vehicle_id}", response_model=VehicleRead)
async def update_vehicle(
    vehicle_id: str,
    body: VehicleUpdate,
    auth=Depends(require_permission("veiculos", "editar")),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await _get_or_404(db, vehicle_id)
    if body.plate:
        other = await crud.get_vehicle_by_plate(db, body.plate)
        if other and other.id != vehicle.id:
            raise HTTPException(409, "A vehicle with this plate already exists")
    return await crud.update_vehicle(db, vehicle, **body.model_dump(exclude_unset=True))


@router.delete("/{vehicle_id}", status_code=204)
async def delete_vehicle(
    vehicle_id: str,
    auth=Depends(require_permission("veiculos", "excluir")),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await _get_or_404(db, vehicle_id)
    await crud.delete_vehicle(db, vehicle)


@router.get("/{vehicle_id}/stock-exits", response_model=list[StockExitRead])
async def list_vehicle_parts(
    vehicle_id: str,
    auth=Depends(require_permission("produtos", "visualizar")),
    db: AsyncSession = Depends(get_db),
):
    """Parts issued to this vehicle, newest first."""
    await _get_or_404(db, vehicle_id)
    return await crud.list_stock_exits(db, vehicle_id=vehicle_id)
