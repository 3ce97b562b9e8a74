"""Oil-change scheduling: odometer records and progress towards the next change."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from fleetshop.config import get_settings
from fleetshop.db import crud
from fleetshop.models import OilChange, Vehicle
from fleetshop.models.base import utcnow
from fleetshop.models.oil_change import KM_UPDATE, OIL_CHANGE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OilChangeStatus:
    last_change: OilChange | None
    current_km: int
    next_change_km: int
    progress_pct: int
    due: bool

    @property
    def km_remaining(self) -> int:
        return max(self.next_change_km - self.current_km, 0)


def _interval_km(vehicle: Vehicle | None) -> int:
    if vehicle is not None and vehicle.oil_change_interval_km:
        return vehicle.oil_change_interval_km
    return get_settings().oil_change.default_interval_km


async def record_oil_change(
    db: AsyncSession,
    vehicle_id: str,
    current_km: int,
    next_change_km: int | None = None,
    note: str = "",
    changed_at: datetime | None = None,
) -> OilChange:
    """Record a change; a registered vehicle's odometer fields follow it."""
    last = await crud.get_last_oil_record(db, vehicle_id)
    previous_km = last.current_km if last else 0
    vehicle = await crud.get_vehicle(db, vehicle_id)
    if next_change_km is None:
        next_change_km = current_km + _interval_km(vehicle)
    if vehicle is not None:
        vehicle.current_km = current_km
        vehicle.last_oil_change_km = current_km
        vehicle.next_oil_change_km = next_change_km
        vehicle.updated_at = changed_at or utcnow()
    record = await crud.create_oil_change(
        db,
        vehicle_id=vehicle_id,
        previous_km=previous_km,
        current_km=current_km,
        next_change_km=next_change_km,
        service_type=OIL_CHANGE,
        note=note,
        changed_at=changed_at,
    )
    logger.info("Oil change for %s at %d km, next at %d km", vehicle_id, current_km, next_change_km)
    return record


async def record_km_update(
    db: AsyncSession,
    vehicle_id: str,
    km: int,
    next_km: int | None = None,
    note: str | None = None,
    changed_at: datetime | None = None,
) -> OilChange:
    """Odometer reading between changes; the scheduled change km carries over."""
    last = await crud.get_last_oil_record(db, vehicle_id)
    if next_km is None:
        next_km = last.next_change_km if last else 0
    vehicle = await crud.get_vehicle(db, vehicle_id)
    if vehicle is not None:
        vehicle.current_km = km
        vehicle.next_oil_change_km = next_km
        vehicle.updated_at = changed_at or utcnow()
    return await crud.create_oil_change(
        db,
        vehicle_id=vehicle_id,
        previous_km=last.current_km if last else 0,
        current_km=km,
        next_change_km=next_km,
        service_type=KM_UPDATE,
        note=note or "",
        changed_at=changed_at,
    )


def oil_change_status(
    records: Sequence[OilChange], warning_threshold_pct: int | None = None,
) -> OilChangeStatus:
    """Summarize a vehicle's records, newest first."""
    if warning_threshold_pct is None:
        warning_threshold_pct = get_settings().oil_change.warning_threshold_pct

    last_change = next((r for r in records if r.service_type == OIL_CHANGE), None)
    current_km = records[0].current_km if records else 0
    next_change_km = records[0].next_change_km if records else 0

    progress = 0
    if last_change is not None:
        interval = next_change_km - last_change.current_km
        if interval > 0:
            ratio = (current_km - last_change.current_km) / interval
            progress = min(max(math.floor(ratio * 100 + 0.5), 0), 100)

    return OilChangeStatus(
        last_change=last_change,
        current_km=current_km,
        next_change_km=next_change_km,
        progress_pct=progress,
        due=last_change is not None and progress >= warning_threshold_pct,
    )
