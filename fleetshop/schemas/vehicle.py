from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class VehicleCreate(BaseModel):
    plate: str = Field(min_length=1, max_length=10)
    model: str = ""
    brand: str = ""
    year: int | None = None
    color: str = ""
    vehicle_type: str = ""
    chassis: str = ""
    renavam: str = ""
    fuel: str = ""
    measurement: str = "km"
    oil_change_interval_km: int | None = Field(default=None, gt=0)
    status: str = "Ativo"
    department: str = ""
    current_km: int = Field(default=0, ge=0)


class VehicleUpdate(BaseModel):
    plate: str | None = Field(default=None, min_length=1, max_length=10)
    model: str | None = None
    brand: str | None = None
    year: int | None = None
    color: str | None = None
    vehicle_type: str | None = None
    chassis: str | None = None
    renavam: str | None = None
    fuel: str | None = None
    measurement: str | None = None
    oil_change_interval_km: int | None = Field(default=None, gt=0)
    status: str | None = None
    department: str | None = None


class VehicleRead(BaseModel):
    id: str
    plate: str
    model: str = ""
    brand: str = ""
    year: int | None = None
    color: str = ""
    vehicle_type: str = ""
    chassis: str = ""
    renavam: str = ""
    fuel: str = ""
    measurement: str = "km"
    oil_change_interval_km: int | None = None
    status: str = "Ativo"
    department: str = ""
    current_km: int = 0
    last_oil_change_km: int = 0
    next_oil_change_km: int = 0
    label: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
