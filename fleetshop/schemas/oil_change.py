from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class OilChangeCreate(BaseModel):
    current_km: int = Field(ge=0)
    next_change_km: int | None = Field(default=None, ge=0)
    note: str = ""
    changed_at: datetime | None = None


class KmUpdate(BaseModel):
    km: int = Field(ge=0)
    next_km: int | None = Field(default=None, ge=0)
    note: str | None = None


class OilChangeRead(BaseModel):
    id: str
    vehicle_id: str
    changed_at: datetime
    previous_km: int
    current_km: int
    next_change_km: int
    service_type: str
    note: str = ""

    model_config = {"from_attributes": True}


class OilChangeStatusRead(BaseModel):
    last_change: OilChangeRead | None = None
    current_km: int
    next_change_km: int
    km_remaining: int
    progress_pct: int
    due: bool

    model_config = {"from_attributes": True}
