from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    description: str = Field(min_length=1)
    category: str = ""
    unit: str = "UN"
    location: str = ""
    stock: int = Field(default=0, ge=0)


class ProductUpdate(BaseModel):
    description: str | None = Field(default=None, min_length=1)
    category: str | None = None
    unit: str | None = None
    location: str | None = None


class ProductRead(BaseModel):
    id: str
    description: str
    category: str = ""
    unit: str = "UN"
    location: str = ""
    stock: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StockEntryCreate(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    responsible_id: str = ""
    responsible_name: str = ""
    entered_at: datetime | None = None


class StockEntryUpdate(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    responsible_id: str = ""
    responsible_name: str = ""


class StockEntryRead(BaseModel):
    id: str
    product_id: str
    product_description: str
    quantity: int
    responsible_id: str = ""
    responsible_name: str = ""
    entered_at: datetime

    model_config = {"from_attributes": True}


class StockExitCreate(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    vehicle_id: str
    responsible_id: str = ""
    responsible_name: str = ""
    note: str = ""
    work_order_id: str | None = None
    unit_value: float | None = Field(default=None, ge=0)
    exited_at: datetime | None = None


class StockExitUpdate(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    vehicle_id: str
    responsible_id: str = ""
    responsible_name: str = ""
    note: str = ""


class StockExitRead(BaseModel):
    id: str
    product_id: str
    product_description: str
    category: str = ""
    quantity: int
    unit_value: float | None = None
    responsible_id: str = ""
    responsible_name: str = ""
    vehicle_id: str
    vehicle_plate: str = ""
    vehicle_model: str = ""
    work_order_id: str | None = None
    note: str = ""
    exited_at: datetime

    model_config = {"from_attributes": True}


class StockResetResult(BaseModel):
    products_zeroed: int
