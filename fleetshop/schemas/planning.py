from __future__ import annotations

from pydantic import BaseModel

from fleetshop.schemas.work_order import NotificationRead


class PlannedOrderRead(BaseModel):
    id: str
    number: str
    status: str
    mechanic_id: str
    mechanic_info: str = ""
    vehicle_info: str = ""
    priority: str = ""
    execution_order: int | None = None

    model_config = {"from_attributes": True}


class MechanicQueueRead(BaseModel):
    id: str
    name: str
    orders: list[PlannedOrderRead] = []

    model_config = {"from_attributes": True}


class PlanningBoardRead(BaseModel):
    mechanics: list[MechanicQueueRead] = []
    mechanic_order: list[str] = []


class ReorderRequest(BaseModel):
    mechanic_id: str
    order_id: str
    over_order_id: str


class ReassignRequest(BaseModel):
    order_id: str
    to_mechanic_id: str


class MechanicMoveRequest(BaseModel):
    mechanic_id: str
    over_id: str


class PlanningActionResponse(BaseModel):
    notification: NotificationRead | None = None
    board: PlanningBoardRead
