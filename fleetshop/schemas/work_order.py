from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from fleetshop.services.status_machine import TransitionKind, WorkOrderStatus, department_of


class WorkOrderCreate(BaseModel):
    vehicle_id: str = ""
    vehicle_info: str = ""
    requester_id: str = ""
    requester_info: str = ""
    mechanic_id: str | None = None
    mechanic_info: str = ""  # "Name (id)"
    priority: str = "Média"
    current_km: str = ""
    reported_defects: str = ""
    parts_services: str = ""
    status: WorkOrderStatus = WorkOrderStatus.AWAITING_MECHANIC


class WorkOrderEventRead(BaseModel):
    seq: int
    event_type: str
    from_label: str = ""
    to_label: str = ""
    status: str = ""
    note: str = ""
    department: str = ""
    actor_id: str = ""
    actor_name: str = ""
    created_at: datetime

    model_config = {"from_attributes": True}


class WorkOrderRead(BaseModel):
    id: str
    number: str
    order_date: date
    vehicle_id: str = ""
    vehicle_info: str = ""
    requester_id: str = ""
    requester_info: str = ""
    mechanic_id: str | None = None
    mechanic_info: str = ""
    priority: str
    status: str
    current_km: str = ""
    reported_defects: str = ""
    parts_services: str = ""
    warehouse_notes: str = ""
    purchasing_notes: str = ""
    return_notes: str = ""
    execution_order: int | None = None
    department: str | None = None
    created_at: datetime
    updated_at: datetime
    events: list[WorkOrderEventRead] = []

    model_config = {"from_attributes": True}

    @classmethod
    def from_order(cls, wo) -> WorkOrderRead:
        read = cls.model_validate(wo)
        dept = department_of(wo.status, wo.events)
        read.department = dept.value if dept else None
        return read


class TransitionRequest(BaseModel):
    kind: TransitionKind
    target: str | None = None
    note: str = ""
    # send_to_external_service only
    supplier: str = ""
    service: str = ""


class ObservationCreate(BaseModel):
    text: str = Field(min_length=1)
    department: str  # tab slug: oficina | almoxarifado | compras | finalizados


class NotificationRead(BaseModel):
    level: str  # success | partial | error
    title: str
    description: str = ""

    model_config = {"from_attributes": True}


class ActionResponse(BaseModel):
    notification: NotificationRead
    order: WorkOrderRead | None = None
    queue: list[WorkOrderRead] = []
