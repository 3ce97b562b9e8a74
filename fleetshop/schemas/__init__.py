"""Pydantic request/response schemas."""

from fleetshop.schemas.work_order import (
    WorkOrderCreate, WorkOrderRead, WorkOrderEventRead,
    TransitionRequest, ObservationCreate, NotificationRead, ActionResponse,
)
from fleetshop.schemas.planning import (
    PlannedOrderRead, MechanicQueueRead, PlanningBoardRead,
    ReorderRequest, ReassignRequest, MechanicMoveRequest, PlanningActionResponse,
)
from fleetshop.schemas.oil_change import OilChangeCreate, KmUpdate, OilChangeRead, OilChangeStatusRead
from fleetshop.schemas.vehicle import VehicleCreate, VehicleUpdate, VehicleRead
from fleetshop.schemas.inventory import (
    ProductCreate, ProductUpdate, ProductRead,
    StockEntryCreate, StockEntryUpdate, StockEntryRead,
    StockExitCreate, StockExitUpdate, StockExitRead, StockResetResult,
)
from fleetshop.schemas.ws_messages import WSMessage

__all__ = [
    "WorkOrderCreate", "WorkOrderRead", "WorkOrderEventRead",
    "TransitionRequest", "ObservationCreate", "NotificationRead", "ActionResponse",
    "PlannedOrderRead", "MechanicQueueRead", "PlanningBoardRead",
    "ReorderRequest", "ReassignRequest", "MechanicMoveRequest", "PlanningActionResponse",
    "OilChangeCreate", "KmUpdate", "OilChangeRead", "OilChangeStatusRead",
    "VehicleCreate", "VehicleUpdate", "VehicleRead",
    "ProductCreate", "ProductUpdate", "ProductRead",
    "StockEntryCreate", "StockEntryUpdate", "StockEntryRead",
    "StockExitCreate", "StockExitUpdate", "StockExitRead", "StockResetResult",
    "WSMessage",
]
