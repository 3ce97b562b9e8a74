"""SQLAlchemy ORM models."""

from fleetshop.models.base import Base
from fleetshop.models.work_order import WorkOrder
from fleetshop.models.work_order_event import WorkOrderEvent
from fleetshop.models.oil_change import OilChange
from fleetshop.models.vehicle import Vehicle
from fleetshop.models.product import Product, StockEntry, StockExit
from fleetshop.models.auth_models import User, UserSession

__all__ = [
    "Base", "WorkOrder", "WorkOrderEvent", "OilChange",
    "Vehicle", "Product", "StockEntry", "StockExit",
    "User", "UserSession",
]
