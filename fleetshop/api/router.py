"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from fleetshop.api.auth import router as auth_router
from fleetshop.api.work_orders import router as work_orders_router
from fleetshop.api.planning import router as planning_router
from fleetshop.api.vehicles import router as vehicles_router
from fleetshop.api.oil_changes import router as oil_changes_router
from fleetshop.api.inventory import products_router, stock_router
from fleetshop.api.websocket import router as websocket_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(work_orders_router)
api_router.include_router(planning_router)
api_router.include_router(vehicles_router)
api_router.include_router(oil_changes_router)
api_router.include_router(products_router)
api_router.include_router(stock_router)
api_router.include_router(websocket_router)
