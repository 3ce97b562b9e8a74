"""Parts inventory API: product catalogue plus stock entries and exits."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fleetshop.db import crud
from fleetshop.db.engine import get_db
from fleetshop.dependencies import require_permission
from fleetshop.errors import InsufficientStockError, InventoryError, RecordNotFoundError
from fleetshop.schemas import (
    ProductCreate, ProductRead, ProductUpdate,
    StockEntryCreate, StockEntryRead, StockEntryUpdate,
    StockExitCreate, StockExitRead, StockExitUpdate, StockResetResult,
)
from fleetshop.services import inventory

products_router = APIRouter(prefix="/api/products", tags=["products"])
stock_router = APIRouter(prefix="/api/stock", tags=["stock"])


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, RecordNotFoundError):
        return HTTPException(404, str(e))
    if isinstance(e, InsufficientStockError):
        return HTTPException(409, str(e))
    return HTTPException(400, str(e))


# ── Products ─────────────────────────────────────────────

@products_router.post("", status_code=201, response_model=ProductRead)
async def create_product(
    body: ProductCreate,
    auth=Depends(require_permission("produtos", "criar")),
    db: AsyncSession = Depends(get_db),
):
    return await crud.create_product(db, **body.model_dump())


@products_router.get("", response_model=list[ProductRead])
async def list_products(
    q: str = "",
    auth=Depends(require_permission("produtos", "visualizar")),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_products(db, q)


@products_router.post("/reset-stock", response_model=StockResetResult)
async def reset_stock(
    auth=Depends(require_permission("produtos", "excluir")),
    db: AsyncSession = Depends(get_db),
):
    """Zero the stock of every product. Movements are kept."""
    return StockResetResult(products_zeroed=await inventory.reset_stock(db))


@products_router.get("/{product_id}", response_model=ProductRead)
async def get_product(
    product_id: str,
    auth=Depends(require_permission("produtos", "visualizar")),
    db: AsyncSession = Depends(get_db),
):
    product = await crud.get_product(db, product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return product


@products_router.patch("/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: str,
    body: ProductUpdate,
    auth=Depends(require_permission("produtos", "editar")),
    db: AsyncSession = Depends(get_db),
):
    product = await crud.get_product(db, product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return await crud.update_product(db, product, **body.model_dump(exclude_unset=True))


@products_router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: str,
    auth=Depends(require_permission("produtos", "excluir")),
    db: AsyncSession = Depends(get_db),
):
    product = await crud.get_product(db, product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    await crud.delete_product(db, product)


# ── Entries ──────────────────────────────────────────────

@stock_router.get("/entries", response_model=list[StockEntryRead])
async def list_entries(
    product_id: str | None = None,
    auth=Depends(require_permission("produtos", "visualizar")),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_stock_entries(db, product_id)


@stock_router.post("/entries", status_code=201, response_model=StockEntryRead)
async def create_entry(
    body: StockEntryCreate,
    auth=Depends(require_permission("produtos", "criar")),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await inventory.record_entry(
            db, body.product_id, body.quantity,
            responsible_id=body.responsible_id or auth.user_id,
            responsible_name=body.responsible_name or auth.display_name,
            entered_at=body.entered_at,
        )
    except (InventoryError, RecordNotFoundError) as e:
        raise _http_error(e)


@stock_router.put("/entries/{entry_id}", response_model=StockEntryRead)
async def update_entry(
    entry_id: str,
    body: StockEntryUpdate,
    auth=Depends(require_permission("produtos", "editar")),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await inventory.update_entry(
            db, entry_id, body.product_id, body.quantity,
            responsible_id=body.responsible_id or auth.user_id,
            responsible_name=body.responsible_name or auth.display_name,
        )
    except (InventoryError, RecordNotFoundError) as e:
        raise _http_error(e)


@stock_router.delete("/entries/{entry_id}", status_code=204)
async def delete_entry(
    entry_id: str,
    auth=Depends(require_permission("produtos", "excluir")),
    db: AsyncSession = Depends(get_db),
):
    try:
        await inventory.delete_entry(db, entry_id)
    except RecordNotFoundError as e:
        raise _http_error(e)


# ── Exits ────────────────────────────────────────────────

@stock_router.get("/exits", response_model=list[StockExitRead])
async def list_exits(
    product_id: str | None = None,
    vehicle_id: str | None = None,
    auth=Depends(require_permission("produtos", "visualizar")),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_stock_exits(db, product_id, vehicle_id)


@stock_router.post("/exits", status_code=201, response_model=StockExitRead)
async def create_exit(
    body: StockExitCreate,
    auth=Depends(require_permission("produtos", "criar")),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await inventory.record_exit(
            db, body.product_id, body.quantity, body.vehicle_id,
            responsible_id=body.responsible_id or auth.user_id,
            responsible_name=body.responsible_name or auth.display_name,
            note=body.note,
            work_order_id=body.work_order_id,
            unit_value=body.unit_value,
            exited_at=body.exited_at,
        )
    except (InventoryError, RecordNotFoundError) as e:
        raise _http_error(e)


@stock_router.put("/exits/{exit_id}", response_model=StockExitRead)
async def update_exit(
    exit_id: str,
    body: StockExitUpdate,
    auth=Depends(require_permission("produtos", "editar")),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await inventory.update_exit(
            db, exit_id, body.product_id, body.quantity, body.vehicle_id,
            responsible_id=body.responsible_id or auth.user_id,
            responsible_name=body.responsible_name or auth.display_name,
            note=body.note,
        )
    except (InventoryError, RecordNotFoundError) as e:
        raise _http_error(e)


@stock_router.delete("/exits/{exit_id}", status_code=204)
async def delete_exit(
    exit_id: str,
    auth=Depends(require_permission("produtos", "excluir")),
    db: AsyncSession = Depends(get_db),
):
    try:
        await inventory.delete_exit(db, exit_id)
    except RecordNotFoundError as e:
        raise _http_error(e)
